from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from releasegate.domain import JobInstance, PipelineRun, StageResult
from releasegate.release.predicate import should_release
from tests.fuzz.strategies import BRANCHES, OSES, OUTCOMES, TOOLCHAINS


@pytest.mark.fuzz
@given(
    branch=BRANCHES,
    toolchain=TOOLCHAINS,
    os_label=OSES,
    history=st.lists(
        st.tuples(st.sampled_from(["rustfmt", "clippy_check"]), OUTCOMES), max_size=6
    ),
)
def test_should_release_is_pure(branch, toolchain, os_label, history) -> None:
    job = JobInstance(os_label, toolchain)
    bare = PipelineRun(trigger_branch=branch, commit_sha="abc")
    noisy = PipelineRun(trigger_branch=branch, commit_sha="def")
    for stage, outcome in history:
        noisy.record(StageResult(stage, job, outcome))

    decision = should_release(bare, job)
    assert should_release(bare, job) == decision
    assert should_release(noisy, job) == decision
    assert decision == (
        branch in ("master", "refs/heads/master")
        and toolchain == "stable"
        and os_label == "ubuntu-latest"
    )
