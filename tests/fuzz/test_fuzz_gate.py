from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from releasegate.domain import JobInstance, Outcome, StageResult
from releasegate.gate import may_proceed
from tests.fuzz.strategies import JOBS, STAGE_RESULTS

REQUIRED = ("rustfmt", "clippy_check")


def _latest_outcomes(history: list[StageResult], name: str) -> list[Outcome]:
    by_job = {r.job_instance: r.outcome for r in history if r.stage_name == name}
    return list(by_job.values())


@pytest.mark.fuzz
@given(history=st.lists(STAGE_RESULTS, max_size=8), job=JOBS)
def test_run_scope_gate_matches_definition(history: list[StageResult], job: JobInstance) -> None:
    expected = all(
        _latest_outcomes(history, name)
        and all(outcome is Outcome.SUCCESS for outcome in _latest_outcomes(history, name))
        for name in REQUIRED
    )
    assert may_proceed(history, REQUIRED, job) is expected


@pytest.mark.fuzz
@given(history=st.lists(STAGE_RESULTS, max_size=8), job=JOBS)
def test_cell_scope_is_never_stricter_than_run_scope(
    history: list[StageResult], job: JobInstance
) -> None:
    if may_proceed(history, REQUIRED, job, scope="run"):
        own_cell = [r for r in history if r.job_instance == job]
        has_all = all(any(r.stage_name == name for r in own_cell) for name in REQUIRED)
        assert may_proceed(history, REQUIRED, job, scope="cell") is has_all
