from __future__ import annotations

from hypothesis import strategies as st

from releasegate.domain import JobInstance, Outcome, StageResult

_LABEL_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789-."

LABELS = st.text(alphabet=_LABEL_ALPHABET, min_size=1, max_size=16)

BRANCHES = st.sampled_from(
    [
        "master",
        "refs/heads/master",
        "refs/heads/main",
        "refs/heads/feature/x",
        "refs/tags/latest",
    ]
)
TOOLCHAINS = st.sampled_from(["stable", "nightly", "beta"])
OSES = st.sampled_from(["ubuntu-latest", "macos-latest", "windows-latest"])
OUTCOMES = st.sampled_from(list(Outcome))

JOBS = st.builds(JobInstance, os=OSES, toolchain=TOOLCHAINS)

STAGE_RESULTS = st.builds(
    StageResult,
    stage_name=st.sampled_from(["rustfmt", "clippy_check", "build_and_test"]),
    job_instance=JOBS,
    outcome=OUTCOMES,
)
