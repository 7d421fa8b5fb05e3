from __future__ import annotations

from collections.abc import Iterable
from typing import Literal

from releasegate.domain import GATED_PREFIX, JobInstance, Outcome, StageResult

GateScope = Literal["run", "cell"]


def blocking_reasons(
    stage_results: Iterable[StageResult],
    required_stage_names: Iterable[str],
    job_instance: JobInstance,
    *,
    scope: GateScope = "run",
) -> tuple[str, ...]:
    """Return why ``job_instance`` may not proceed; empty when it may.

    With ``scope="run"`` a required stage counts in every matrix cell it ran
    in. With ``scope="cell"`` only its results for ``job_instance`` count.
    Each (stage, job instance) pair is judged by its latest result, so a
    successful re-run supersedes an earlier failure.
    """
    if scope not in ("run", "cell"):
        raise ValueError(f"unknown gate scope '{scope}'")
    results = tuple(stage_results)
    reasons: list[str] = []
    for name in dict.fromkeys(required_stage_names):
        latest: dict[JobInstance, StageResult] = {}
        for result in results:
            if result.stage_name != name:
                continue
            if scope == "run" or result.job_instance == job_instance:
                latest[result.job_instance] = result
        if not latest:
            reasons.append(f"{name} has no result")
            continue
        for result in latest.values():
            if result.outcome is not Outcome.SUCCESS:
                reasons.append(f"{name} {result.outcome.value} on {result.job_instance.label}")
    return tuple(reasons)


def may_proceed(
    stage_results: Iterable[StageResult],
    required_stage_names: Iterable[str],
    job_instance: JobInstance,
    *,
    scope: GateScope = "run",
) -> bool:
    return not blocking_reasons(
        stage_results, required_stage_names, job_instance, scope=scope
    )


def gate_detail(reasons: Iterable[str]) -> str:
    return f"{GATED_PREFIX} " + "; ".join(reasons)
