from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from releasegate.domain import Outcome, PipelineRun, ReleaseOutcome, StageResult


@dataclass(frozen=True, slots=True)
class OutcomeCounts:
    counts: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_results(cls, results: tuple[StageResult, ...]) -> "OutcomeCounts":
        counts = {outcome.value: 0 for outcome in Outcome}
        for result in results:
            counts[result.outcome.value] += 1
        return cls(counts=counts)

    def to_dict(self) -> dict[str, int]:
        return {key: int(self.counts[key]) for key in sorted(self.counts)}


@dataclass(frozen=True, slots=True)
class RunDiagnostics:
    branch: str
    commit_sha: str
    succeeded: bool
    stage_results: tuple[StageResult, ...]
    releases: tuple[ReleaseOutcome, ...]
    outcome_counts: OutcomeCounts
    dry_run: bool = False
    pipeline_config_path: str | None = None
    unexpected_skips: tuple[StageResult, ...] = ()

    @classmethod
    def from_run(
        cls,
        run: PipelineRun,
        *,
        dry_run: bool = False,
        pipeline_config_path: str | None = None,
    ) -> "RunDiagnostics":
        results = tuple(run.stage_results)
        return cls(
            branch=run.trigger_branch,
            commit_sha=run.commit_sha,
            succeeded=run.succeeded,
            stage_results=results,
            releases=tuple(run.releases),
            outcome_counts=OutcomeCounts.from_results(results),
            dry_run=dry_run,
            pipeline_config_path=pipeline_config_path,
            unexpected_skips=run.unexpected_skips(),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "branch": self.branch,
            "commit_sha": self.commit_sha,
            "status": "success" if self.succeeded else "failure",
            "outcome_counts": self.outcome_counts.to_dict(),
            "stage_results": [item.to_dict() for item in self.stage_results],
            "releases": [item.to_dict() for item in self.releases],
            "dry_run": self.dry_run,
        }
        if self.pipeline_config_path is not None:
            payload["pipeline_config_path"] = self.pipeline_config_path
        if self.unexpected_skips:
            payload["unexpected_skips"] = [item.to_dict() for item in self.unexpected_skips]
        return payload
