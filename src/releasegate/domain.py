from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from releasegate.errors import ConfigValidationError

_BRANCH_PREFIX = "refs/heads/"
_TAG_PREFIX = "refs/tags/"
GATED_PREFIX = "gated:"


class Outcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True, order=True)
class JobInstance:
    os: str
    toolchain: str

    def __post_init__(self) -> None:
        if not isinstance(self.os, str) or not self.os.strip():
            raise TypeError("os must be a non-empty string")
        if not isinstance(self.toolchain, str) or not self.toolchain.strip():
            raise TypeError("toolchain must be a non-empty string")

    @property
    def label(self) -> str:
        return f"{self.os} / {self.toolchain}"

    def to_dict(self) -> dict[str, str]:
        return {"os": self.os, "toolchain": self.toolchain}


@dataclass(frozen=True, slots=True)
class StageResult:
    stage_name: str
    job_instance: JobInstance
    outcome: Outcome
    detail: str = ""
    exit_code: int | None = None
    step: str | None = None
    output: str = field(default="", repr=False, compare=False)

    @property
    def gated(self) -> bool:
        return self.outcome is Outcome.SKIPPED and self.detail.startswith(GATED_PREFIX)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "stage": self.stage_name,
            "job": self.job_instance.to_dict(),
            "outcome": self.outcome.value,
        }
        if self.detail:
            payload["detail"] = self.detail
        if self.exit_code is not None:
            payload["exit_code"] = int(self.exit_code)
        if self.step is not None:
            payload["step"] = self.step
        return payload


def normalize_branch(ref: str) -> str | None:
    """Return the branch name for a ref, or ``None`` when the ref is a tag."""
    cleaned = ref.strip()
    if cleaned.startswith(_TAG_PREFIX):
        return None
    if cleaned.startswith(_BRANCH_PREFIX):
        return cleaned[len(_BRANCH_PREFIX) :]
    return cleaned


@dataclass(frozen=True, slots=True)
class PushEvent:
    branch: str
    commit_sha: str

    def __post_init__(self) -> None:
        if not self.branch.strip():
            raise ConfigValidationError("push event branch must be non-empty")
        if not self.commit_sha.strip():
            raise ConfigValidationError("push event commit_sha must be non-empty")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "PushEvent":
        env = os.environ if environ is None else environ
        ref = env.get("GITHUB_REF", "").strip()
        sha = env.get("GITHUB_SHA", "").strip()
        if not ref or not sha:
            raise ConfigValidationError(
                "GITHUB_REF and GITHUB_SHA must be set to derive the push event"
            )
        return cls(branch=ref, commit_sha=sha)


@dataclass(frozen=True, slots=True)
class ReleaseOutcome:
    job_instance: JobInstance
    released: bool
    tag: str | None = None
    release_name: str | None = None
    artifacts: tuple[str, ...] = ()
    error_type: str | None = None
    detail: str = ""

    @property
    def failed(self) -> bool:
        return self.error_type is not None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "job": self.job_instance.to_dict(),
            "released": self.released,
        }
        if self.tag is not None:
            payload["tag"] = self.tag
        if self.release_name is not None:
            payload["release_name"] = self.release_name
        if self.artifacts:
            payload["artifacts"] = list(self.artifacts)
        if self.error_type is not None:
            payload["error_type"] = self.error_type
        if self.detail:
            payload["detail"] = self.detail
        return payload


@dataclass(slots=True)
class PipelineRun:
    """One invocation of the pipeline for a push event.

    ``stage_results`` is append-only: re-running a stage adds a new result and
    never replaces an earlier one.
    """

    trigger_branch: str
    commit_sha: str
    stage_results: list[StageResult] = field(default_factory=list)
    releases: list[ReleaseOutcome] = field(default_factory=list)

    @classmethod
    def from_event(cls, event: PushEvent) -> "PipelineRun":
        return cls(trigger_branch=event.branch, commit_sha=event.commit_sha)

    @property
    def branch(self) -> str | None:
        return normalize_branch(self.trigger_branch)

    def record(self, result: StageResult) -> StageResult:
        self.stage_results.append(result)
        return result

    def record_release(self, outcome: ReleaseOutcome) -> ReleaseOutcome:
        self.releases.append(outcome)
        return outcome

    def results_for(
        self, stage_name: str, job_instance: JobInstance | None = None
    ) -> tuple[StageResult, ...]:
        return tuple(
            result
            for result in self.stage_results
            if result.stage_name == stage_name
            and (job_instance is None or result.job_instance == job_instance)
        )

    def latest(self, stage_name: str, job_instance: JobInstance) -> StageResult | None:
        matches = self.results_for(stage_name, job_instance)
        return matches[-1] if matches else None

    def failures(self) -> tuple[StageResult, ...]:
        return tuple(r for r in self.stage_results if r.outcome is Outcome.FAILURE)

    def unexpected_skips(self) -> tuple[StageResult, ...]:
        """Gated skips with no failed prerequisite to account for them."""
        if self.failures():
            return ()
        return tuple(r for r in self.stage_results if r.gated)

    @property
    def succeeded(self) -> bool:
        if self.failures() or self.unexpected_skips():
            return False
        return not any(item.failed for item in self.releases)


@dataclass(frozen=True, slots=True)
class TagPointer:
    name: str
    target_commit: str


@dataclass(frozen=True, slots=True)
class ReleaseArtifact:
    release_name: str
    file_path: Path

    def to_dict(self) -> dict[str, str]:
        return {"release_name": self.release_name, "file_path": str(self.file_path)}

