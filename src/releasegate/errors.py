from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class ReleaseGateError(Exception):
    """Base exception for configuration, stage, and release failures."""


class ConfigValidationError(ReleaseGateError):
    """Raised when pipeline configuration or release policy is invalid."""


@dataclass(slots=True)
class StageExecutionError(ReleaseGateError):
    """Raised when a stage cannot be executed at all (not a non-zero exit)."""

    stage: str
    detail: str

    def __str__(self) -> str:
        return f"stage '{self.stage}' failed: {self.detail}"


@dataclass(slots=True)
class RuntimeInitializationError(ReleaseGateError):
    """Raised when runtime cannot be constructed from configs."""

    pipeline_config_path: Path
    detail: str

    def __str__(self) -> str:
        return (
            f"runtime initialization failed for '{self.pipeline_config_path}': {self.detail}"
        )


class ReleaseError(ReleaseGateError):
    """Base for failures in the release phase."""


@dataclass(slots=True)
class TagError(ReleaseError):
    """Raised when the local tag cannot be moved."""

    tag: str
    detail: str

    def __str__(self) -> str:
        return f"tag '{self.tag}' could not be moved: {self.detail}"


@dataclass(slots=True)
class RemoteUpdateError(TagError):
    """Raised when a moved tag cannot be pushed; the local move stands."""

    remote: str = "origin"

    def __str__(self) -> str:
        return f"tag '{self.tag}' could not be pushed to '{self.remote}': {self.detail}"


@dataclass(slots=True)
class PublishError(ReleaseError):
    """Raised when a release artifact cannot be uploaded."""

    release_name: str
    detail: str

    def __str__(self) -> str:
        return f"release '{self.release_name}' could not be published: {self.detail}"


@dataclass(slots=True)
class BuildArtifactMissing(PublishError):
    """Raised when the artifact to publish was never produced."""

    file_path: Path = Path()

    def __str__(self) -> str:
        return (
            f"release '{self.release_name}' artifact missing at '{self.file_path}': "
            f"{self.detail}"
        )
