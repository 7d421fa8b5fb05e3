from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from releasegate.errors import ConfigValidationError
from releasegate.release.predicate import ReleasePolicy
from releasegate.stages import CommandSpec

GateScopeName = Literal["run", "cell"]

DEFAULT_RELEASE_WHEN: dict[str, str] = {
    "branch": "master",
    "toolchain": "stable",
    "os": "ubuntu-latest",
}


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)


def _coerce_labels(value: object, *, what: str) -> tuple[str, ...]:
    if isinstance(value, tuple):
        items = list(value)
    elif isinstance(value, list):
        items = value
    else:
        raise TypeError(f"{what} must be a list of strings")
    cleaned: list[str] = []
    for raw in items:
        if not isinstance(raw, str):
            raise TypeError(f"{what} entries must be strings")
        label = raw.strip()
        if not label:
            raise ValueError(f"{what} entries must be non-empty")
        cleaned.append(label)
    return tuple(cleaned)


def _coerce_optional_path(value: object, *, what: str) -> Path | None:
    if value is None or isinstance(value, Path):
        return value
    if isinstance(value, str):
        return Path(value)
    raise TypeError(f"{what} must be a path-like string")


class MatrixConfig(StrictModel):
    os: tuple[str, ...]
    toolchain: tuple[str, ...]

    @field_validator("os", "toolchain", mode="before")
    @classmethod
    def _coerce_axis(cls, value: object) -> tuple[str, ...]:
        return _coerce_labels(value, what="matrix axis")


class StageMatrixConfig(StrictModel):
    os: tuple[str, ...] | None = None
    toolchain: tuple[str, ...] | None = None

    @field_validator("os", "toolchain", mode="before")
    @classmethod
    def _coerce_axis(cls, value: object) -> tuple[str, ...] | None:
        if value is None:
            return None
        return _coerce_labels(value, what="stage matrix axis")


class StepConfig(StrictModel):
    name: str | None = None
    command: tuple[str, ...]
    cwd: Path | None = None
    env: dict[str, str] = Field(default_factory=dict)

    @field_validator("command", mode="before")
    @classmethod
    def _coerce_command(cls, value: object) -> object:
        if isinstance(value, list):
            return tuple(value)
        return value

    @field_validator("command")
    @classmethod
    def _command_non_empty(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value or not value[0].strip():
            raise ValueError("step command must name an executable")
        return value

    @field_validator("cwd", mode="before")
    @classmethod
    def _coerce_cwd(cls, value: object) -> Path | None:
        return _coerce_optional_path(value, what="step cwd")

    def command_spec(self) -> CommandSpec:
        return CommandSpec(argv=self.command, name=self.name, cwd=self.cwd, env=dict(self.env))


class StageConfig(StrictModel):
    name: str
    needs: tuple[str, ...] = ()
    gate_scope: GateScopeName = "run"
    matrix: StageMatrixConfig | None = None
    steps: tuple[StepConfig, ...]

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("stage name must be non-empty")
        return cleaned

    @field_validator("needs", mode="before")
    @classmethod
    def _coerce_needs(cls, value: object) -> tuple[str, ...]:
        return _coerce_labels(value, what="stage needs")

    @field_validator("steps", mode="before")
    @classmethod
    def _coerce_steps(cls, value: object) -> object:
        if isinstance(value, list):
            return tuple(value)
        return value

    @field_validator("steps")
    @classmethod
    def _steps_non_empty(cls, value: tuple[StepConfig, ...]) -> tuple[StepConfig, ...]:
        if not value:
            raise ValueError("stage must define at least one step")
        return value

    def axes(self, matrix: MatrixConfig) -> tuple[tuple[str, ...], tuple[str, ...]]:
        override = self.matrix or StageMatrixConfig()
        oses = override.os if override.os is not None else matrix.os
        toolchains = override.toolchain if override.toolchain is not None else matrix.toolchain
        return oses, toolchains


class GitHubReleaseConfig(StrictModel):
    repository: str | None = None
    token_env: str = "GITHUB_TOKEN"
    api_url: str = "https://api.github.com"
    timeout: int = Field(default=60, ge=1)


class DirectoryReleaseConfig(StrictModel):
    path: Path

    @field_validator("path", mode="before")
    @classmethod
    def _coerce_path(cls, value: object) -> Path | None:
        return _coerce_optional_path(value, what="release.directory.path")


class ReleaseConfig(StrictModel):
    enabled: bool = True
    after: str = "build_and_test"
    tag: str = "latest"
    remote: str = "origin"
    name: str = "latest"
    files: tuple[Path, ...] = ()
    when: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_RELEASE_WHEN))
    steps: tuple[StepConfig, ...] = ()
    github: GitHubReleaseConfig | None = None
    directory: DirectoryReleaseConfig | None = None

    @field_validator("files", mode="before")
    @classmethod
    def _coerce_files(cls, value: object) -> object:
        if isinstance(value, (list, tuple)):
            return tuple(
                _coerce_optional_path(item, what="release.files entry") for item in value
            )
        return value

    @field_validator("steps", mode="before")
    @classmethod
    def _coerce_steps(cls, value: object) -> object:
        if isinstance(value, list):
            return tuple(value)
        return value

    @field_validator("tag", "name", "remote", "after")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("release names must be non-empty")
        return cleaned

    @model_validator(mode="after")
    def _validate_release(self) -> "ReleaseConfig":
        try:
            ReleasePolicy.from_mapping(self.when)
        except ConfigValidationError as exc:
            raise ValueError(str(exc)) from exc
        if self.github is not None and self.directory is not None:
            raise ValueError("release must use either [release.github] or [release.directory]")
        if self.enabled and self.files and self.github is None and self.directory is None:
            raise ValueError("release files need a [release.github] or [release.directory] store")
        return self

    def policy(self) -> ReleasePolicy:
        return ReleasePolicy.from_mapping(self.when)


class RuntimeConfig(StrictModel):
    max_workers: int = Field(default=4, ge=1)
    dry_run: bool = False
    workdir: Path | None = None

    @field_validator("workdir", mode="before")
    @classmethod
    def _coerce_workdir(cls, value: object) -> Path | None:
        return _coerce_optional_path(value, what="runtime.workdir")


def _stage_waves(stages: tuple[StageConfig, ...]) -> tuple[tuple[StageConfig, ...], ...]:
    by_name = {stage.name: stage for stage in stages}
    remaining = dict(by_name)
    done: set[str] = set()
    waves: list[tuple[StageConfig, ...]] = []
    while remaining:
        ready = tuple(
            stage for stage in remaining.values() if all(need in done for need in stage.needs)
        )
        if not ready:
            raise ValueError(
                "stage dependencies form a cycle: " + ", ".join(sorted(remaining))
            )
        waves.append(ready)
        for stage in ready:
            done.add(stage.name)
            del remaining[stage.name]
    return tuple(waves)


class PipelineSpec(StrictModel):
    matrix: MatrixConfig
    stages: tuple[StageConfig, ...]
    release: ReleaseConfig | None = None
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)

    @field_validator("stages", mode="before")
    @classmethod
    def _coerce_stages(cls, value: object) -> object:
        if isinstance(value, list):
            return tuple(value)
        return value

    @model_validator(mode="after")
    def _validate_graph(self) -> "PipelineSpec":
        if not self.stages:
            raise ValueError("pipeline must define at least one stage")
        names: set[str] = set()
        for stage in self.stages:
            if stage.name in names:
                raise ValueError(f"duplicate stage name '{stage.name}'")
            names.add(stage.name)
        for stage in self.stages:
            for need in stage.needs:
                if need not in names:
                    raise ValueError(f"stage '{stage.name}' needs unknown stage '{need}'")
                if need == stage.name:
                    raise ValueError(f"stage '{stage.name}' cannot need itself")
        _stage_waves(self.stages)
        if self.release is not None and self.release.enabled and self.release.after not in names:
            raise ValueError(f"release.after names unknown stage '{self.release.after}'")
        return self

    def stage(self, name: str) -> StageConfig:
        for stage in self.stages:
            if stage.name == name:
                return stage
        raise KeyError(name)

    def stage_waves(self) -> tuple[tuple[StageConfig, ...], ...]:
        return _stage_waves(self.stages)
