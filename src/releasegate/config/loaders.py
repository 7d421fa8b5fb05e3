from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from releasegate.config.models import PipelineSpec, StepConfig
from releasegate.domain import JobInstance
from releasegate.errors import ConfigValidationError, StageExecutionError
from releasegate.matrix import expand_matrix


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigValidationError(f"cannot read config file '{path}': {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigValidationError(f"invalid TOML in '{path}': {exc}") from exc


def parse_pipeline_config(
    raw: dict[str, Any],
    *,
    base_dir: Path,
    source: str = "<memory>",
) -> PipelineSpec:
    try:
        config = PipelineSpec.model_validate(raw)
    except Exception as exc:  # pydantic ValidationError
        raise ConfigValidationError(f"invalid pipeline config '{source}': {exc}") from exc
    for stage in config.stages:
        oses, toolchains = stage.axes(config.matrix)
        try:
            jobs = expand_matrix(oses, toolchains)
        except ConfigValidationError as exc:
            raise ConfigValidationError(f"stage '{stage.name}': {exc}") from exc
        steps = stage.steps
        if config.release is not None and config.release.after == stage.name:
            steps = steps + config.release.steps
        _check_placeholders(stage.name, steps, jobs)
    return _resolve_pipeline_paths(config, base_dir)


def _check_placeholders(
    stage_name: str, steps: tuple[StepConfig, ...], jobs: tuple[JobInstance, ...]
) -> None:
    for step in steps:
        for job in jobs:
            try:
                step.command_spec().render(job)
            except StageExecutionError as exc:
                raise ConfigValidationError(f"stage '{stage_name}': {exc}") from exc


def load_pipeline_config(path: str | Path) -> PipelineSpec:
    config_path = Path(path).expanduser().resolve()
    raw = _read_toml(config_path)
    return parse_pipeline_config(raw, base_dir=config_path.parent, source=str(config_path))


def _absolute(path: Path, base_dir: Path) -> Path:
    expanded = path.expanduser()
    if expanded.is_absolute():
        return expanded
    return (base_dir / expanded).resolve()


def _resolve_pipeline_paths(config: PipelineSpec, base_dir: Path) -> PipelineSpec:
    workdir = _absolute(config.runtime.workdir or Path("."), base_dir)
    runtime = config.runtime.model_copy(update={"workdir": workdir})

    stages = tuple(
        stage.model_copy(
            update={
                "steps": tuple(
                    step.model_copy(update={"cwd": _absolute(step.cwd, workdir)})
                    if step.cwd is not None
                    else step
                    for step in stage.steps
                )
            }
        )
        for stage in config.stages
    )

    release = config.release
    if release is not None:
        update: dict[str, Any] = {
            "files": tuple(_absolute(item, workdir) for item in release.files),
        }
        if release.directory is not None:
            update["directory"] = release.directory.model_copy(
                update={"path": _absolute(release.directory.path, base_dir)}
            )
        release = release.model_copy(update=update)

    return config.model_copy(update={"runtime": runtime, "stages": stages, "release": release})
