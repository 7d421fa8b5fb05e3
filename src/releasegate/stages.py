from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from releasegate.domain import JobInstance, Outcome, StageResult
from releasegate.errors import StageExecutionError

LOGGER = logging.getLogger(__name__)
OUTPUT_LOGGER = logging.getLogger("releasegate.stages.output")

EXIT_COMMAND_NOT_FOUND = 127


@dataclass(frozen=True, slots=True)
class CommandCompletion:
    returncode: int
    output: str = ""


class CommandExecutor(Protocol):
    def __call__(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None,
        env: Mapping[str, str],
    ) -> CommandCompletion: ...


@dataclass(frozen=True, slots=True)
class CommandSpec:
    argv: tuple[str, ...]
    name: str | None = None
    cwd: Path | None = None
    env: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.argv:
            raise StageExecutionError(self.name or "<unnamed>", "command must not be empty")

    def render(self, job: JobInstance) -> "CommandSpec":
        """Substitute ``{os}`` and ``{toolchain}`` placeholders for ``job``."""
        values = {"os": job.os, "toolchain": job.toolchain}
        try:
            argv = tuple(arg.format(**values) for arg in self.argv)
            env = {key: value.format(**values) for key, value in self.env.items()}
            name = self.name.format(**values) if self.name is not None else None
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
            raise StageExecutionError(
                self.name or self.argv[0], f"invalid placeholder in command: {exc}"
            ) from exc
        return CommandSpec(argv=argv, name=name, cwd=self.cwd, env=env)

    @property
    def display_name(self) -> str:
        return self.name or " ".join(self.argv)


def job_environment(job: JobInstance, extra: Mapping[str, str] | None = None) -> dict[str, str]:
    env = dict(os.environ)
    env["RELEASEGATE_OS"] = job.os
    env["RELEASEGATE_TOOLCHAIN"] = job.toolchain
    env["RUSTUP_TOOLCHAIN"] = job.toolchain
    if extra:
        env.update(extra)
    return env


class SubprocessExecutor:
    """Run commands with ``subprocess`` and forward their output to logging."""

    def __init__(self, *, prefix: str = "") -> None:
        self.prefix = prefix

    def __call__(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None,
        env: Mapping[str, str],
    ) -> CommandCompletion:
        try:
            completed = subprocess.run(
                list(argv),
                cwd=str(cwd) if cwd is not None else None,
                env=dict(env),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except OSError as exc:
            OUTPUT_LOGGER.error("%s%s: %s", self.prefix, argv[0], exc)
            return CommandCompletion(returncode=EXIT_COMMAND_NOT_FOUND, output=str(exc))
        output = completed.stdout or ""
        for line in output.splitlines():
            OUTPUT_LOGGER.info("%s%s", self.prefix, line)
        return CommandCompletion(returncode=completed.returncode, output=output)


class StageRunner:
    def __init__(
        self,
        executor: CommandExecutor | None = None,
        *,
        workdir: Path | None = None,
    ) -> None:
        self.executor = executor if executor is not None else SubprocessExecutor()
        self.workdir = workdir

    def run(
        self,
        stage_name: str,
        job_instance: JobInstance,
        command_spec: CommandSpec | Sequence[CommandSpec],
    ) -> StageResult:
        """Run the stage's command(s) for one job instance.

        Commands run in order and the first non-zero exit ends the stage with
        ``Outcome.FAILURE``. Nothing is raised for a failing process; only a
        malformed command raises ``StageExecutionError``.
        """
        commands = (command_spec,) if isinstance(command_spec, CommandSpec) else tuple(command_spec)
        if not commands:
            raise StageExecutionError(stage_name, "stage has no commands")

        LOGGER.info("stage %s started (%s)", stage_name, job_instance.label)
        outputs: list[str] = []
        for raw in commands:
            command = raw.render(job_instance)
            cwd = command.cwd or self.workdir
            env = job_environment(job_instance, command.env)
            LOGGER.info(
                "stage %s (%s): running %s", stage_name, job_instance.label, command.display_name
            )
            completion = self.executor(command.argv, cwd=cwd, env=env)
            outputs.append(completion.output)
            if completion.returncode != 0:
                LOGGER.info(
                    "stage %s failed (%s): %s exited with %d",
                    stage_name,
                    job_instance.label,
                    command.display_name,
                    completion.returncode,
                )
                return StageResult(
                    stage_name=stage_name,
                    job_instance=job_instance,
                    outcome=Outcome.FAILURE,
                    detail=f"{command.display_name} exited with {completion.returncode}",
                    exit_code=completion.returncode,
                    step=command.display_name,
                    output="".join(outputs),
                )

        LOGGER.info("stage %s succeeded (%s)", stage_name, job_instance.label)
        return StageResult(
            stage_name=stage_name,
            job_instance=job_instance,
            outcome=Outcome.SUCCESS,
            exit_code=0,
            output="".join(outputs),
        )

    def skip(self, stage_name: str, job_instance: JobInstance, reason: str) -> StageResult:
        LOGGER.info("stage %s skipped (%s): %s", stage_name, job_instance.label, reason)
        return StageResult(
            stage_name=stage_name,
            job_instance=job_instance,
            outcome=Outcome.SKIPPED,
            detail=reason,
        )
