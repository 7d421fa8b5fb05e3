from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

from releasegate.domain import JobInstance, Outcome
from releasegate.errors import StageExecutionError
from releasegate.stages import (
    EXIT_COMMAND_NOT_FOUND,
    CommandSpec,
    StageRunner,
    SubprocessExecutor,
    job_environment,
)
from tests.helpers import ScriptedExecutor

NIGHTLY = JobInstance("ubuntu-latest", "nightly")


def test_command_spec_renders_placeholders() -> None:
    spec = CommandSpec(
        argv=("cargo", "+{toolchain}", "build"),
        name="Build ({os} / {toolchain})",
        env={"TARGET_OS": "{os}"},
    )
    rendered = spec.render(NIGHTLY)
    assert rendered.argv == ("cargo", "+nightly", "build")
    assert rendered.name == "Build (ubuntu-latest / nightly)"
    assert rendered.env == {"TARGET_OS": "ubuntu-latest"}


def test_command_spec_rejects_unknown_placeholder() -> None:
    spec = CommandSpec(argv=("cargo", "{arch}"))
    with pytest.raises(StageExecutionError, match="placeholder"):
        spec.render(NIGHTLY)


def test_command_spec_rejects_empty_argv() -> None:
    with pytest.raises(StageExecutionError):
        CommandSpec(argv=())


def test_job_environment_selects_toolchain() -> None:
    env = job_environment(NIGHTLY, {"RUSTFLAGS": "-D warnings"})
    assert env["RELEASEGATE_OS"] == "ubuntu-latest"
    assert env["RELEASEGATE_TOOLCHAIN"] == "nightly"
    assert env["RUSTUP_TOOLCHAIN"] == "nightly"
    assert env["RUSTFLAGS"] == "-D warnings"


def test_job_environment_allows_toolchain_override() -> None:
    env = job_environment(NIGHTLY, {"RUSTUP_TOOLCHAIN": "nightly-2024-01-01"})
    assert env["RUSTUP_TOOLCHAIN"] == "nightly-2024-01-01"


def test_stage_runner_success_runs_all_steps(tmp_path: Path) -> None:
    executor = ScriptedExecutor()
    runner = StageRunner(executor, workdir=tmp_path)
    result = runner.run(
        "build_and_test",
        NIGHTLY,
        [CommandSpec(argv=("cargo", "build")), CommandSpec(argv=("cargo", "test"))],
    )
    assert result.outcome is Outcome.SUCCESS
    assert result.exit_code == 0
    assert executor.subcommands() == ["build", "test"]
    assert all(cwd == tmp_path for _, cwd, _ in executor.calls)
    assert "cargo build ok" in result.output


def test_stage_runner_stops_at_first_failing_step() -> None:
    executor = ScriptedExecutor(failures={("build", "nightly"): 101})
    runner = StageRunner(executor)
    result = runner.run(
        "build_and_test",
        NIGHTLY,
        [
            CommandSpec(argv=("cargo", "build"), name="Build"),
            CommandSpec(argv=("cargo", "test"), name="Test"),
        ],
    )
    assert result.outcome is Outcome.FAILURE
    assert result.exit_code == 101
    assert result.step == "Build"
    assert executor.subcommands() == ["build"]


def test_stage_runner_step_cwd_overrides_workdir(tmp_path: Path) -> None:
    executor = ScriptedExecutor()
    runner = StageRunner(executor, workdir=tmp_path)
    runner.run("rustfmt", NIGHTLY, CommandSpec(argv=("cargo", "fmt"), cwd=tmp_path / "crate"))
    assert executor.calls[0][1] == tmp_path / "crate"


def test_stage_runner_requires_commands() -> None:
    with pytest.raises(StageExecutionError):
        StageRunner(ScriptedExecutor()).run("rustfmt", NIGHTLY, [])


def test_stage_runner_skip_records_reason() -> None:
    result = StageRunner(ScriptedExecutor()).skip("build_and_test", NIGHTLY, "gated: x")
    assert result.outcome is Outcome.SKIPPED
    assert result.gated


def test_subprocess_executor_reports_exit_status_and_logs_output(caplog) -> None:
    executor = SubprocessExecutor(prefix="job: ")
    with caplog.at_level(logging.INFO, logger="releasegate.stages.output"):
        completed = executor(
            [sys.executable, "-c", "import sys; print('hello'); sys.exit(3)"],
            cwd=None,
            env=job_environment(NIGHTLY),
        )
    assert completed.returncode == 3
    assert "hello" in completed.output
    assert any("job: hello" in record.getMessage() for record in caplog.records)


def test_subprocess_executor_missing_binary_is_failure() -> None:
    completed = SubprocessExecutor()(
        ["releasegate-definitely-not-installed"], cwd=None, env=job_environment(NIGHTLY)
    )
    assert completed.returncode == EXIT_COMMAND_NOT_FOUND


def test_stage_runner_with_real_processes() -> None:
    runner = StageRunner(SubprocessExecutor())
    ok = runner.run(
        "lint",
        NIGHTLY,
        CommandSpec(
            argv=(
                sys.executable,
                "-c",
                "import os, sys; sys.exit(0 if os.environ['RUSTUP_TOOLCHAIN'] == '{toolchain}' else 1)",
            )
        ),
    )
    assert ok.outcome is Outcome.SUCCESS
    failed = runner.run("lint", NIGHTLY, CommandSpec(argv=(sys.executable, "-c", "raise SystemExit(2)")))
    assert failed.outcome is Outcome.FAILURE
    assert failed.exit_code == 2
