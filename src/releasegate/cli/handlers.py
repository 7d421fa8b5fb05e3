from __future__ import annotations

import argparse
import json
import os
from pathlib import Path

from releasegate.config import DEFAULT_PIPELINE_TOML, load_pipeline_config
from releasegate.diagnostics import RunDiagnostics
from releasegate.domain import PipelineRun, PushEvent
from releasegate.errors import ConfigValidationError
from releasegate.matrix import expand_matrix
from releasegate.release.predicate import DEFAULT_POLICY, should_release
from releasegate.runtime import ReleaseGateRuntime
from releasegate.stages import SubprocessExecutor

_EXIT_OK = 0
_EXIT_GENERIC = 1


def resolve_push_event(
    branch: str | None,
    commit: str | None,
    *,
    workdir: Path | None = None,
) -> PushEvent:
    if branch and commit:
        return PushEvent(branch=branch, commit_sha=commit)
    try:
        from_env = PushEvent.from_env()
    except ConfigValidationError:
        from_env = None
    resolved_branch = branch or (from_env.branch if from_env else None)
    resolved_commit = commit or (from_env.commit_sha if from_env else None)
    if resolved_commit is None:
        resolved_commit = _git_head(workdir)
    if not resolved_branch:
        raise ConfigValidationError("push branch is required (--branch or GITHUB_REF)")
    return PushEvent(branch=resolved_branch, commit_sha=resolved_commit)


def _git_head(workdir: Path | None) -> str:
    executor = SubprocessExecutor(prefix="git: ")
    completed = executor(("git", "rev-parse", "HEAD"), cwd=workdir, env=dict(os.environ))
    sha = completed.output.strip()
    if completed.returncode != 0 or not sha:
        raise ConfigValidationError(
            "push commit is required (--commit, GITHUB_SHA, or a git checkout)"
        )
    return sha


def handle_run(args: argparse.Namespace) -> int:
    runtime = ReleaseGateRuntime.from_configs(args.pipeline_config)
    event = resolve_push_event(
        args.branch, args.commit, workdir=runtime.pipeline_spec.runtime.workdir
    )
    dry_run = runtime.pipeline_spec.runtime.dry_run if args.dry_run is None else args.dry_run
    result: PipelineRun = runtime.run(event, dry_run=dry_run)
    diagnostics = RunDiagnostics.from_run(
        result,
        dry_run=dry_run,
        pipeline_config_path=str(runtime.pipeline_config_path),
    )
    print(json.dumps(diagnostics.to_dict(), indent=2, sort_keys=True))
    return _EXIT_OK if result.succeeded else _EXIT_GENERIC


def handle_config_validate(args: argparse.Namespace) -> int:
    cfg = load_pipeline_config(args.pipeline)
    print(json.dumps(cfg.model_dump(mode="json"), indent=2, sort_keys=True))
    return _EXIT_OK


def handle_matrix(args: argparse.Namespace) -> int:
    cfg = load_pipeline_config(args.pipeline)
    payload = {
        stage.name: [job.to_dict() for job in expand_matrix(*stage.axes(cfg.matrix))]
        for stage in cfg.stages
    }
    print(json.dumps(payload, indent=2, sort_keys=True))
    return _EXIT_OK


def handle_should_release(args: argparse.Namespace) -> int:
    policy = DEFAULT_POLICY
    if args.pipeline is not None:
        cfg = load_pipeline_config(args.pipeline)
        if cfg.release is not None:
            policy = cfg.release.policy()
    (job,) = expand_matrix([args.os_label], [args.toolchain])
    run = PipelineRun(trigger_branch=args.branch, commit_sha="-")
    decision = should_release(run, job, policy)
    print(
        json.dumps(
            {
                "branch": args.branch,
                "toolchain": args.toolchain,
                "os": args.os_label,
                "policy": policy.describe(),
                "release": decision,
            },
            indent=2,
            sort_keys=True,
        )
    )
    return _EXIT_OK if decision else _EXIT_GENERIC


def handle_init(args: argparse.Namespace) -> int:
    target = Path(args.output).expanduser().resolve()
    if target.exists() and not args.force:
        raise ConfigValidationError(f"target config path already exists: '{target}'")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(DEFAULT_PIPELINE_TOML, encoding="utf-8")
    print(json.dumps({"pipeline_config": str(target)}, indent=2, sort_keys=True))
    return _EXIT_OK
