from __future__ import annotations

import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from releasegate.config import PipelineSpec, ReleaseConfig, StageConfig, load_pipeline_config
from releasegate.domain import (
    JobInstance,
    Outcome,
    PipelineRun,
    PushEvent,
    ReleaseOutcome,
    StageResult,
)
from releasegate.errors import (
    PublishError,
    ReleaseError,
    ReleaseGateError,
    RuntimeInitializationError,
)
from releasegate.gate import blocking_reasons, gate_detail
from releasegate.matrix import expand_matrix
from releasegate.release.predicate import should_release
from releasegate.release.publisher import (
    DirectoryReleaseStore,
    GitHubReleaseStore,
    ReleasePublisher,
    ReleaseStore,
)
from releasegate.release.tags import GitTagService, TagManager, TagService
from releasegate.stages import CommandExecutor, CommandSpec, StageRunner

LOGGER = logging.getLogger(__name__)

RELEASE_BUILD_STAGE = "release-build"


@dataclass(frozen=True, slots=True)
class ReleaseGateRuntime:
    pipeline_spec: PipelineSpec
    pipeline_config_path: Path | None = None
    executor: CommandExecutor | None = None
    tag_service: TagService | None = None
    release_store: ReleaseStore | None = None

    @classmethod
    def from_configs(
        cls,
        pipeline_config_path: str | Path,
        *,
        executor: CommandExecutor | None = None,
        tag_service: TagService | None = None,
        release_store: ReleaseStore | None = None,
    ) -> "ReleaseGateRuntime":
        pipeline_path = Path(pipeline_config_path).expanduser().resolve()
        try:
            pipeline_spec = load_pipeline_config(pipeline_path)
        except ReleaseGateError:
            raise
        except Exception as exc:
            raise RuntimeInitializationError(pipeline_path, str(exc)) from exc
        return cls(
            pipeline_spec=pipeline_spec,
            pipeline_config_path=pipeline_path,
            executor=executor,
            tag_service=tag_service,
            release_store=release_store,
        )

    def job_instances(self) -> dict[str, tuple[JobInstance, ...]]:
        spec = self.pipeline_spec
        return {stage.name: expand_matrix(*stage.axes(spec.matrix)) for stage in spec.stages}

    def run(self, event: PushEvent, *, dry_run: bool | None = None) -> PipelineRun:
        spec = self.pipeline_spec
        dry = spec.runtime.dry_run if dry_run is None else dry_run
        instances = self.job_instances()
        run = PipelineRun.from_event(event)
        runner = StageRunner(self.executor, workdir=spec.runtime.workdir)
        LOGGER.info(
            "pipeline run started for %s at %s (%d stages)",
            event.branch,
            event.commit_sha,
            len(spec.stages),
        )

        with ThreadPoolExecutor(max_workers=spec.runtime.max_workers) as pool:
            for wave in spec.stage_waves():
                finished = tuple(run.stage_results)
                futures: list[Future[StageResult]] = []
                for stage in wave:
                    commands = tuple(step.command_spec() for step in stage.steps)
                    for job in instances[stage.name]:
                        futures.append(
                            pool.submit(self._run_cell, runner, stage, job, commands, finished)
                        )
                for future in futures:
                    run.record(future.result())

        release = spec.release
        if release is not None and release.enabled:
            self._release_phase(run, runner, release, instances[release.after], dry)

        LOGGER.info(
            "pipeline run finished for %s at %s: %s",
            event.branch,
            event.commit_sha,
            "success" if run.succeeded else "failure",
        )
        return run

    def _run_cell(
        self,
        runner: StageRunner,
        stage: StageConfig,
        job: JobInstance,
        commands: tuple[CommandSpec, ...],
        finished: tuple[StageResult, ...],
    ) -> StageResult:
        if stage.needs:
            reasons = blocking_reasons(finished, stage.needs, job, scope=stage.gate_scope)
            if reasons:
                return runner.skip(stage.name, job, gate_detail(reasons))
        return runner.run(stage.name, job, commands)

    def _release_phase(
        self,
        run: PipelineRun,
        runner: StageRunner,
        release: ReleaseConfig,
        jobs: tuple[JobInstance, ...],
        dry_run: bool,
    ) -> None:
        policy = release.policy()
        tag_manager: TagManager | None = None
        for job in jobs:
            built = run.latest(release.after, job)
            if built is None or built.outcome is not Outcome.SUCCESS:
                continue
            if not should_release(run, job, policy):
                LOGGER.info("release skipped for %s: %s not met", job.label, policy.describe())
                run.record_release(
                    ReleaseOutcome(
                        job_instance=job, released=False, detail="release policy not met"
                    )
                )
                continue
            if dry_run:
                LOGGER.info("release for %s qualifies; dry run, nothing published", job.label)
                run.record_release(
                    ReleaseOutcome(
                        job_instance=job,
                        released=False,
                        tag=release.tag,
                        release_name=release.name,
                        detail="dry run",
                    )
                )
                continue

            if release.steps:
                commands = tuple(step.command_spec() for step in release.steps)
                built = run.record(runner.run(RELEASE_BUILD_STAGE, job, commands))
                if built.outcome is not Outcome.SUCCESS:
                    run.record_release(
                        ReleaseOutcome(
                            job_instance=job,
                            released=False,
                            release_name=release.name,
                            detail=f"{RELEASE_BUILD_STAGE} failed",
                        )
                    )
                    continue

            if tag_manager is None:
                tag_manager = TagManager(self._tag_service(release))
            try:
                tag_manager.move_tag(release.tag, run.commit_sha)
                artifacts: list[str] = []
                if release.files:
                    publisher = ReleasePublisher(
                        self._release_store(release),
                        tag_manager=tag_manager,
                        tag_name=release.tag,
                        commit_sha=run.commit_sha,
                    )
                    for file_path in release.files:
                        artifact = publisher.publish(release.name, file_path)
                        artifacts.append(str(artifact.file_path))
            except ReleaseError as exc:
                LOGGER.warning("release for %s failed: %s", job.label, exc)
                run.record_release(
                    ReleaseOutcome(
                        job_instance=job,
                        released=False,
                        tag=release.tag,
                        release_name=release.name,
                        error_type=exc.__class__.__name__,
                        detail=str(exc),
                    )
                )
                continue
            run.record_release(
                ReleaseOutcome(
                    job_instance=job,
                    released=True,
                    tag=release.tag,
                    release_name=release.name,
                    artifacts=tuple(artifacts),
                )
            )

    def _tag_service(self, release: ReleaseConfig) -> TagService:
        if self.tag_service is not None:
            return self.tag_service
        return GitTagService(
            self.executor, cwd=self.pipeline_spec.runtime.workdir, remote=release.remote
        )

    def _release_store(self, release: ReleaseConfig) -> ReleaseStore:
        if self.release_store is not None:
            return self.release_store
        if release.directory is not None:
            return DirectoryReleaseStore(release.directory.path)
        if release.github is not None:
            repository = release.github.repository or os.environ.get("GITHUB_REPOSITORY")
            if not repository:
                raise PublishError(
                    release.name, "no repository configured and GITHUB_REPOSITORY is unset"
                )
            return GitHubReleaseStore(
                repository,
                os.environ.get(release.github.token_env),
                tag_name=release.tag,
                api_url=release.github.api_url,
                timeout=release.github.timeout,
            )
        raise PublishError(release.name, "no release store configured")
