from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Protocol

from releasegate.domain import TagPointer
from releasegate.errors import RemoteUpdateError, TagError
from releasegate.stages import CommandCompletion, CommandExecutor, SubprocessExecutor

LOGGER = logging.getLogger(__name__)


class TagService(Protocol):
    remote: str

    def resolve(self, name: str) -> str | None: ...

    def force_set_tag(self, name: str, commit_sha: str) -> None: ...

    def push_tag(self, name: str, *, force: bool = True) -> None: ...


class GitTagService:
    """Tag operations backed by the ``git`` command line."""

    def __init__(
        self,
        executor: CommandExecutor | None = None,
        *,
        cwd: Path | None = None,
        remote: str = "origin",
    ) -> None:
        self.executor = executor if executor is not None else SubprocessExecutor(prefix="git: ")
        self.cwd = cwd
        self.remote = remote

    def _git(self, *args: str) -> CommandCompletion:
        return self.executor(("git", *args), cwd=self.cwd, env=_git_env())

    def resolve(self, name: str) -> str | None:
        completed = self._git("rev-parse", "-q", "--verify", f"refs/tags/{name}^{{commit}}")
        if completed.returncode != 0:
            return None
        sha = completed.output.strip()
        return sha or None

    def force_set_tag(self, name: str, commit_sha: str) -> None:
        completed = self._git("tag", "--force", name, commit_sha)
        if completed.returncode != 0:
            raise TagError(name, _last_line(completed.output, completed.returncode))

    def push_tag(self, name: str, *, force: bool = True) -> None:
        args = ["push"]
        if force:
            args.append("--force")
        args.extend([self.remote, f"refs/tags/{name}"])
        completed = self._git(*args)
        if completed.returncode != 0:
            raise RemoteUpdateError(
                name, _last_line(completed.output, completed.returncode), remote=self.remote
            )


def _git_env() -> dict[str, str]:
    env = dict(os.environ)
    env.setdefault("GIT_TERMINAL_PROMPT", "0")
    return env


def _last_line(output: str, returncode: int) -> str:
    lines = [line for line in output.strip().splitlines() if line.strip()]
    if lines:
        return lines[-1]
    return f"git exited with {returncode}"


class TagManager:
    """Force-moves rolling tags, at most once per tag name within one run.

    The tag is last-writer-wins: concurrent runs racing on the same name leave
    it at whichever push lands last.
    """

    def __init__(self, service: TagService) -> None:
        self.service = service
        self._lock = threading.Lock()
        self._attempted: dict[str, str] = {}
        self._moved: dict[str, str] = {}

    def move_tag(self, name: str, commit_sha: str) -> TagPointer:
        if not name.strip():
            raise TagError(name, "tag name must be non-empty")
        if not commit_sha.strip():
            raise TagError(name, "commit sha must be non-empty")

        with self._lock:
            previous = self._attempted.get(name)
            if previous is not None:
                if previous == commit_sha and self._moved.get(name) == commit_sha:
                    return TagPointer(name=name, target_commit=commit_sha)
                raise TagError(name, f"already attempted in this run (commit {previous})")
            self._attempted[name] = commit_sha

            current = self.service.resolve(name)
            if current == commit_sha:
                LOGGER.info("tag %s already at %s locally", name, commit_sha)
            else:
                self.service.force_set_tag(name, commit_sha)
                LOGGER.info("tag %s moved %s -> %s", name, current or "<none>", commit_sha)

            try:
                self.service.push_tag(name, force=True)
            except RemoteUpdateError as exc:
                LOGGER.warning("%s", exc)
                raise
            self._moved[name] = commit_sha
            LOGGER.info("tag %s pushed to %s", name, self.service.remote)
        return TagPointer(name=name, target_commit=commit_sha)

    def moved_to(self, name: str) -> str | None:
        """Commit the tag was successfully moved and pushed to in this run."""
        with self._lock:
            return self._moved.get(name)
