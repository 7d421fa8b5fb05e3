from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path

from releasegate.errors import RemoteUpdateError
from releasegate.stages import CommandCompletion

COMMIT = "3f2a9c1d0e4b5a6978877665544332211ffeedd0"


class ScriptedExecutor:
    """Command executor that fails selected cargo subcommands.

    ``failures`` maps ``(subcommand, toolchain)`` to an exit code; a ``None``
    toolchain matches every cell. Commands carrying ``--release`` write the
    configured artifacts.
    """

    def __init__(
        self,
        failures: Mapping[tuple[str, str | None], int] | None = None,
        artifacts: Iterable[Path] = (),
    ) -> None:
        self.failures = dict(failures or {})
        self.artifacts = tuple(artifacts)
        self.calls: list[tuple[tuple[str, ...], Path | None, str | None]] = []
        self._lock = threading.Lock()

    def __call__(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None,
        env: Mapping[str, str],
    ) -> CommandCompletion:
        command = tuple(argv)
        toolchain = env.get("RELEASEGATE_TOOLCHAIN")
        with self._lock:
            self.calls.append((command, cwd, toolchain))
        key = command[1] if len(command) > 1 else command[0]
        for candidate in ((key, toolchain), (key, None)):
            if candidate in self.failures:
                return CommandCompletion(
                    returncode=self.failures[candidate], output=f"{key} failed\n"
                )
        if "--release" in command:
            for path in self.artifacts:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(b"ctftimebot-" + toolchain.encode() if toolchain else b"bin")
        return CommandCompletion(returncode=0, output=" ".join(command) + " ok\n")

    def subcommands(self, toolchain: str | None = None) -> list[str]:
        return [
            argv[1]
            for argv, _, chain in self.calls
            if len(argv) > 1 and (toolchain is None or chain == toolchain)
        ]


class InMemoryTagService:
    def __init__(self, *, remote: str = "origin", fail_push: bool = False) -> None:
        self.remote = remote
        self.fail_push = fail_push
        self.local: dict[str, str] = {}
        self.remote_tags: dict[str, str] = {}
        self.set_calls = 0
        self.push_calls = 0

    def resolve(self, name: str) -> str | None:
        return self.local.get(name)

    def force_set_tag(self, name: str, commit_sha: str) -> None:
        self.set_calls += 1
        self.local[name] = commit_sha

    def push_tag(self, name: str, *, force: bool = True) -> None:
        self.push_calls += 1
        if self.fail_push:
            raise RemoteUpdateError(name, "authentication failed", remote=self.remote)
        self.remote_tags[name] = self.local[name]


def _toml_list(values: Iterable[str]) -> str:
    return "[" + ", ".join(f'"{value}"' for value in values) + "]"


def write_pipeline(
    tmp_path: Path,
    *,
    oses: Sequence[str] = ("ubuntu-latest",),
    toolchains: Sequence[str] = ("stable", "nightly"),
    gate_scope: str = "run",
    dry_run: bool = False,
    release: bool = True,
    release_steps: bool = True,
) -> Path:
    workdir = tmp_path / "work"
    workdir.mkdir(parents=True, exist_ok=True)
    text = f"""
[matrix]
os = {_toml_list(oses)}
toolchain = {_toml_list(toolchains)}

[[stages]]
name = "rustfmt"

[[stages.steps]]
name = "Rustfmt Check ({{toolchain}})"
command = ["cargo", "fmt", "--all", "--", "--check"]

[[stages]]
name = "clippy_check"

[[stages.steps]]
name = "clippy ({{os}} / {{toolchain}})"
command = ["cargo", "clippy", "--all-features", "--", "-D", "warnings"]

[[stages]]
name = "build_and_test"
needs = ["rustfmt", "clippy_check"]
gate_scope = "{gate_scope}"

[[stages.steps]]
name = "Build"
command = ["cargo", "build", "--all-features"]

[[stages.steps]]
name = "Test"
command = ["cargo", "test", "--all-features"]

[runtime]
max_workers = 3
dry_run = {"true" if dry_run else "false"}
workdir = "work"
"""
    if release:
        text += """
[release]
after = "build_and_test"
tag = "latest"
name = "latest"
files = ["target/release/ctftimebot"]

[release.directory]
path = "releases"
"""
        if release_steps:
            text += """
[[release.steps]]
name = "Release build"
command = ["cargo", "build", "--release", "--all-features"]
"""
    path = tmp_path / "releasegate.toml"
    path.write_text(text, encoding="utf-8")
    return path


def artifact_path(tmp_path: Path) -> Path:
    return tmp_path / "work" / "target" / "release" / "ctftimebot"
