from __future__ import annotations

DEFAULT_PIPELINE_TOML = """\
# Rust CI for ctftimebot: rustfmt and clippy gate build and test; master on
# stable/ubuntu-latest moves the rolling "latest" tag and publishes the binary.

[matrix]
os = ["ubuntu-latest"]
toolchain = ["stable", "nightly"]

[[stages]]
name = "clippy_check"

[[stages.steps]]
name = "clippy \\"All Features\\" ({os} / {toolchain})"
command = ["cargo", "clippy", "--all-features", "--", "-D", "warnings"]

[[stages]]
name = "rustfmt"
matrix = { os = ["ubuntu-latest"], toolchain = ["stable"] }

[[stages.steps]]
name = "Rustfmt Check ({toolchain})"
command = ["cargo", "fmt", "--all", "--", "--check"]

[[stages]]
name = "build_and_test"
needs = ["rustfmt", "clippy_check"]

[[stages.steps]]
name = "Build ({os} / {toolchain})"
command = ["cargo", "build", "--all-features"]

[[stages.steps]]
name = "Test \\"All Features\\" ({os} / {toolchain})"
command = ["cargo", "test", "--all-features"]

[release]
after = "build_and_test"
tag = "latest"
remote = "origin"
name = "latest"
files = ["target/release/ctftimebot"]

[release.when]
branch = "master"
toolchain = "stable"
os = "ubuntu-latest"

[[release.steps]]
name = "Build ({os} / {toolchain})"
command = ["cargo", "build", "--release", "--all-features"]

[release.github]
token_env = "GITHUB_TOKEN"

[runtime]
max_workers = 4
"""
