from __future__ import annotations

import argparse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="releasegate")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run_parser = sub.add_parser("run", help="Run the pipeline for a push event")
    run_parser.add_argument("--pipeline-config", required=True)
    run_parser.add_argument("--branch", default=None, help="Pushed branch or ref")
    run_parser.add_argument("--commit", default=None, help="Pushed commit sha")
    run_parser.add_argument(
        "--dry-run",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Evaluate the release policy without tagging or publishing; "
        "overrides runtime.dry_run from the pipeline config",
    )

    config_parser = sub.add_parser("config", help="Pipeline config operations")
    config_sub = config_parser.add_subparsers(dest="config_command", required=True)
    config_validate = config_sub.add_parser("validate", help="Validate pipeline config")
    config_validate.add_argument("--pipeline", required=True)

    matrix_parser = sub.add_parser("matrix", help="Print the job instances of each stage")
    matrix_parser.add_argument("--pipeline", required=True)

    release_parser = sub.add_parser(
        "should-release",
        help="Evaluate the release policy for one branch/toolchain/os",
    )
    release_parser.add_argument("--branch", required=True)
    release_parser.add_argument("--toolchain", required=True)
    release_parser.add_argument("--os", dest="os_label", required=True)
    release_parser.add_argument("--pipeline", default=None)

    init_parser = sub.add_parser("init", help="Write the default ctftimebot pipeline config")
    init_parser.add_argument("--output", default="releasegate.toml")
    init_parser.add_argument("--force", action="store_true")

    return parser
