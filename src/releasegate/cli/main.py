from __future__ import annotations

import logging
import sys

from releasegate.cli.handlers import (
    handle_config_validate,
    handle_init,
    handle_matrix,
    handle_run,
    handle_should_release,
)
from releasegate.cli.parser import build_parser
from releasegate.errors import (
    ConfigValidationError,
    ReleaseError,
    ReleaseGateError,
    RuntimeInitializationError,
    StageExecutionError,
)

_EXIT_GENERIC = 1
_EXIT_CONFIG = 2
_EXIT_STAGE = 4
_EXIT_RELEASE = 5


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    try:
        if args.command == "run":
            return handle_run(args)
        if args.command == "config" and args.config_command == "validate":
            return handle_config_validate(args)
        if args.command == "matrix":
            return handle_matrix(args)
        if args.command == "should-release":
            return handle_should_release(args)
        if args.command == "init":
            return handle_init(args)
    except (ConfigValidationError, RuntimeInitializationError) as exc:
        print(str(exc), file=sys.stderr)
        return _EXIT_CONFIG
    except StageExecutionError as exc:
        print(str(exc), file=sys.stderr)
        return _EXIT_STAGE
    except ReleaseError as exc:
        print(str(exc), file=sys.stderr)
        return _EXIT_RELEASE
    except ReleaseGateError as exc:
        print(str(exc), file=sys.stderr)
        return _EXIT_GENERIC

    parser.error("unhandled command")
    return _EXIT_GENERIC


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
