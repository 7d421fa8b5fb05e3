from __future__ import annotations

import json
import logging

from releasegate import PushEvent, ReleaseGateRuntime
from releasegate.diagnostics import RunDiagnostics


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    runtime = ReleaseGateRuntime.from_configs("examples/ctftimebot.toml")
    result = runtime.run(PushEvent(branch="refs/heads/master", commit_sha="HEAD"))
    print(json.dumps(RunDiagnostics.from_run(result, dry_run=True).to_dict(), indent=2))


if __name__ == "__main__":
    main()
