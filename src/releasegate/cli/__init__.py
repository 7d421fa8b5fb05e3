from releasegate.cli.main import main

__all__ = ["main"]
