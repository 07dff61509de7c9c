"""Logging configuration for command line entry points."""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

FILE_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: str = "INFO", log_file: str | Path | None = None) -> None:
    """Send log records to stderr through rich, and optionally to a file.

    Safe to call more than once; handlers are only installed once.

    Args:
        level: Root log level name
        log_file: Also write DEBUG and above to this file
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if log_file else level)

    if not any(isinstance(h, RichHandler) for h in root.handlers):
        console_handler = RichHandler(
            console=Console(stderr=True), show_path=False, rich_tracebacks=True
        )
        console_handler.setLevel(level)
        root.addHandler(console_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        if not any(
            isinstance(h, logging.FileHandler)
            and getattr(h, "baseFilename", "") == str(log_path.resolve())
            for h in root.handlers
        ):
            fh = logging.FileHandler(log_path)
            fh.setLevel(logging.DEBUG)
            fh.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
            root.addHandler(fh)

    # PyGithub and httpx are chatty at DEBUG.
    for noisy in ("github", "httpx", "httpcore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
