"""Process logging configuration for the command line entry point."""

from __future__ import annotations

import logging
from pathlib import Path

DEBUG_LOG_NAME = "catdoc-debug.log"
_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def configure_logging(debug: bool, log_dir: Path | None = None) -> Path | None:
    """Attach handlers to the ``catdoc`` logger.

    Warnings always go to stderr. In debug mode everything down to DEBUG is
    also appended to ``catdoc-debug.log`` under ``log_dir``; its path is
    returned.
    """
    logger = logging.getLogger("catdoc")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False

    stderr_handler = logging.StreamHandler()
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(stderr_handler)

    if not debug or log_dir is None:
        return None
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / DEBUG_LOG_NAME
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(file_handler)
    return log_path
