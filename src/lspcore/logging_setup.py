from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def configure_logging(level: str = "INFO", file: Path | None = None) -> None:
    """Route log records to stderr or `file`; stdout carries the protocol."""
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    if file is not None:
        file.parent.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(
            level=resolved,
            format=LOG_FORMAT,
            filename=str(file),
            encoding="utf-8",
            force=True,
        )
        return
    logging.basicConfig(level=resolved, format=LOG_FORMAT, stream=sys.stderr, force=True)
