"""Logging setup shared by the CLI and tests."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterable

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# requests/urllib3 log every connection at DEBUG
NOISY_LOGGERS = ("urllib3", "charset_normalizer")


def configure_logging(
    log_path: Path | None = None,
    level: int = logging.INFO,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """Configure root logging handlers and formatting.

    Args:
        log_path: Optional path to a file where logs will be written.
        level: Logging level for the root logger (defaults to INFO).
        quiet: Third-party logger names held at WARNING or above.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
    logging.getLogger().setLevel(level)

    for name in quiet:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
