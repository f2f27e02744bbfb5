# perfmon/core/logging.py
"""
Process-wide logging setup, called once from the app lifespan.

Everything goes to stdout as `time | LEVEL | logger | message`. Module loggers
are named after their module (`perfmon.engine.store`, ...); request timing
uses `perfmon.request`.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Driver loggers, chatty below WARNING.
NOISY_LOGGERS = ("aiosqlite", "sqlalchemy.engine")


def configure_logging(level: str = "INFO") -> None:
    """Install a single stdout handler on the root logger at `level`."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    root = logging.getLogger()
    # reconfiguring (e.g. uvicorn --reload) must not stack handlers
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(stream)
    root.setLevel(numeric)

    quiet = numeric if numeric <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)
