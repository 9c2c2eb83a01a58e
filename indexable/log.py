"""Logging setup for command-line use.

Library modules only create ``logging.getLogger(__name__)`` loggers and
never configure handlers; applications embedding the evaluator keep
control of logging.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str | int = logging.INFO) -> None:
    """Install a stderr handler at *level* (name or number)."""
    if isinstance(level, str):
        numeric = logging.getLevelName(level.upper())
        if not isinstance(numeric, int):
            msg = f"Unknown log level: {level!r}"
            raise ValueError(msg)
        level = numeric
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT)
