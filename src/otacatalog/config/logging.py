"""Shared logging helpers."""

from __future__ import annotations

import logging
import os

from .errors import ConfigurationError

LOG_LEVEL_ENV = "OTACATALOG_LOG_LEVEL"


def resolve_log_level(value: str | None = None) -> int:
    """Translate a level name (``DEBUG``, ``info``...) into a logging level."""

    name = (value if value is not None else os.getenv(LOG_LEVEL_ENV, "INFO")).strip().upper()
    level = logging.getLevelNamesMapping().get(name)
    if level is None:
        raise ConfigurationError(f"Unknown log level: {name}")
    return level


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    Parameters mirror ``logging.basicConfig`` with a simplified contract: the level
    defaults to ``OTACATALOG_LOG_LEVEL`` (INFO when unset) and a terse format
    suitable for CLI output. Pass ``force=True`` to reconfigure during tests or
    specialised entry points.
    """

    logging.basicConfig(
        level=level if level is not None else resolve_log_level(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
