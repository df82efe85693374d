"""Application configuration helpers."""

from __future__ import annotations

from .env import get_env_flag
from .errors import ConfigurationError
from .logging import configure_logging, resolve_log_level
from .storage import ReconcileConfig, StorageConfig, get_reconcile_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "ReconcileConfig",
    "StorageConfig",
    "configure_logging",
    "get_env_flag",
    "get_reconcile_config",
    "get_storage_config",
    "resolve_log_level",
]
