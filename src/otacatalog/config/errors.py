"""Configuration error definitions."""

from __future__ import annotations

from otacatalog.domain.model import OtaCatalogError


class ConfigurationError(OtaCatalogError, RuntimeError):
    """Raised when configuration values are invalid."""
