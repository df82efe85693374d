"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Tier(StrEnum):
    """Catalog partition: upgrade path (current) or rollback path (previous)."""

    CURRENT = "current"
    PREVIOUS = "previous"


class ImageStatus(StrEnum):
    """Version of an incoming image relative to its cataloged match."""

    NEW = "new"
    NEWER = "newer"
    OLDER = "older"
    IDENTICAL = "identical"
