"""Domain port definitions for adapters."""

from __future__ import annotations

from .storage import CatalogRepository, FileTransaction, ImageStore

__all__ = ["CatalogRepository", "FileTransaction", "ImageStore"]
