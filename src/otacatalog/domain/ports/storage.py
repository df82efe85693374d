"""Ports for tiered image storage and manifest persistence."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path
    from types import TracebackType

    from otacatalog.domain.model import Catalog, CatalogPair, CatalogRecord, StoredFile, Tier


@runtime_checkable
class FileTransaction(Protocol):
    """Journaled file operations for one reconciliation.

    Operations become permanent on ``commit``; ``rollback`` (also triggered by an
    exception leaving the ``with`` block) undoes them in reverse order.
    """

    def __enter__(self) -> FileTransaction: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def write(self, tier: Tier, manufacturer: str, file_name: str, data: bytes) -> None: ...

    def move(self, source: Tier, target: Tier, manufacturer: str, file_name: str) -> bool:
        """Move a file between tiers. Returns False when the source file is missing."""
        ...

    def remove(self, tier: Tier, manufacturer: str, file_name: str) -> None: ...

    def set_aside(self, tier: Tier, manufacturer: str, file_name: str) -> None:
        """Move a file no manifest lists out of ``tier``."""
        ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@runtime_checkable
class ImageStore(Protocol):
    """Two parallel directory trees (one per tier) with a manufacturer subdirectory each."""

    def url_for(self, tier: Tier, manufacturer: str, file_name: str) -> str: ...

    def relocate_url(self, url: str, source: Tier, target: Tier) -> str: ...

    def exists(self, record: CatalogRecord, tier: Tier) -> bool: ...

    def source_tier(self, path: Path, manufacturer: str) -> Tier | None:
        """Tier whose ``manufacturer`` directory already holds ``path``, if any."""
        ...

    def stored_files(self, tier: Tier) -> list[StoredFile]: ...

    def read(self, stored: StoredFile) -> bytes: ...

    def transaction(self) -> FileTransaction: ...


@runtime_checkable
class CatalogRepository(Protocol):
    """Loads both tiers at the start of a batch and writes them back once at the end."""

    def load(self) -> CatalogPair: ...

    def save(self, catalogs: CatalogPair) -> None: ...

    def save_catalog(self, catalog: Catalog) -> None: ...

    def save_unlisted(self, tier: Tier, records: list[CatalogRecord]) -> None:
        """Write the records of files set aside from ``tier`` next to those files."""
        ...
