"""Checks of catalog entries against the files backing them, in both directions.

- a record whose file vanished is *missing*
- a file in a tier directory that no record of that tier points at is *unlisted*
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import unquote

from otacatalog.domain.header_codec import read_image_header
from otacatalog.domain.model import ExtraMetas, HeaderDecodeError

from .engine import build_record

if TYPE_CHECKING:
    from collections.abc import Sequence

    from otacatalog.domain.model import Catalog, CatalogRecord, StoredFile, Tier
    from otacatalog.domain.ports import ImageStore


log = getLogger(__name__)


def find_missing_files(catalog: Catalog, store: ImageStore) -> list[CatalogRecord]:
    """Return the records of ``catalog`` whose file is absent from the tier's storage."""

    missing: list[CatalogRecord] = []
    for record in catalog:
        if not store.exists(record, catalog.tier):
            log.error("%s MISSING: %s", catalog.tier.upper(), record.url)
            missing.append(record)
    return missing


def prune_missing_files(catalog: Catalog, store: ImageStore) -> list[CatalogRecord]:
    """Drop records whose backing file vanished; returns the dropped records."""

    missing = find_missing_files(catalog, store)
    for record in missing:
        catalog.remove(record)
    if missing:
        log.warning("Removed %s records from %s catalog.", len(missing), catalog.tier)
    return missing


def find_unlisted_files(catalog: Catalog, store: ImageStore) -> list[StoredFile]:
    """Return the files stored in ``catalog``'s tier that none of its records point at.

    Raises ``StrayFileError`` for a file outside any manufacturer subdirectory.
    """

    listed = {unquote(record.url) for record in catalog}
    unlisted: list[StoredFile] = []
    for stored in store.stored_files(catalog.tier):
        url = store.url_for(stored.tier, stored.manufacturer, stored.file_name)
        if unquote(url) not in listed:
            log.warning(
                "Not found in %s manifest: %s/%s",
                catalog.tier,
                stored.manufacturer,
                stored.file_name,
            )
            unlisted.append(stored)
    return unlisted


def prune_unlisted_files(unlisted: Sequence[StoredFile], store: ImageStore) -> None:
    """Delete ``unlisted`` files from their tier directories."""

    with store.transaction() as files:
        for stored in unlisted:
            log.error("Removing %s/%s.", stored.manufacturer, stored.file_name)
            files.remove(stored.tier, stored.manufacturer, stored.file_name)
        files.commit()


def set_aside_unlisted_files(
    unlisted: Sequence[StoredFile], store: ImageStore
) -> list[CatalogRecord]:
    """Move ``unlisted`` files out of their tier directories.

    Returns a record for every file moved so it can be restored later. Files
    that do not decode as OTA images are deleted instead.
    """

    records: list[CatalogRecord] = []
    with store.transaction() as files:
        for stored in unlisted:
            raw = store.read(stored)
            try:
                header = read_image_header(raw)
            except HeaderDecodeError as exc:
                log.error(  # noqa: TRY400
                    "Removing %s/%s: %s", stored.manufacturer, stored.file_name, exc
                )
                files.remove(stored.tier, stored.manufacturer, stored.file_name)
                continue
            files.set_aside(stored.tier, stored.manufacturer, stored.file_name)
            records.append(
                build_record(
                    file_name=stored.file_name,
                    raw=raw,
                    header=header,
                    url=store.url_for(stored.tier, stored.manufacturer, stored.file_name),
                    extra_metas=ExtraMetas(),
                )
            )
        files.commit()
    return records


@dataclass(slots=True)
class IntegrityReport:
    """Per-tier result of checking catalogs against storage."""

    missing: dict[Tier, list[CatalogRecord]] = field(
        default_factory=dict["Tier", "list[CatalogRecord]"]
    )
    unlisted: dict[Tier, list[StoredFile]] = field(
        default_factory=dict["Tier", "list[StoredFile]"]
    )

    @property
    def clean(self) -> bool:
        return not any(self.missing.values()) and not any(self.unlisted.values())
