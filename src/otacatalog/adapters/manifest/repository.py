"""JSON manifest files: one ordered array of records per tier."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from otacatalog.domain.model import Catalog, CatalogFormatError, CatalogPair, Tier

from .schema import ManifestPayload
from .translator import record_from_payload, record_to_json

if TYPE_CHECKING:
    from pathlib import Path

    from otacatalog.config import StorageConfig
    from otacatalog.domain.model import CatalogRecord


log = getLogger(__name__)


def read_manifest(path: Path, tier: Tier) -> Catalog:
    """Load a manifest; a missing file is an empty catalog."""

    if not path.exists():
        log.info("Manifest %s does not exist, starting empty.", path)
        return Catalog(tier)
    try:
        payloads = ManifestPayload.validate_json(path.read_bytes())
    except ValidationError as exc:
        raise CatalogFormatError(f"Invalid manifest {path}: {exc}") from exc
    return Catalog(tier, [record_from_payload(payload) for payload in payloads])


def write_manifest(path: Path, catalog: Catalog) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    contents = json.dumps(
        [record_to_json(record) for record in catalog], indent=2, ensure_ascii=False
    )
    path.write_text(contents + "\n", encoding="utf-8")


class JsonCatalogRepository:
    """Reads and writes ``index.json`` (current) and ``index1.json`` (previous)."""

    def __init__(self, config: StorageConfig) -> None:
        self._config = config

    def load(self) -> CatalogPair:
        return CatalogPair(
            current=read_manifest(self._config.manifest_path(Tier.CURRENT), Tier.CURRENT),
            previous=read_manifest(self._config.manifest_path(Tier.PREVIOUS), Tier.PREVIOUS),
        )

    def save(self, catalogs: CatalogPair) -> None:
        self.save_catalog(catalogs.previous)
        self.save_catalog(catalogs.current)

    def save_catalog(self, catalog: Catalog) -> None:
        path = self._config.manifest_path(catalog.tier)
        write_manifest(path, catalog)
        log.info("Wrote %s catalog (%s images) to %s.", catalog.tier, len(catalog), path)

    def save_unlisted(self, tier: Tier, records: list[CatalogRecord]) -> None:
        path = self._config.unlisted_manifest_path(tier)
        write_manifest(path, Catalog(tier, list(records)))
        log.error("%s images not in %s manifest, see %s.", len(records), tier, path)
