"""Catalog records, caller-supplied metadata and the per-tier catalog handle."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeAlias

from .enums import Tier

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass(slots=True, kw_only=True)
class CatalogRecord:
    """One manifest entry. Field order follows the persisted JSON layout."""

    file_name: str
    file_version: int
    file_size: int
    original_url: str | None = None
    url: str
    image_type: int
    manufacturer_code: int
    sha512: str
    header_string: str
    force: bool | None = None
    hardware_version_min: int | None = None
    hardware_version_max: int | None = None
    manufacturer_name: tuple[str, ...] | None = None
    max_file_version: int | None = None
    min_file_version: int | None = None
    model_id: str | None = None
    release_notes: str | None = None
    custom_parse_logic: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ExtraMetas:
    """Validated metadata that augments or overrides header-derived record fields.

    The identity-bearing fields (``model_id``, ``manufacturer_name``,
    ``min_file_version``, ``max_file_version``) take part in record matching.
    """

    original_url: str | None = None
    force: bool | None = None
    hardware_version_max: int | None = None
    hardware_version_min: int | None = None
    manufacturer_name: tuple[str, ...] | None = None
    max_file_version: int | None = None
    min_file_version: int | None = None
    model_id: str | None = None
    release_notes: str | None = None


@dataclass(frozen=True, slots=True)
class UniformExtraMetas:
    """Same metadata for every file of a batch."""

    metas: ExtraMetas = field(default_factory=ExtraMetas)

    def for_file(self, file_name: str) -> ExtraMetas:  # noqa: ARG002
        return self.metas


@dataclass(frozen=True, slots=True)
class PerFileExtraMetas:
    """Metadata keyed by file name; unlisted files get empty metadata."""

    by_file: dict[str, ExtraMetas] = field(default_factory=dict["str", "ExtraMetas"])

    def for_file(self, file_name: str) -> ExtraMetas:
        return self.by_file.get(file_name, ExtraMetas())


ExtraMetasSource: TypeAlias = UniformExtraMetas | PerFileExtraMetas


@dataclass(frozen=True, slots=True)
class CatalogMatch:
    """A record found by the matcher together with its position in the catalog."""

    index: int
    record: CatalogRecord


@dataclass(slots=True)
class Catalog:
    """Ordered, insertion-ordered list of records belonging to one tier."""

    tier: Tier
    records: list[CatalogRecord] = field(default_factory=list["CatalogRecord"])

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[CatalogRecord]:
        return iter(self.records)

    def __getitem__(self, index: int) -> CatalogRecord:
        return self.records[index]

    def append(self, record: CatalogRecord) -> None:
        self.records.append(record)

    def remove(self, record: CatalogRecord) -> None:
        for index, candidate in enumerate(self.records):
            if candidate is record:
                del self.records[index]
                return
        raise ValueError("record not in catalog")

    def snapshot(self) -> tuple[CatalogRecord, ...]:
        return tuple(self.records)

    def restore(self, snapshot: tuple[CatalogRecord, ...]) -> None:
        self.records[:] = snapshot


@dataclass(slots=True)
class CatalogPair:
    """Both tiers, owned by the batch loop for the duration of a run."""

    current: Catalog = field(default_factory=lambda: Catalog(Tier.CURRENT))
    previous: Catalog = field(default_factory=lambda: Catalog(Tier.PREVIOUS))

    def __post_init__(self) -> None:
        if self.current.tier is not Tier.CURRENT or self.previous.tier is not Tier.PREVIOUS:
            raise ValueError("catalog pair tiers must be (current, previous)")

    def for_tier(self, tier: Tier) -> Catalog:
        return self.current if tier is Tier.CURRENT else self.previous


def record_file_name(record: CatalogRecord) -> str:
    """Return the stored file name, falling back to the URL's last segment for legacy records."""

    if record.file_name:
        return record.file_name
    return record.url.rsplit("/", 1)[-1]


@dataclass(frozen=True, slots=True)
class StoredFile:
    """A file found on disk in a tier's manufacturer subdirectory."""

    tier: Tier
    manufacturer: str
    file_name: str
