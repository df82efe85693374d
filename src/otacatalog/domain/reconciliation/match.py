"""Record matching: which cataloged entry is the same logical image slot."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from otacatalog.domain.model import CatalogMatch

if TYPE_CHECKING:
    from collections.abc import Iterable

    from otacatalog.domain.model import CatalogRecord, ExtraMetas, ImageHeader


log = getLogger(__name__)


def is_match(record: CatalogRecord, header: ImageHeader, extra_metas: ExtraMetas) -> bool:
    """Composite identity predicate.

    ``min_file_version``, ``max_file_version`` and ``model_id`` must be equal
    (absent on both sides counts as equal). ``manufacturer_name`` only has to
    agree when both sides carry one.
    """

    if record.image_type != header.image_type:
        return False
    if record.manufacturer_code != header.manufacturer_code:
        return False
    if record.min_file_version != extra_metas.min_file_version:
        return False
    if record.max_file_version != extra_metas.max_file_version:
        return False
    if record.model_id != extra_metas.model_id:
        return False
    if record.manufacturer_name is not None and extra_metas.manufacturer_name is not None:
        return tuple(record.manufacturer_name) == tuple(extra_metas.manufacturer_name)
    return True


def find_matches(
    header: ImageHeader,
    extra_metas: ExtraMetas,
    records: Iterable[CatalogRecord],
) -> list[CatalogMatch]:
    """Return every matching record in catalog order."""

    return [
        CatalogMatch(index=index, record=record)
        for index, record in enumerate(records)
        if is_match(record, header, extra_metas)
    ]


def find_match(
    header: ImageHeader,
    extra_metas: ExtraMetas,
    records: Iterable[CatalogRecord],
) -> CatalogMatch | None:
    """Return the first matching record, warning when the catalog holds several."""

    matches = find_matches(header, extra_metas, records)
    if not matches:
        return None
    if len(matches) > 1:
        log.warning(
            "Multiple catalog records match imageType=%s manufacturerCode=%s at indexes %s",
            header.image_type,
            header.manufacturer_code,
            [match.index for match in matches],
        )
    return matches[0]


def lookup_records(
    records: Iterable[CatalogRecord],
    *,
    image_type: int,
    manufacturer_code: int,
    model_id: str | None = None,
    manufacturer_name: str | None = None,
) -> list[CatalogRecord]:
    """Lenient diagnostic lookup sorted by file version.

    Unlike :func:`is_match`, an absent ``model_id`` on either side is a wildcard
    and ``manufacturer_name`` is tested for membership.
    """

    found = [
        record
        for record in records
        if record.image_type == image_type
        and record.manufacturer_code == manufacturer_code
        and (not record.model_id or not model_id or record.model_id == model_id)
        and (
            not record.manufacturer_name
            or not manufacturer_name
            or manufacturer_name in record.manufacturer_name
        )
    ]
    return sorted(found, key=lambda record: record.file_version)
