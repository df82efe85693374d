"""Version classification of an incoming image against its match."""

from __future__ import annotations

from typing import TYPE_CHECKING

from otacatalog.domain.model import ImageStatus

if TYPE_CHECKING:
    from otacatalog.domain.model import CatalogMatch


def classify(file_version: int, match: CatalogMatch | None) -> ImageStatus:
    """Compare ``file_version`` (opaque u32 ordering key) with the matched record's."""

    if match is None:
        return ImageStatus.NEW
    if match.record.file_version > file_version:
        return ImageStatus.OLDER
    if match.record.file_version < file_version:
        return ImageStatus.NEWER
    return ImageStatus.IDENTICAL
