"""Public domain model surface."""

from __future__ import annotations

from otacatalog.domain.model.catalog import (
    Catalog,
    CatalogMatch,
    CatalogPair,
    CatalogRecord,
    ExtraMetas,
    ExtraMetasSource,
    PerFileExtraMetas,
    StoredFile,
    UniformExtraMetas,
    record_file_name,
)
from otacatalog.domain.model.enums import ImageStatus, Tier
from otacatalog.domain.model.errors import (
    CatalogFormatError,
    HeaderDecodeError,
    HeaderLengthMismatchError,
    InvalidExtraMetaError,
    InvalidMagicError,
    OtaCatalogError,
    SizeMismatchError,
    StrayFileError,
    TooShortError,
)
from otacatalog.domain.model.header import (
    HEADER_PREFIX_LENGTH,
    UPGRADE_FILE_IDENTIFIER,
    ImageElement,
    ImageHeader,
    OtaImage,
)

__all__ = [
    "HEADER_PREFIX_LENGTH",
    "UPGRADE_FILE_IDENTIFIER",
    "Catalog",
    "CatalogFormatError",
    "CatalogMatch",
    "CatalogPair",
    "CatalogRecord",
    "ExtraMetas",
    "ExtraMetasSource",
    "HeaderDecodeError",
    "HeaderLengthMismatchError",
    "ImageElement",
    "ImageHeader",
    "ImageStatus",
    "InvalidExtraMetaError",
    "InvalidMagicError",
    "OtaCatalogError",
    "OtaImage",
    "PerFileExtraMetas",
    "SizeMismatchError",
    "StoredFile",
    "StrayFileError",
    "Tier",
    "TooShortError",
    "UniformExtraMetas",
    "record_file_name",
]
