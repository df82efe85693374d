"""Manifest JSON adapter: schemas, translators, repository and extra metas validation."""

from __future__ import annotations

from .extra_metas import (
    extract_extra_metas_block,
    parse_extra_metas,
    parse_extra_metas_json,
    validate_extra_metas,
)
from .repository import JsonCatalogRepository, read_manifest, write_manifest
from .schema import CatalogRecordPayload, ExtraMetasPayload
from .translator import (
    payload_from_record,
    record_from_payload,
    record_to_json,
)

__all__ = [
    "CatalogRecordPayload",
    "ExtraMetasPayload",
    "JsonCatalogRepository",
    "extract_extra_metas_block",
    "parse_extra_metas",
    "parse_extra_metas_json",
    "payload_from_record",
    "read_manifest",
    "record_from_payload",
    "record_to_json",
    "validate_extra_metas",
    "write_manifest",
]
