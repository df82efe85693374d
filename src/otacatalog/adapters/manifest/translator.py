"""Translate manifest payloads to domain records and back."""

from __future__ import annotations

from typing import TYPE_CHECKING

from otacatalog.domain.model import CatalogRecord, ExtraMetas

from .schema import CatalogRecordPayload

if TYPE_CHECKING:
    from .schema import ExtraMetasPayload


def _as_tuple(values: list[str] | None) -> tuple[str, ...] | None:
    return tuple(values) if values is not None else None


def record_from_payload(payload: CatalogRecordPayload) -> CatalogRecord:
    return CatalogRecord(
        file_name=payload.file_name or payload.url.rsplit("/", 1)[-1],
        file_version=payload.file_version,
        file_size=payload.file_size,
        original_url=payload.original_url,
        url=payload.url,
        image_type=payload.image_type,
        manufacturer_code=payload.manufacturer_code,
        sha512=payload.sha512,
        header_string=payload.ota_header_string,
        force=payload.force,
        hardware_version_min=payload.hardware_version_min,
        hardware_version_max=payload.hardware_version_max,
        manufacturer_name=_as_tuple(payload.manufacturer_name),
        max_file_version=payload.max_file_version,
        min_file_version=payload.min_file_version,
        model_id=payload.model_id,
        release_notes=payload.release_notes,
        custom_parse_logic=payload.custom_parse_logic,
    )


def payload_from_record(record: CatalogRecord) -> CatalogRecordPayload:
    return CatalogRecordPayload(
        file_name=record.file_name,
        file_version=record.file_version,
        file_size=record.file_size,
        original_url=record.original_url,
        url=record.url,
        image_type=record.image_type,
        manufacturer_code=record.manufacturer_code,
        sha512=record.sha512,
        ota_header_string=record.header_string,
        force=record.force,
        hardware_version_min=record.hardware_version_min,
        hardware_version_max=record.hardware_version_max,
        manufacturer_name=list(record.manufacturer_name)
        if record.manufacturer_name is not None
        else None,
        max_file_version=record.max_file_version,
        min_file_version=record.min_file_version,
        model_id=record.model_id,
        release_notes=record.release_notes,
        custom_parse_logic=record.custom_parse_logic,
    )


def record_to_json(record: CatalogRecord) -> dict[str, object]:
    """JSON object of ``record`` with absent optional fields omitted."""

    return payload_from_record(record).model_dump(by_alias=True, exclude_none=True)


def extra_metas_from_payload(payload: ExtraMetasPayload) -> ExtraMetas:
    return ExtraMetas(
        original_url=payload.original_url,
        force=payload.force,
        hardware_version_max=payload.hardware_version_max,
        hardware_version_min=payload.hardware_version_min,
        manufacturer_name=_as_tuple(payload.manufacturer_name),
        max_file_version=payload.max_file_version,
        min_file_version=payload.min_file_version,
        model_id=payload.model_id,
        release_notes=payload.release_notes,
    )
