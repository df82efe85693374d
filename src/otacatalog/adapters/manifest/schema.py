"""Pydantic models for the manifest JSON files and caller-supplied extra metas."""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StrictStr, TypeAdapter
from pydantic.alias_generators import to_camel


class ManifestBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)


class CatalogRecordPayload(ManifestBaseModel):
    """One manifest entry as persisted. Declaration order is the JSON key order."""

    # legacy entries may lack it; the url's last segment is used instead
    file_name: str | None = None
    file_version: int
    file_size: int
    original_url: str | None = None
    url: str
    image_type: int
    manufacturer_code: int
    sha512: str
    ota_header_string: str = ""
    force: bool | None = None
    hardware_version_min: int | None = None
    hardware_version_max: int | None = None
    manufacturer_name: list[str] | None = None
    max_file_version: int | None = None
    min_file_version: int | None = None
    model_id: str | None = None
    release_notes: str | None = None
    custom_parse_logic: str | None = None


ManifestPayload = TypeAdapter(list[CatalogRecordPayload])


class ExtraMetasPayload(ManifestBaseModel):
    """Strictly typed extra metas: no coercion, ``null`` counts as absent."""

    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
        strict=True,
    )

    file_name: str | None = None
    original_url: str | None = None
    force: bool | None = None
    hardware_version_max: int | None = None
    hardware_version_min: int | None = None
    manufacturer_name: Annotated[list[StrictStr], Field(min_length=1)] | None = None
    max_file_version: int | None = None
    min_file_version: int | None = None
    model_id: str | None = None
    release_notes: str | None = None


# JSON type names used in validation messages
EXTRA_METAS_EXPECTED_TYPES: dict[str, str] = {
    "fileName": "string",
    "originalUrl": "string",
    "force": "boolean",
    "hardwareVersionMax": "number",
    "hardwareVersionMin": "number",
    "manufacturerName": "array of string",
    "maxFileVersion": "number",
    "minFileVersion": "number",
    "modelId": "string",
    "releaseNotes": "string",
}
