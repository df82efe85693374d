"""Validation boundary for caller-supplied extra metas.

Accepted shapes:
- ``None`` or ``{}``: no extra metas
- a JSON object: the same metas for every file of the batch
- a JSON array of objects: per-file metas selected by their ``fileName``
"""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from otacatalog.domain.model import (
    ExtraMetas,
    InvalidExtraMetaError,
    PerFileExtraMetas,
    UniformExtraMetas,
)

from .schema import EXTRA_METAS_EXPECTED_TYPES, ExtraMetasPayload
from .translator import extra_metas_from_payload

if TYPE_CHECKING:
    from collections.abc import Mapping

    from otacatalog.domain.model import ExtraMetasSource


log = getLogger(__name__)

EXTRA_METAS_BLOCK_START = "```json"
EXTRA_METAS_BLOCK_END = "```"


def validate_extra_metas(raw: Mapping[str, object]) -> ExtraMetas:
    """Validate one metas object field by field; the first bad field is reported."""

    try:
        payload = ExtraMetasPayload.model_validate(dict(raw))
    except ValidationError as exc:
        field = _offending_field(exc)
        raise InvalidExtraMetaError(field, EXTRA_METAS_EXPECTED_TYPES.get(field)) from exc
    return extra_metas_from_payload(payload)


def parse_extra_metas(raw: object) -> ExtraMetasSource:
    """Validate ``raw`` eagerly into a uniform or per-file metas source."""

    if raw is None:
        return UniformExtraMetas()

    if isinstance(raw, list):
        by_file: dict[str, ExtraMetas] = {}
        for entry in raw:
            file_name = entry.get("fileName") if isinstance(entry, dict) else None
            if not isinstance(file_name, str) or not file_name:
                log.info("Ignoring meta in array with missing/invalid fileName: %s", entry)
                continue
            by_file[file_name] = validate_extra_metas(entry)
        return PerFileExtraMetas(by_file)

    if isinstance(raw, dict):
        return UniformExtraMetas(validate_extra_metas(raw))

    raise InvalidExtraMetaError("extraMetas", "object or array")


def parse_extra_metas_json(text: str | None) -> ExtraMetasSource:
    if text is None or not text.strip():
        return UniformExtraMetas()
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidExtraMetaError("extraMetas", "JSON object or array") from exc
    return parse_extra_metas(raw)


def extract_extra_metas_block(body: str | None) -> str | None:
    """Return the JSON text between the first ```json fence and the last closing fence."""

    if not body:
        return None
    start = body.find(EXTRA_METAS_BLOCK_START)
    end = body.rfind(EXTRA_METAS_BLOCK_END)
    if start == -1 or end <= start:
        return None
    return body[start + len(EXTRA_METAS_BLOCK_START) : end]


def _offending_field(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors or not errors[0]["loc"]:
        return "extraMetas"
    head = str(errors[0]["loc"][0])
    field_info = ExtraMetasPayload.model_fields.get(head)
    if field_info is not None and field_info.alias:
        return field_info.alias
    return head
