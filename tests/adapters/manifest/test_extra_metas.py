from __future__ import annotations

import logging

import pytest

from otacatalog.adapters.manifest import (
    extract_extra_metas_block,
    parse_extra_metas,
    parse_extra_metas_json,
    validate_extra_metas,
)
from otacatalog.domain.model import (
    ExtraMetas,
    InvalidExtraMetaError,
    PerFileExtraMetas,
    UniformExtraMetas,
)


def test_validate_full_metas() -> None:
    metas = validate_extra_metas(
        {
            "originalUrl": "https://example.com/fw.ota",
            "force": False,
            "hardwareVersionMax": 3,
            "hardwareVersionMin": 1,
            "manufacturerName": ["_TZ3000_abc", "_TZ3000_def"],
            "maxFileVersion": 10,
            "minFileVersion": 2,
            "modelId": "TS011F",
            "releaseNotes": "Stability fixes",
            "unknownKey": "ignored",
        }
    )

    assert metas == ExtraMetas(
        original_url="https://example.com/fw.ota",
        force=False,
        hardware_version_max=3,
        hardware_version_min=1,
        manufacturer_name=("_TZ3000_abc", "_TZ3000_def"),
        max_file_version=10,
        min_file_version=2,
        model_id="TS011F",
        release_notes="Stability fixes",
    )


@pytest.mark.parametrize(
    ("payload", "field", "expected"),
    [
        ({"manufacturerName": "not-an-array"}, "manufacturerName", "array of string"),
        ({"manufacturerName": []}, "manufacturerName", "array of string"),
        ({"manufacturerName": ["ok", 3]}, "manufacturerName", "array of string"),
        ({"force": "yes"}, "force", "boolean"),
        ({"hardwareVersionMin": "1"}, "hardwareVersionMin", "number"),
        ({"minFileVersion": True}, "minFileVersion", "number"),
        ({"modelId": 12}, "modelId", "string"),
        ({"releaseNotes": ["a"]}, "releaseNotes", "string"),
    ],
)
def test_validate_rejects_wrong_types(
    payload: dict[str, object], field: str, expected: str
) -> None:
    with pytest.raises(InvalidExtraMetaError) as excinfo:
        validate_extra_metas(payload)

    assert excinfo.value.field == field
    assert excinfo.value.expected == expected
    assert str(excinfo.value) == f"Invalid format for '{field}', expected '{expected}' type."


def test_null_values_count_as_absent() -> None:
    assert validate_extra_metas({"modelId": None, "force": None}) == ExtraMetas()


def test_parse_uniform_and_empty() -> None:
    assert parse_extra_metas(None) == UniformExtraMetas()
    assert parse_extra_metas({}) == UniformExtraMetas()

    source = parse_extra_metas({"modelId": "ZLinky_TIC"})
    assert isinstance(source, UniformExtraMetas)
    assert source.for_file("whatever.ota").model_id == "ZLinky_TIC"


def test_parse_per_file_skips_entries_without_file_name(
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level(logging.INFO):
        source = parse_extra_metas(
            [
                {"fileName": "router.ota", "modelId": "router"},
                {"modelId": "orphan"},
                {"fileName": 5, "modelId": "numbered"},
                "not-an-object",
            ]
        )

    assert isinstance(source, PerFileExtraMetas)
    assert list(source.by_file) == ["router.ota"]
    assert source.for_file("router.ota").model_id == "router"
    assert source.for_file("other.ota") == ExtraMetas()
    assert "missing/invalid fileName" in caplog.text


def test_parse_per_file_validates_entries() -> None:
    with pytest.raises(InvalidExtraMetaError) as excinfo:
        parse_extra_metas([{"fileName": "a.ota", "force": 1}])

    assert excinfo.value.field == "force"


def test_parse_rejects_scalars() -> None:
    with pytest.raises(InvalidExtraMetaError):
        parse_extra_metas("metas")


def test_parse_json_text() -> None:
    assert parse_extra_metas_json(None) == UniformExtraMetas()
    assert parse_extra_metas_json("  ") == UniformExtraMetas()
    source = parse_extra_metas_json('{"force": true}')
    assert isinstance(source, UniformExtraMetas)
    assert source.metas.force is True

    with pytest.raises(InvalidExtraMetaError) as excinfo:
        parse_extra_metas_json("{not json")
    assert excinfo.value.field == "extraMetas"


def test_extract_block_from_description() -> None:
    body = (
        "Adds firmware for the router.\n\n"
        "```json\n"
        '{"modelId": "ZLinky_TIC", "manufacturerName": ["LiXee"]}\n'
        "```\n"
        "Thanks!"
    )

    block = extract_extra_metas_block(body)

    assert block is not None
    source = parse_extra_metas_json(block)
    assert isinstance(source, UniformExtraMetas)
    assert source.metas.manufacturer_name == ("LiXee",)


def test_extract_block_absent() -> None:
    assert extract_extra_metas_block(None) is None
    assert extract_extra_metas_block("no metas here") is None
