"""Builders for synthetic OTA images."""

from __future__ import annotations

from otacatalog.domain.header_codec import encode_image_header, encode_sub_element
from otacatalog.domain.model import HEADER_PREFIX_LENGTH, ImageHeader

LIXEE_MANUFACTURER_CODE = 4151


def make_header(  # noqa: PLR0913
    *,
    manufacturer_code: int = LIXEE_MANUFACTURER_CODE,
    image_type: int = 1,
    file_version: int = 1,
    header_string: str = "test image",
    field_control: int = 0,
    payload_length: int = 32,
    security_credential_version: int | None = None,
    upgrade_file_destination: bytes | None = None,
    minimum_hardware_version: int | None = None,
    maximum_hardware_version: int | None = None,
) -> ImageHeader:
    header_length = HEADER_PREFIX_LENGTH
    header_length += 1 if field_control & 0x1 else 0
    header_length += 8 if field_control & 0x2 else 0
    header_length += 4 if field_control & 0x4 else 0
    return ImageHeader(
        header_version=0x0100,
        header_length=header_length,
        header_field_control=field_control,
        manufacturer_code=manufacturer_code,
        image_type=image_type,
        file_version=file_version,
        stack_version=2,
        header_string=header_string.ljust(32, "\x00"),
        total_image_size=header_length + 6 + payload_length,
        security_credential_version=security_credential_version,
        upgrade_file_destination=upgrade_file_destination,
        minimum_hardware_version=minimum_hardware_version,
        maximum_hardware_version=maximum_hardware_version,
    )


def build_image(
    *, prefix: bytes = b"", payload: bytes | None = None, **header_fields: object
) -> bytes:
    """Encode a complete image: optional vendor prefix, header, one sub-element."""

    data = payload if payload is not None else bytes(range(32))
    header = make_header(payload_length=len(data), **header_fields)  # type: ignore[arg-type]
    return prefix + encode_image_header(header) + encode_sub_element(0, data)
