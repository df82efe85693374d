"""OTA upgrade image header codec.

Layout (all integers little-endian)::

    0   upgrade file identifier   4 bytes, 1E F1 EE 0B
    4   header version            u16
    6   header length             u16
    8   header field control      u16
    10  manufacturer code         u16
    12  image type                u16
    14  file version              u32
    18  stack version             u16
    20  header string             32 bytes UTF-8, NUL padded
    52  total image size          u32
    56  optional fields, in control-bit order 0, 1, 2

Sub-elements (``tag u16``, ``length u32``, data) follow at ``header length``
and run up to ``total image size``.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from otacatalog.domain.model.errors import (
    HeaderLengthMismatchError,
    InvalidMagicError,
    SizeMismatchError,
    TooShortError,
)
from otacatalog.domain.model.header import (
    HARDWARE_VERSIONS_PRESENT,
    HEADER_PREFIX_LENGTH,
    SECURITY_CREDENTIAL_PRESENT,
    SUB_ELEMENT_PREFIX_LENGTH,
    UPGRADE_FILE_DESTINATION_PRESENT,
    UPGRADE_FILE_IDENTIFIER,
    ImageElement,
    ImageHeader,
    OtaImage,
)

if TYPE_CHECKING:
    from collections.abc import Buffer

_PREFIX: Final = struct.Struct("<4sHHHHHIH32sI")
_SUB_ELEMENT: Final = struct.Struct("<HI")


@dataclass(frozen=True, slots=True)
class _OptionalField:
    bit: int
    layout: struct.Struct
    names: tuple[str, ...]


# applied in this order; each one advances the cursor past its bytes
_OPTIONAL_FIELDS: Final[tuple[_OptionalField, ...]] = (
    _OptionalField(
        SECURITY_CREDENTIAL_PRESENT,
        struct.Struct("<B"),
        ("security_credential_version",),
    ),
    _OptionalField(
        UPGRADE_FILE_DESTINATION_PRESENT,
        struct.Struct("<8s"),
        ("upgrade_file_destination",),
    ),
    _OptionalField(
        HARDWARE_VERSIONS_PRESENT,
        struct.Struct("<HH"),
        ("minimum_hardware_version", "maximum_hardware_version"),
    ),
)


def locate_header(raw: Buffer) -> int:
    """Return the offset of the upgrade file identifier inside ``raw``.

    Some vendors prepend non-standard bytes to the image, so the identifier is
    not always at offset 0.
    """

    offset = bytes(raw).find(UPGRADE_FILE_IDENTIFIER)
    if offset == -1:
        raise InvalidMagicError("Upgrade file identifier not found")
    return offset


def decode_image_header(buffer: Buffer) -> ImageHeader:
    """Decode the header at the very start of ``buffer``.

    Only the identifier is validated; ``header_length`` and ``total_image_size``
    are returned as read.
    """

    data = bytes(buffer)
    if len(data) >= len(UPGRADE_FILE_IDENTIFIER) and not data.startswith(UPGRADE_FILE_IDENTIFIER):
        raise InvalidMagicError(f"Invalid upgrade file identifier {data[:4].hex()}")
    if len(data) < HEADER_PREFIX_LENGTH:
        raise TooShortError(HEADER_PREFIX_LENGTH, len(data))

    (
        identifier,
        header_version,
        header_length,
        field_control,
        manufacturer_code,
        image_type,
        file_version,
        stack_version,
        header_string,
        total_image_size,
    ) = _PREFIX.unpack_from(data, 0)

    optional: dict[str, object] = {}
    cursor = HEADER_PREFIX_LENGTH
    for optional_field in _OPTIONAL_FIELDS:
        if not field_control & optional_field.bit:
            continue
        end = cursor + optional_field.layout.size
        if end > len(data):
            raise TooShortError(end, len(data))
        values = optional_field.layout.unpack_from(data, cursor)
        optional.update(zip(optional_field.names, values, strict=True))
        cursor = end

    return ImageHeader(
        upgrade_file_identifier=identifier,
        header_version=header_version,
        header_length=header_length,
        header_field_control=field_control,
        manufacturer_code=manufacturer_code,
        image_type=image_type,
        file_version=file_version,
        stack_version=stack_version,
        header_string=header_string.decode("utf-8", errors="replace"),
        total_image_size=total_image_size,
        **optional,  # type: ignore[arg-type]
    )


def read_image_header(raw: Buffer) -> ImageHeader:
    """Locate the identifier inside ``raw`` and decode the header from there."""

    data = bytes(raw)
    return decode_image_header(data[locate_header(data) :])


def parse_image(buffer: Buffer, *, verify_size: bool = False) -> OtaImage:
    """Decode the header and walk the sub-elements of the image at the start of ``buffer``.

    With ``verify_size`` the header length has to agree with the control bits and
    the walk has to end exactly at ``total_image_size``.
    """

    data = bytes(buffer)
    header = decode_image_header(data)
    if verify_size and header.header_length != header.computed_header_length:
        raise HeaderLengthMismatchError(header.computed_header_length, header.header_length)
    elements: list[ImageElement] = []
    position = header.header_length
    while position < header.total_image_size:
        if position + SUB_ELEMENT_PREFIX_LENGTH > len(data):
            raise TooShortError(position + SUB_ELEMENT_PREFIX_LENGTH, len(data))
        tag_id, length = _SUB_ELEMENT.unpack_from(data, position)
        start = position + SUB_ELEMENT_PREFIX_LENGTH
        payload = data[start : start + length]
        elements.append(ImageElement(tag_id=tag_id, length=length, data=payload))
        position = start + len(payload)
        if len(payload) < length:
            break

    if verify_size and position != header.total_image_size:
        raise SizeMismatchError(header.total_image_size, position)

    return OtaImage(header=header, elements=tuple(elements), raw=data[: header.total_image_size])


def encode_image_header(header: ImageHeader) -> bytes:
    """Serialise ``header``; optional fields are written for every set control bit."""

    parts = [
        _PREFIX.pack(
            header.upgrade_file_identifier,
            header.header_version,
            header.header_length,
            header.header_field_control,
            header.manufacturer_code,
            header.image_type,
            header.file_version,
            header.stack_version,
            header.header_string.encode("utf-8"),
            header.total_image_size,
        )
    ]
    for optional_field in _OPTIONAL_FIELDS:
        if not header.header_field_control & optional_field.bit:
            continue
        values = [getattr(header, name) for name in optional_field.names]
        if any(value is None for value in values):
            missing = ", ".join(optional_field.names)
            raise ValueError(f"Control bit {optional_field.bit:#x} set but {missing} missing")
        parts.append(optional_field.layout.pack(*values))
    return b"".join(parts)


def encode_sub_element(tag_id: int, data: bytes) -> bytes:
    return _SUB_ELEMENT.pack(tag_id, len(data)) + data
