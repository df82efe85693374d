"""Decoded OTA image header and sub-elements (transient, never persisted)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

UPGRADE_FILE_IDENTIFIER: Final[bytes] = bytes((0x1E, 0xF1, 0xEE, 0x0B))
HEADER_PREFIX_LENGTH: Final[int] = 56
HEADER_STRING_LENGTH: Final[int] = 32
SUB_ELEMENT_PREFIX_LENGTH: Final[int] = 6

# headerFieldControl bits
SECURITY_CREDENTIAL_PRESENT: Final[int] = 0x1
UPGRADE_FILE_DESTINATION_PRESENT: Final[int] = 0x2
HARDWARE_VERSIONS_PRESENT: Final[int] = 0x4


@dataclass(frozen=True, slots=True, kw_only=True)
class ImageHeader:
    """Fixed 56-byte prefix plus the optional fields announced by ``header_field_control``."""

    upgrade_file_identifier: bytes = UPGRADE_FILE_IDENTIFIER
    header_version: int
    header_length: int
    header_field_control: int
    manufacturer_code: int
    image_type: int
    file_version: int
    stack_version: int
    header_string: str
    total_image_size: int
    security_credential_version: int | None = None
    upgrade_file_destination: bytes | None = None
    minimum_hardware_version: int | None = None
    maximum_hardware_version: int | None = None

    @property
    def stripped_header_string(self) -> str:
        """Human label with NUL padding removed."""
        return self.header_string.replace("\x00", "")

    @property
    def computed_header_length(self) -> int:
        """Offset at which the sub-element stream starts, derived from the control bits."""
        length = HEADER_PREFIX_LENGTH
        if self.header_field_control & SECURITY_CREDENTIAL_PRESENT:
            length += 1
        if self.header_field_control & UPGRADE_FILE_DESTINATION_PRESENT:
            length += 8
        if self.header_field_control & HARDWARE_VERSIONS_PRESENT:
            length += 4
        return length

    def to_dict(self) -> dict[str, object]:
        """Plain representation used for logs and the ``header`` CLI command."""
        data: dict[str, object] = {
            "otaUpgradeFileIdentifier": self.upgrade_file_identifier.hex(),
            "otaHeaderVersion": self.header_version,
            "otaHeaderLength": self.header_length,
            "otaHeaderFieldControl": self.header_field_control,
            "manufacturerCode": self.manufacturer_code,
            "imageType": self.image_type,
            "fileVersion": self.file_version,
            "zigbeeStackVersion": self.stack_version,
            "otaHeaderString": self.header_string,
            "totalImageSize": self.total_image_size,
        }
        if self.security_credential_version is not None:
            data["securityCredentialVersion"] = self.security_credential_version
        if self.upgrade_file_destination is not None:
            data["upgradeFileDestination"] = self.upgrade_file_destination.hex()
        if self.minimum_hardware_version is not None:
            data["minimumHardwareVersion"] = self.minimum_hardware_version
        if self.maximum_hardware_version is not None:
            data["maximumHardwareVersion"] = self.maximum_hardware_version
        return data


@dataclass(frozen=True, slots=True)
class ImageElement:
    tag_id: int
    length: int
    data: bytes


@dataclass(frozen=True, slots=True)
class OtaImage:
    """Header, sub-elements and the raw bytes covered by ``total_image_size``."""

    header: ImageHeader
    elements: tuple[ImageElement, ...] = ()
    raw: bytes = b""
