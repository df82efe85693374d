"""Domain error hierarchy."""

from __future__ import annotations


class OtaCatalogError(Exception):
    """Base class for all catalog errors."""


class HeaderDecodeError(OtaCatalogError):
    """Raised when a buffer does not hold a valid OTA image header."""


class InvalidMagicError(HeaderDecodeError):
    """Raised when the upgrade file identifier is missing or wrong."""


class TooShortError(HeaderDecodeError):
    """Raised when the buffer ends before the header (or a declared field) does."""

    def __init__(self, needed: int, available: int) -> None:
        super().__init__(f"Header needs {needed} bytes, buffer has {available}")
        self.needed = needed
        self.available = available


class SizeMismatchError(HeaderDecodeError):
    """Raised when the sub-element walk does not end at ``totalImageSize``."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Size mismatch: header declares {expected} bytes, elements end at {actual}"
        )
        self.expected = expected
        self.actual = actual


class InvalidExtraMetaError(OtaCatalogError, ValueError):
    """Raised when externally supplied metadata has the wrong type for a field."""

    def __init__(self, field: str, expected: str | None = None) -> None:
        message = f"Invalid format for '{field}'"
        if expected:
            message += f", expected '{expected}' type"
        super().__init__(message + ".")
        self.field = field
        self.expected = expected


class CatalogFormatError(OtaCatalogError):
    """Raised when a persisted manifest cannot be read as a list of records."""


class HeaderLengthMismatchError(HeaderDecodeError):
    """Raised when ``headerLength`` disagrees with the fields announced by the control bits."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Header length {actual} does not match field control ({expected})")
        self.expected = expected
        self.actual = actual


class StrayFileError(OtaCatalogError):
    """Raised when a tier directory holds a file outside any manufacturer subdirectory."""
