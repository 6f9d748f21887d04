"""
Centralized enums for the Media Pipeline service.

Shared by schemas, services and API layers so that every layer agrees
on the same string values.
"""

from enum import Enum


class CropUnit(str, Enum):
    """Unit of a crop rectangle, relative to the displayed image."""

    PERCENT = "%"
    PIXEL = "px"


class FilterChannel(str, Enum):
    """Independent tone channels of the filter stack."""

    BRIGHTNESS = "brightness"
    CONTRAST = "contrast"
    SATURATION = "saturation"


class LibraryState(str, Enum):
    """States of the library controller."""

    BROWSING = "browsing"
    PREVIEW_OPEN = "preview_open"
    SAVING = "saving"
    DOWNLOADING = "downloading"


class ErrorKind(str, Enum):
    """Error taxonomy surfaced to callers."""

    VALIDATION_FAILURE = "validation_failure"
    NOT_AUTHENTICATED = "not_authenticated"
    NOT_FOUND = "not_found"
    EXTERNAL_IO_FAILURE = "external_io_failure"
    PROCESSING_UNAVAILABLE = "processing_unavailable"
    PARTIAL_BULK_FAILURE = "partial_bulk_failure"


class NotificationLevel(str, Enum):
    """Severity of a transient user notification."""

    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"
