"""
Schemas Package

This package contains all Pydantic schemas for data validation and serialization,
organized by domain for better maintainability.

These schemas are shared across all application layers:
- API (routers, dependencies)
- Services (business logic)
- Core (infrastructure)
"""

from core.enums import CropUnit, ErrorKind, FilterChannel, LibraryState, NotificationLevel

# Common models (transform state)
from .common import CropRegion, FilterSettings, ImageMetadata

# System models
from .system import SystemStatus

# Media library models
from .media import (
    ActionResult,
    AddUrlRequest,
    AspectRequest,
    BulkDeleteRequest,
    BulkDeleteResult,
    DisplaySizeRequest,
    FilterValueRequest,
    LibrarySnapshot,
    MediaItem,
    Notification,
    PreviewView,
    ResizeRequest,
    UploadRejection,
    UploadReport,
)

# Explicitly declare public API for re-export
__all__ = [
    # Enums
    "CropUnit",
    "ErrorKind",
    "FilterChannel",
    "LibraryState",
    "NotificationLevel",
    # Common models
    "CropRegion",
    "FilterSettings",
    "ImageMetadata",
    # System models
    "SystemStatus",
    # Media models
    "MediaItem",
    "Notification",
    "ActionResult",
    "BulkDeleteResult",
    "UploadRejection",
    "UploadReport",
    "PreviewView",
    "LibrarySnapshot",
    "AddUrlRequest",
    "DisplaySizeRequest",
    "AspectRequest",
    "ResizeRequest",
    "FilterValueRequest",
    "BulkDeleteRequest",
]
