"""
Media library API models.

This module contains models for library records and controller results:
- MediaItem record
- Request bodies for preview and library actions
- Action results, upload reports and controller snapshots
"""

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from core.constants import FilterConstants, ResizeConstants
from core.enums import ErrorKind, LibraryState, NotificationLevel

from .common import CropRegion, FilterSettings, ImageMetadata


class MediaItem(BaseModel):
    """Persisted library record"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    created_at: datetime


class Notification(BaseModel):
    """Transient user-visible message"""

    level: NotificationLevel
    message: str
    error_kind: Optional[ErrorKind] = None


class ActionResult(BaseModel):
    """Outcome of a controller action"""

    success: bool
    message: str = ""
    error_kind: Optional[ErrorKind] = None
    item: Optional[MediaItem] = None


class BulkDeleteResult(BaseModel):
    """Outcome of a bulk deletion (at-least-effort, not transactional)"""

    requested: int
    deleted: int
    failed_ids: List[str] = Field(default_factory=list)
    error_kind: Optional[ErrorKind] = None


class UploadRejection(BaseModel):
    """File that was not uploaded"""

    name: str
    reason: str
    error_kind: ErrorKind


class UploadReport(BaseModel):
    """Per-file results of a multi-file upload"""

    uploaded: List[MediaItem] = Field(default_factory=list)
    rejected: List[UploadRejection] = Field(default_factory=list)


class PreviewView(BaseModel):
    """Externally observable state of the open preview session"""

    session_id: int
    item: MediaItem
    metadata: Optional[ImageMetadata] = None
    display_width: Optional[float] = None
    display_height: Optional[float] = None
    crop_mode: bool = False
    crop: Optional[CropRegion] = None
    aspect: Optional[float] = None
    resize_scale: int = ResizeConstants.DEFAULT_SCALE_PERCENT
    filters: FilterSettings = FilterSettings()
    filter_expression: str
    has_filter_changes: bool = False
    is_edited: bool = False


class LibrarySnapshot(BaseModel):
    """Externally observable controller state"""

    state: LibraryState
    total_items: int
    items: List[MediaItem]
    search_query: str = ""
    selection_mode: bool = False
    selected_ids: List[str] = Field(default_factory=list)
    preview: Optional[PreviewView] = None
    notifications: List[Notification] = Field(default_factory=list)


# Request bodies
class AddUrlRequest(BaseModel):
    """Register an external image by URL"""

    url: str = ""


class DisplaySizeRequest(BaseModel):
    """Rendered size of the preview image"""

    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)


class AspectRequest(BaseModel):
    """Aspect ratio as a preset label ("16:9", "Free") or a positive number"""

    ratio: Optional[Union[float, str]] = None


class ResizeRequest(BaseModel):
    """Uniform output scale"""

    scale_percent: int = Field(
        ..., ge=ResizeConstants.MIN_SCALE_PERCENT, le=ResizeConstants.MAX_SCALE_PERCENT
    )


class FilterValueRequest(BaseModel):
    """Single filter channel value"""

    value: int = Field(..., ge=FilterConstants.MIN_VALUE, le=FilterConstants.MAX_VALUE)


class BulkDeleteRequest(BaseModel):
    """Items to delete; the current selection when omitted"""

    ids: Optional[List[str]] = None
