"""
Preview session state and its reducer.

A preview session is an immutable bundle of transform state. Every user
action is a small action object; ``reduce_session`` returns the next
session without mutating the previous one, so a session captured when a
save starts is exactly what gets composited.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple, Union

from core import filters as filter_stack
from core import geometry
from core.constants import ErrorMessages, ResizeConstants
from core.enums import FilterChannel
from schemas import CropRegion, FilterSettings, ImageMetadata, MediaItem, PreviewView

logger = logging.getLogger(__name__)


class InvalidActionError(ValueError):
    """Action arguments violate a transform-state invariant"""


@dataclass(frozen=True)
class PreviewSession:
    """Transform state of one open preview"""

    session_id: int
    item: MediaItem
    metadata: Optional[ImageMetadata] = None
    display_size: Optional[Tuple[float, float]] = None
    crop_mode: bool = False
    crop: Optional[CropRegion] = None
    aspect: Optional[float] = None
    resize_scale: int = ResizeConstants.DEFAULT_SCALE_PERCENT
    filters: FilterSettings = field(default_factory=filter_stack.default_filters)

    @property
    def effective_display_size(self) -> Optional[Tuple[float, float]]:
        """Reported displayed size, falling back to natural size"""
        if self.display_size is not None:
            return self.display_size
        if self.metadata is not None:
            return float(self.metadata.width), float(self.metadata.height)
        return None

    @property
    def filter_expression(self) -> str:
        return filter_stack.filter_expression(self.filters)

    @property
    def is_edited(self) -> bool:
        """Crop mode on, or resized, or any filter changed"""
        return (
            self.crop_mode
            or self.resize_scale != ResizeConstants.DEFAULT_SCALE_PERCENT
            or filter_stack.has_changes(self.filters)
        )

    @property
    def active_crop(self) -> Optional[CropRegion]:
        """Crop to composite; None unless crop mode is on"""
        return self.crop if self.crop_mode else None

    def to_view(self) -> PreviewView:
        display = self.display_size
        return PreviewView(
            session_id=self.session_id,
            item=self.item,
            metadata=self.metadata,
            display_width=display[0] if display else None,
            display_height=display[1] if display else None,
            crop_mode=self.crop_mode,
            crop=self.crop,
            aspect=self.aspect,
            resize_scale=self.resize_scale,
            filters=self.filters,
            filter_expression=self.filter_expression,
            has_filter_changes=filter_stack.has_changes(self.filters),
            is_edited=self.is_edited,
        )


# Actions
@dataclass(frozen=True)
class ToggleCrop:
    pass


@dataclass(frozen=True)
class SetAspect:
    ratio: Optional[float]


@dataclass(frozen=True)
class AdjustCrop:
    region: CropRegion


@dataclass(frozen=True)
class SetDisplaySize:
    width: float
    height: float


@dataclass(frozen=True)
class SetResizeScale:
    percent: int


@dataclass(frozen=True)
class SetFilter:
    channel: FilterChannel
    value: int


@dataclass(frozen=True)
class ResetFilters:
    pass


@dataclass(frozen=True)
class MetadataLoaded:
    width: int
    height: int


@dataclass(frozen=True)
class FileSizeLoaded:
    file_size: str


SessionAction = Union[
    ToggleCrop,
    SetAspect,
    AdjustCrop,
    SetDisplaySize,
    SetResizeScale,
    SetFilter,
    ResetFilters,
    MetadataLoaded,
    FileSizeLoaded,
]


def _with_initial_crop(session: PreviewSession) -> PreviewSession:
    """Fill in the initial crop once crop mode is on and a size is known"""
    if not session.crop_mode or session.crop is not None:
        return session
    size = session.effective_display_size
    if size is None:
        return session
    return replace(session, crop=geometry.initial_crop(session.aspect, *size))


def reduce_session(session: PreviewSession, action: SessionAction) -> PreviewSession:
    """
    Apply one action to a preview session.

    Args:
        session: Current session
        action: User or loader action

    Returns:
        New session (the input is never modified)

    Raises:
        InvalidActionError: If the action's arguments are invalid
    """
    if isinstance(action, ToggleCrop):
        if session.crop_mode:
            return replace(session, crop_mode=False, crop=None)
        return _with_initial_crop(replace(session, crop_mode=True, crop=None))

    if isinstance(action, SetAspect):
        if action.ratio is not None and action.ratio <= 0:
            raise InvalidActionError(ErrorMessages.INVALID_ASPECT.format(value=action.ratio))
        updated = replace(session, aspect=action.ratio)
        size = updated.effective_display_size
        # Unpinning keeps the crop as last adjusted
        if updated.crop_mode and action.ratio is not None and size is not None:
            updated = replace(updated, crop=geometry.recenter(action.ratio, *size))
        return updated

    if isinstance(action, AdjustCrop):
        if not session.crop_mode:
            raise InvalidActionError(ErrorMessages.INVALID_CROP.format(reason="crop mode is off"))
        size = session.effective_display_size
        error = geometry.validate_crop(action.region, *(size or (None, None)))
        if error:
            raise InvalidActionError(error)
        return replace(session, crop=action.region)

    if isinstance(action, SetDisplaySize):
        if action.width <= 0 or action.height <= 0:
            raise InvalidActionError(
                ErrorMessages.INVALID_DISPLAY_SIZE.format(width=action.width, height=action.height)
            )
        return _with_initial_crop(replace(session, display_size=(action.width, action.height)))

    if isinstance(action, SetResizeScale):
        if not (
            ResizeConstants.MIN_SCALE_PERCENT <= action.percent <= ResizeConstants.MAX_SCALE_PERCENT
        ):
            raise InvalidActionError(
                ErrorMessages.INVALID_SCALE.format(
                    min=ResizeConstants.MIN_SCALE_PERCENT, max=ResizeConstants.MAX_SCALE_PERCENT
                )
            )
        return replace(session, resize_scale=action.percent)

    if isinstance(action, SetFilter):
        updated_filters = filter_stack.set_channel(session.filters, action.channel, action.value)
        return replace(session, filters=updated_filters)

    if isinstance(action, ResetFilters):
        return replace(session, filters=filter_stack.reset())

    if isinstance(action, MetadataLoaded):
        metadata = ImageMetadata(width=action.width, height=action.height)
        return _with_initial_crop(replace(session, metadata=metadata))

    if isinstance(action, FileSizeLoaded):
        if session.metadata is None:
            return session
        return replace(
            session, metadata=session.metadata.model_copy(update={"file_size": action.file_size})
        )

    raise InvalidActionError(f"Unknown action: {type(action).__name__}")
