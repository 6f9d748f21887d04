"""
Crop geometry for the transform pipeline.

All crop arithmetic happens in percent-of-displayed-size space so it stays
resolution independent. Conversion to natural pixel space is left to the
compositor, which knows the ratio of natural to displayed dimensions.

Every function here is pure: regions are immutable and new ones are
returned.
"""

import logging
import math
from typing import Optional, Union

from core.constants import CropConstants, ErrorMessages
from core.enums import CropUnit
from schemas import CropRegion

logger = logging.getLogger(__name__)


def to_pixel_crop(region: CropRegion, display_width: float, display_height: float) -> CropRegion:
    """
    Convert a crop to pixels of the displayed image.

    Args:
        region: Crop in percent or pixels
        display_width: Rendered image width
        display_height: Rendered image height

    Returns:
        Crop with unit=px
    """
    if region.unit == CropUnit.PIXEL:
        return region

    return CropRegion(
        x=region.x * display_width / 100,
        y=region.y * display_height / 100,
        width=region.width * display_width / 100,
        height=region.height * display_height / 100,
        unit=CropUnit.PIXEL,
    )


def to_percent_crop(region: CropRegion, display_width: float, display_height: float) -> CropRegion:
    """Convert a crop to percent of the displayed image."""
    if region.unit == CropUnit.PERCENT:
        return region

    return CropRegion(
        x=region.x / display_width * 100,
        y=region.y / display_height * 100,
        width=region.width / display_width * 100,
        height=region.height / display_height * 100,
        unit=CropUnit.PERCENT,
    )


def make_aspect_crop(
    width_percent: float, aspect: float, display_width: float, display_height: float
) -> CropRegion:
    """
    Build a crop anchored at the top-left with the given aspect ratio.

    The crop starts at ``width_percent`` of the displayed width; its height
    follows from the aspect ratio. If the result overflows the image the
    crop is shrunk until it fits, keeping the ratio.

    Args:
        width_percent: Requested width as percent of the displayed width
        aspect: Width / height ratio
        display_width: Rendered image width
        display_height: Rendered image height

    Returns:
        Percent crop positioned at (0, 0)
    """
    width = width_percent * display_width / 100
    height = width / aspect

    if height > display_height:
        height = display_height
        width = height * aspect

    if width > display_width:
        width = display_width
        height = width / aspect

    return CropRegion(
        x=0.0,
        y=0.0,
        width=width / display_width * 100,
        height=height / display_height * 100,
        unit=CropUnit.PERCENT,
    )


def center_crop(region: CropRegion, display_width: float, display_height: float) -> CropRegion:
    """Center a crop inside the displayed image, keeping its size and unit."""
    percent = to_percent_crop(region, display_width, display_height)
    centered = percent.model_copy(
        update={"x": (100 - percent.width) / 2, "y": (100 - percent.height) / 2}
    )

    if region.unit == CropUnit.PIXEL:
        return to_pixel_crop(centered, display_width, display_height)
    return centered


def initial_crop(
    aspect: Optional[float], display_width: float, display_height: float
) -> CropRegion:
    """
    Crop used when crop mode is entered.

    Uses the pinned ratio, or the 16:9 working ratio when free, at 90% of
    the displayed width, centered.
    """
    ratio = aspect or CropConstants.DEFAULT_WORKING_ASPECT
    crop = make_aspect_crop(
        CropConstants.INITIAL_CROP_WIDTH_PERCENT, ratio, display_width, display_height
    )
    return center_crop(crop, display_width, display_height)


def recenter(aspect: float, display_width: float, display_height: float) -> CropRegion:
    """Centered crop at 80% of the displayed width for a newly chosen ratio."""
    crop = make_aspect_crop(
        CropConstants.RECENTER_CROP_WIDTH_PERCENT, aspect, display_width, display_height
    )
    return center_crop(crop, display_width, display_height)


def parse_aspect(value: Union[None, float, int, str]) -> Optional[float]:
    """
    Parse an aspect ratio given as a preset label, "W:H" text or a number.

    Args:
        value: "Free", None, "16:9", "1.5" or 1.5

    Returns:
        Width / height ratio, or None when the ratio is not pinned

    Raises:
        ValueError: If the value is not a positive finite ratio
    """
    if value is None:
        return None

    if isinstance(value, str):
        label = value.strip()
        if not label or label.lower() == CropConstants.FREE_LABEL.lower():
            return None
        if label in CropConstants.ASPECT_PRESETS:
            return CropConstants.ASPECT_PRESETS[label]
        try:
            if ":" in label:
                w_text, _, h_text = label.partition(":")
                ratio = float(w_text) / float(h_text)
            else:
                ratio = float(label)
        except (ValueError, ZeroDivisionError):
            raise ValueError(ErrorMessages.INVALID_ASPECT.format(value=value))
    else:
        ratio = float(value)

    if not math.isfinite(ratio) or ratio <= 0:
        raise ValueError(ErrorMessages.INVALID_ASPECT.format(value=value))
    return ratio


def validate_crop(
    region: CropRegion,
    display_width: Optional[float] = None,
    display_height: Optional[float] = None,
) -> Optional[str]:
    """
    Check a crop against the displayed image bounds.

    Percent bounds are enforced by the model itself; pixel crops are checked
    here when the displayed size is known.

    Returns:
        Error message, or None if the crop is valid
    """
    if region.unit == CropUnit.PIXEL and display_width and display_height:
        if region.x + region.width > display_width + 1e-6:
            return ErrorMessages.INVALID_CROP.format(reason="exceeds displayed width")
        if region.y + region.height > display_height + 1e-6:
            return ErrorMessages.INVALID_CROP.format(reason="exceeds displayed height")
    return None
