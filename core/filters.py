"""
Brightness / contrast / saturation filter stack.

The expression built by ``filter_expression`` is the single source of truth
for both the live preview (the client applies it as a CSS ``filter``) and
the final raster composition (``apply_filter_expression``), so what is
previewed is what gets saved.
"""

import logging
import re
from typing import List, Tuple

import numpy as np

from core.constants import FilterConstants
from core.enums import FilterChannel
from schemas import FilterSettings

logger = logging.getLogger(__name__)

# CSS function name for each channel, in application order
_CSS_FUNCTIONS = (
    (FilterChannel.BRIGHTNESS, "brightness"),
    (FilterChannel.CONTRAST, "contrast"),
    (FilterChannel.SATURATION, "saturate"),
)

_FUNCTION_PATTERN = re.compile(r"([a-z-]+)\(\s*([-+]?\d*\.?\d+)\s*%\s*\)")


def default_filters() -> FilterSettings:
    """Identity settings"""
    return FilterSettings()


def set_channel(settings: FilterSettings, channel: FilterChannel, value: int) -> FilterSettings:
    """
    Return new settings with one channel replaced.

    Range is enforced by the caller (slider bounds); values are not
    re-validated here.
    """
    return settings.model_copy(update={FilterChannel(channel).value: value})


def reset() -> FilterSettings:
    """Return identity settings"""
    return default_filters()


def has_changes(settings: FilterSettings) -> bool:
    """True iff any channel differs from identity"""
    identity = FilterConstants.IDENTITY_VALUE
    return (
        settings.brightness != identity
        or settings.contrast != identity
        or settings.saturation != identity
    )


def filter_expression(settings: FilterSettings) -> str:
    """
    Build the canonical filter expression.

    Example:
        >>> filter_expression(FilterSettings(brightness=120))
        'brightness(120%) contrast(100%) saturate(100%)'
    """
    values = {
        FilterChannel.BRIGHTNESS: settings.brightness,
        FilterChannel.CONTRAST: settings.contrast,
        FilterChannel.SATURATION: settings.saturation,
    }
    return " ".join(f"{name}({values[channel]}%)" for channel, name in _CSS_FUNCTIONS)


def parse_filter_expression(expression: str) -> List[Tuple[str, float]]:
    """
    Parse an expression into (function, amount) pairs in order.

    Amounts are fractions (120% -> 1.2). Unknown functions are skipped
    with a warning.
    """
    known = {name for _, name in _CSS_FUNCTIONS}
    operations = []
    for name, amount in _FUNCTION_PATTERN.findall(expression or ""):
        if name not in known:
            logger.warning(f"Ignoring unsupported filter function: {name}")
            continue
        operations.append((name, float(amount) / 100))
    return operations


def _saturation_matrix(amount: float) -> np.ndarray:
    """3x3 RGB matrix of the CSS saturate() function"""
    r, g, b = FilterConstants.LUMA_R, FilterConstants.LUMA_G, FilterConstants.LUMA_B
    s = amount
    return np.array(
        [
            [r + (1 - r) * s, g - g * s, b - b * s],
            [r - r * s, g + (1 - g) * s, b - b * s],
            [r - r * s, g - g * s, b + (1 - b) * s],
        ],
        dtype=np.float32,
    )


def apply_filter_expression(image: np.ndarray, expression: str) -> np.ndarray:
    """
    Apply a filter expression to a BGR image.

    Functions are applied in expression order with clamping after each,
    matching CSS filter semantics in sRGB space.

    Args:
        image: uint8 image in BGR (or grayscale) format
        expression: Filter expression, e.g. from ``filter_expression``

    Returns:
        New uint8 image; the input is returned unchanged for identity
    """
    operations = [(n, a) for n, a in parse_filter_expression(expression) if a != 1.0]
    if not operations:
        return image

    grayscale = image.ndim == 2
    rgb = np.repeat(image[:, :, None], 3, axis=2) if grayscale else image[:, :, ::-1]
    pixels = rgb.astype(np.float32) / 255.0

    for name, amount in operations:
        if name == "brightness":
            pixels = pixels * amount
        elif name == "contrast":
            pixels = (pixels - 0.5) * amount + 0.5
        elif name == "saturate":
            pixels = pixels @ _saturation_matrix(amount).T
        np.clip(pixels, 0.0, 1.0, out=pixels)

    result = np.rint(pixels * 255.0).astype(np.uint8)
    if grayscale:
        return result[:, :, 0]
    return np.ascontiguousarray(result[:, :, ::-1])
