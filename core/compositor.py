"""
Compositor - rasterizes crop -> resize -> filter into an encoded JPEG.

Composition mirrors a 2D canvas: a surface is allocated at the output
size, the filter expression is set as drawing state, and the source
rectangle is then drawn scaled to fill the surface. The filter is set
before the draw; it only affects draws issued after it is set.

Output dimensions are rounded to the nearest integer (halves up) and are
at least one pixel on each axis.
"""

import logging
import math
from typing import Optional, Tuple

import cv2
import numpy as np

from core.constants import CompositorConstants
from core.filters import apply_filter_expression
from core.geometry import to_pixel_crop
from core.image.converters import ImageConverters
from core.utils.decorators import timer
from schemas import CropRegion

logger = logging.getLogger(__name__)

SourceRect = Tuple[float, float, float, float]


class SurfaceUnavailableError(Exception):
    """Output surface could not be allocated"""


def round_px(value: float) -> int:
    """Nearest integer pixel count, halves rounded up, minimum 1"""
    return max(1, int(math.floor(value + 0.5)))


class RasterSurface:
    """BGR drawing surface with canvas-like filter state"""

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise SurfaceUnavailableError(f"Invalid surface size {width}x{height}")
        if (
            width > CompositorConstants.MAX_SURFACE_DIMENSION
            or height > CompositorConstants.MAX_SURFACE_DIMENSION
            or width * height > CompositorConstants.MAX_SURFACE_AREA
        ):
            raise SurfaceUnavailableError(f"Surface {width}x{height} exceeds limits")

        try:
            self.pixels = np.zeros((height, width, 3), dtype=np.uint8)
        except MemoryError as e:
            raise SurfaceUnavailableError(f"Cannot allocate {width}x{height} surface: {e}")

        self.width = width
        self.height = height
        self.filter = "none"

    def draw_image(
        self,
        source: np.ndarray,
        source_rect: SourceRect,
        dest_rect: Tuple[int, int, int, int],
    ):
        """
        Draw a source rectangle scaled into a destination rectangle.

        The current filter is applied to the drawn pixels.

        Args:
            source: BGR source image
            source_rect: (x, y, width, height) in source pixels
            dest_rect: (x, y, width, height) in surface pixels
        """
        src_h, src_w = source.shape[:2]
        sx, sy, sw, sh = source_rect
        dx, dy, dw, dh = dest_rect

        x0, x1 = _pixel_span(sx, sw, src_w)
        y0, y1 = _pixel_span(sy, sh, src_h)
        region = source[y0:y1, x0:x1]

        region_h, region_w = region.shape[:2]
        if (dw, dh) == (region_w, region_h):
            drawn = region.copy()
        else:
            shrinking = dw < region_w or dh < region_h
            interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
            drawn = cv2.resize(region, (dw, dh), interpolation=interpolation)

        if drawn.ndim == 2:
            drawn = cv2.cvtColor(drawn, cv2.COLOR_GRAY2BGR)

        self.pixels[dy : dy + dh, dx : dx + dw] = apply_filter_expression(drawn, self.filter)

    def encode_jpeg(self, quality: int) -> Optional[bytes]:
        """Encode the surface contents as JPEG"""
        return ImageConverters.encode_jpeg(self.pixels, quality)


def _pixel_span(start: float, length: float, limit: int) -> Tuple[int, int]:
    """Integer [begin, end) covering a float span, clamped to the image, never empty"""
    begin = min(max(int(math.floor(start + 0.5)), 0), limit - 1)
    end = min(max(int(math.floor(start + length + 0.5)), begin + 1), limit)
    return begin, end


class Compositor:
    """Renders a preview session's transform state into an encoded image"""

    def __init__(self, jpeg_quality: int = CompositorConstants.JPEG_QUALITY):
        self.jpeg_quality = jpeg_quality

    @staticmethod
    def source_rect(
        natural_size: Tuple[int, int],
        crop: Optional[CropRegion] = None,
        display_size: Optional[Tuple[float, float]] = None,
    ) -> SourceRect:
        """
        Source rectangle in natural pixel space.

        The crop is defined against the displayed image; it is mapped to
        natural pixels through scaleX = natural/displayed (and likewise Y).

        Args:
            natural_size: (width, height) of the decoded source
            crop: Active crop, or None for the full image
            display_size: Rendered (width, height); natural size when unknown

        Returns:
            (x, y, width, height) in natural pixels
        """
        natural_w, natural_h = natural_size
        if crop is None:
            return 0.0, 0.0, float(natural_w), float(natural_h)

        display_w, display_h = display_size or (natural_w, natural_h)
        scale_x = natural_w / display_w
        scale_y = natural_h / display_h

        pixel_crop = to_pixel_crop(crop, display_w, display_h)
        return (
            pixel_crop.x * scale_x,
            pixel_crop.y * scale_y,
            pixel_crop.width * scale_x,
            pixel_crop.height * scale_y,
        )

    @staticmethod
    def output_size(source_rect: SourceRect, scale_percent: float) -> Tuple[int, int]:
        """Output (width, height) for a source rectangle and uniform scale"""
        _, _, source_w, source_h = source_rect
        factor = scale_percent / 100
        return round_px(source_w * factor), round_px(source_h * factor)

    def render(
        self,
        source: np.ndarray,
        crop: Optional[CropRegion] = None,
        scale_percent: float = 100,
        filter_expression: str = "",
        display_size: Optional[Tuple[float, float]] = None,
    ) -> Optional[bytes]:
        """
        Compose and encode the output image.

        Runs as one synchronous unit over the parameters it was given.

        Args:
            source: Decoded BGR source image
            crop: Active crop region, or None
            scale_percent: Uniform resize applied after cropping
            filter_expression: Canonical filter expression
            display_size: Rendered (width, height) the crop refers to

        Returns:
            JPEG bytes, or None when processing is unavailable
        """
        if source is None or source.size == 0:
            logger.warning("Nothing to compose: empty source image")
            return None

        with timer() as t:
            natural_h, natural_w = source.shape[:2]
            rect = self.source_rect((natural_w, natural_h), crop, display_size)
            out_w, out_h = self.output_size(rect, scale_percent)

            try:
                surface = RasterSurface(out_w, out_h)
            except SurfaceUnavailableError as e:
                logger.error(f"Composition unavailable: {e}")
                return None

            surface.filter = filter_expression or "none"
            surface.draw_image(source, rect, (0, 0, out_w, out_h))
            encoded = surface.encode_jpeg(self.jpeg_quality)

        if encoded is None:
            return None

        logger.info(
            f"Composed {natural_w}x{natural_h} -> {out_w}x{out_h} "
            f"({len(encoded)} bytes, {t['ms']} ms)"
        )
        return encoded
