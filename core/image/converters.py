"""
Image format conversion utilities.

Handles conversions between different image formats:
- Encoded bytes (JPEG, PNG, WebP, ...)
- NumPy arrays (OpenCV BGR format)
- PIL Images (RGB format)
"""

import io
import logging
from typing import Optional, Tuple

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


class ImageConverters:
    """Utilities for converting between image formats."""

    @staticmethod
    def pil_to_numpy(image: Image.Image, bgr: bool = True) -> np.ndarray:
        """
        Convert PIL Image to NumPy array.

        Args:
            image: PIL Image
            bgr: If True, convert to BGR format (OpenCV), else keep RGB

        Returns:
            NumPy array
        """
        array = np.array(image)

        # Convert RGB to BGR if needed
        if bgr and len(array.shape) == 3 and array.shape[2] == 3:
            array = cv2.cvtColor(array, cv2.COLOR_RGB2BGR)

        return array

    @staticmethod
    def read_dimensions(data: bytes) -> Optional[Tuple[int, int]]:
        """
        Read natural pixel dimensions from encoded image bytes.

        Returns:
            (width, height), or None if the bytes are not a decodable image
        """
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.verify()
                return image.size
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            SyntaxError,
            ValueError,
        ) as e:
            logger.debug(f"Could not read image dimensions: {e}")
            return None

    @staticmethod
    def decode_to_bgr(data: bytes) -> Optional[np.ndarray]:
        """
        Decode image bytes into a BGR array.

        Transparency is dropped; grayscale and palette images are expanded
        to three channels.

        Returns:
            BGR uint8 array, or None if decoding fails
        """
        try:
            with Image.open(io.BytesIO(data)) as image:
                rgb = image.convert("RGB")
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            SyntaxError,
            ValueError,
        ) as e:
            logger.warning(f"Failed to decode image: {e}")
            return None

        return ImageConverters.pil_to_numpy(rgb, bgr=True)

    @staticmethod
    def encode_jpeg(image: np.ndarray, quality: int = 90) -> Optional[bytes]:
        """
        Encode a BGR array as JPEG.

        Args:
            image: OpenCV image (NumPy array)
            quality: JPEG quality (1-100)

        Returns:
            Encoded bytes, or None if the encoder fails
        """
        try:
            ok, buffer = cv2.imencode(".jpg", image, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
        except cv2.error as e:
            logger.error(f"JPEG encoding failed: {e}")
            return None

        if not ok:
            logger.error("JPEG encoder returned no data")
            return None
        return buffer.tobytes()
