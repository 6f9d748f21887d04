"""
Image utilities - modular architecture.

This package provides focused image utilities:
- converters: Format conversions (bytes, NumPy, PIL) and JPEG encoding
- loader: Fetch source image bytes from managed storage or over HTTP
"""

from core.image.converters import ImageConverters
from core.image.loader import ImageLoader

__all__ = ["ImageConverters", "ImageLoader"]
