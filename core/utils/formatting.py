"""
Formatting helpers for library records.
"""

import posixpath
from urllib.parse import urlparse

from core.constants import CompositorConstants, LibraryConstants


def format_file_size(size_bytes: int) -> str:
    """
    Human readable byte size.

    Examples:
        >>> format_file_size(512)
        '512 B'
        >>> format_file_size(2048)
        '2.0 KB'
        >>> format_file_size(3 * 1024 * 1024)
        '3.00 MB'
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.2f} MB"


def derived_file_name(source_name: str) -> str:
    """Name of an edited copy: extension stripped, '-edited.jpg' appended"""
    stem, ext = posixpath.splitext(source_name)
    base = stem if ext else source_name
    return f"{base}{CompositorConstants.EDITED_SUFFIX}.{CompositorConstants.OUTPUT_EXTENSION}"


def name_from_url(url: str) -> str:
    """Last path segment of a URL, or a generic name when there is none"""
    path = urlparse(url).path if "://" in url else url
    segment = path.rstrip("/").rsplit("/", 1)[-1]
    return segment or LibraryConstants.EXTERNAL_IMAGE_NAME
