"""
Metadata Probe - natural dimensions and byte size of a library image.

Both lookups are best effort: a failure yields "unavailable" (None) and
never raises into the caller.
"""

import asyncio
import logging
import posixpath
from typing import Optional, Tuple

from core.image.converters import ImageConverters
from core.image.loader import ImageLoader
from core.storage import ObjectStorage
from core.utils.formatting import format_file_size
from schemas import ImageMetadata

logger = logging.getLogger(__name__)


class MetadataProbe:
    """Derives ImageMetadata for a resource URL"""

    def __init__(self, loader: ImageLoader, storage: ObjectStorage):
        """
        Initialize probe

        Args:
            loader: Image source loader
            storage: Object storage used for byte-size lookups
        """
        self.loader = loader
        self.storage = storage

    async def probe_dimensions(self, url: str) -> Optional[Tuple[int, int]]:
        """
        Natural (width, height) of the image at url.

        Returns:
            Dimensions, or None if the resource cannot be loaded or decoded
        """
        try:
            data = await self.loader.load(url)
        except Exception as e:
            logger.info(f"Metadata unavailable for {url}: {e}")
            return None

        dimensions = await asyncio.to_thread(ImageConverters.read_dimensions, data)
        if dimensions is None:
            logger.info(f"Metadata unavailable for {url}: not a decodable image")
        return dimensions

    async def probe_file_size(self, url: str) -> Optional[int]:
        """
        Byte size of a managed-storage object.

        Only attempted for URLs in the storage namespace; looks up the
        object by listing its directory and matching the file name.

        Returns:
            Size in bytes, or None when unknown
        """
        path = self.storage.path_from_url(url)
        if path is None:
            return None

        directory, file_name = posixpath.split(path)
        try:
            entries = await asyncio.to_thread(self.storage.list, directory, file_name)
        except Exception as e:
            logger.info(f"File size lookup failed for {url}: {e}")
            return None

        for entry in entries:
            if entry.name == file_name:
                return entry.size
        return None

    async def probe(self, url: str) -> Optional[ImageMetadata]:
        """
        Dimensions plus formatted byte size.

        Returns:
            ImageMetadata, or None when dimensions are unavailable
        """
        dimensions = await self.probe_dimensions(url)
        if dimensions is None:
            return None

        width, height = dimensions
        size = await self.probe_file_size(url)
        return ImageMetadata(
            width=width,
            height=height,
            file_size=format_file_size(size) if size is not None else None,
        )
