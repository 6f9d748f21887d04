"""
Source image loading.

Managed-storage URLs are read straight from object storage; anything else
is fetched over HTTP, streamed and cut off once it exceeds ``max_bytes``.
"""

import asyncio
import logging
from typing import Optional

import httpx

from core.constants import LibraryConstants
from core.storage import ObjectStorage

logger = logging.getLogger(__name__)


class FetchTooLargeError(Exception):
    """External resource exceeds the fetch size limit"""


class ImageLoader:
    """Fetch encoded image bytes for a resource URL"""

    def __init__(
        self,
        storage: ObjectStorage,
        timeout_seconds: float = LibraryConstants.DEFAULT_FETCH_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_bytes: int = LibraryConstants.DEFAULT_FETCH_MAX_MB * 1024 * 1024,
    ):
        """
        Initialize loader

        Args:
            storage: Object storage serving managed URLs
            timeout_seconds: HTTP timeout for external URLs
            transport: Optional httpx transport (used by tests)
            max_bytes: Largest external response accepted
        """
        self.storage = storage
        self.timeout_seconds = timeout_seconds
        self.transport = transport
        self.max_bytes = max_bytes

    async def load(self, url: str) -> bytes:
        """
        Load image bytes.

        Raises:
            StorageError, OSError: Managed object could not be read
            httpx.HTTPError: External fetch failed
            FetchTooLargeError: External response larger than max_bytes
        """
        path = self.storage.path_from_url(url)
        if path is not None:
            return await asyncio.to_thread(self.storage.read, path)

        async with httpx.AsyncClient(
            timeout=self.timeout_seconds, transport=self.transport, follow_redirects=True
        ) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()

                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > self.max_bytes:
                    raise FetchTooLargeError(
                        f"{url} declares {declared} bytes, limit is {self.max_bytes}"
                    )

                content = bytearray()
                async for chunk in response.aiter_bytes():
                    content.extend(chunk)
                    if len(content) > self.max_bytes:
                        raise FetchTooLargeError(f"{url} exceeds {self.max_bytes} bytes")

        logger.debug(f"Fetched {len(content)} bytes from {url}")
        return bytes(content)
