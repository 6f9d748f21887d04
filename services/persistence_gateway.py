"""
Persistence Gateway - the only component that mutates the backend.

Uploads encoded images to object storage and registers library records,
and removes both. Every operation requires an owner identity.
"""

import asyncio
import logging
import posixpath
import secrets
import string
import time
from typing import Iterable, List, Optional

from api.exceptions import ExternalIOError, NotAuthenticatedError
from core.constants import LibraryConstants
from core.identity import IdentityProvider
from core.media_repository import MediaRepository
from core.storage import ObjectStorage
from core.utils.formatting import name_from_url
from schemas import BulkDeleteResult, ErrorKind, MediaItem

logger = logging.getLogger(__name__)

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def object_path(owner_id: str, extension: str) -> str:
    """
    Collision-resistant storage path for a new object.

    Format: ``{owner}/{epoch_ms}-{random}.{ext}``
    """
    suffix = "".join(
        secrets.choice(_SUFFIX_ALPHABET) for _ in range(LibraryConstants.RANDOM_SUFFIX_LENGTH)
    )
    ext = (extension or LibraryConstants.FALLBACK_EXTENSION).lstrip(".").lower()
    return f"{owner_id}/{int(time.time() * 1000)}-{suffix}.{ext}"


class PersistenceGateway:
    """Storage and record mutations scoped to the current owner"""

    def __init__(
        self,
        storage: ObjectStorage,
        repository: MediaRepository,
        identity: IdentityProvider,
    ):
        """
        Initialize gateway

        Args:
            storage: Object storage backend
            repository: Relational store for media records
            identity: Provider of the current owner
        """
        self.storage = storage
        self.repository = repository
        self.identity = identity

    def require_owner(self) -> str:
        """Current owner id; raises NotAuthenticatedError when absent"""
        owner_id = self.identity.get_current_owner()
        if not owner_id:
            raise NotAuthenticatedError()
        return owner_id

    async def list_items(self) -> List[MediaItem]:
        """Owner's items, newest first; empty when nobody is signed in"""
        owner_id = self.identity.get_current_owner()
        if not owner_id:
            return []

        try:
            return await asyncio.to_thread(self.repository.query, owner_id)
        except Exception as e:
            raise ExternalIOError(f"Failed to load media library: {e}") from e

    async def upload(self, data: bytes, name: str, extension: str) -> MediaItem:
        """
        Store bytes and register a library record for them.

        The object is uploaded first, then the record inserted. If the
        insert fails the stored object is left behind (logged, not
        retried).

        Args:
            data: Encoded image bytes
            name: Display name of the new item
            extension: File extension for the stored object

        Returns:
            The new MediaItem

        Raises:
            NotAuthenticatedError: No owner identity
            ExternalIOError: Storage or database failure
        """
        owner_id = self.require_owner()
        path = object_path(owner_id, extension)

        try:
            stored_path = await asyncio.to_thread(self.storage.put, path, data)
        except Exception as e:
            raise ExternalIOError(f"Storage upload failed: {e}") from e

        public_url = self.storage.public_url(stored_path)

        try:
            item = await asyncio.to_thread(self.repository.insert, owner_id, public_url, name)
        except Exception as e:
            logger.error(f"Record insert failed after upload; orphaned object {stored_path}: {e}")
            raise ExternalIOError(f"Failed to register {name}: {e}") from e

        logger.info(f"Uploaded {name} ({len(data)} bytes) as {item.id}")
        return item

    async def register_url(self, url: str, name: Optional[str] = None) -> MediaItem:
        """
        Register an existing image URL without uploading anything.

        Raises:
            NotAuthenticatedError: No owner identity
            ExternalIOError: Database failure
        """
        owner_id = self.require_owner()
        display_name = name or name_from_url(url)

        try:
            item = await asyncio.to_thread(self.repository.insert, owner_id, url, display_name)
        except Exception as e:
            raise ExternalIOError(str(e)) from e

        logger.info(f"Registered external image {url} as {item.id}")
        return item

    async def remove(self, item: MediaItem) -> None:
        """
        Delete an item's stored object (best effort) and its record.

        Storage failures are logged and ignored; the record deletion is
        what makes the item gone. Objects outside the caller's own
        namespace are treated as external references and left in place.

        Raises:
            NotAuthenticatedError: No owner identity
            ExternalIOError: Record deletion failed
        """
        owner_id = self.require_owner()

        path = self.storage.path_from_url(item.url)
        if path and not path.startswith(f"{owner_id}/"):
            logger.info(f"Not deleting {path} for {item.id}: outside namespace of {owner_id}")
            path = None
        if path:
            try:
                await asyncio.to_thread(self.storage.remove, [path])
            except Exception as e:
                logger.warning(
                    f"Storage delete failed for {item.id}; object orphaned at {path}: {e}"
                )

        try:
            await asyncio.to_thread(self.repository.delete, item.id)
        except Exception as e:
            raise ExternalIOError(f"Failed to delete record {item.id}: {e}") from e

        logger.info(f"Removed media item {item.id}")

    async def bulk_remove(self, items: Iterable[MediaItem]) -> BulkDeleteResult:
        """
        Remove items one after another.

        A failure on one item never stops the rest.

        Raises:
            NotAuthenticatedError: No owner identity (nothing attempted)
        """
        self.require_owner()
        items = list(items)

        deleted = 0
        failed_ids = []
        for item in items:
            try:
                await self.remove(item)
                deleted += 1
            except Exception as e:
                logger.error(f"Bulk delete: item {item.id} failed: {e}")
                failed_ids.append(item.id)

        return BulkDeleteResult(
            requested=len(items),
            deleted=deleted,
            failed_ids=failed_ids,
            error_kind=ErrorKind.PARTIAL_BULK_FAILURE if failed_ids else None,
        )


def extension_for(file_name: str, content_type: Optional[str] = None) -> str:
    """File extension from a name, falling back to the content type"""
    ext = posixpath.splitext(file_name or "")[1].lstrip(".")
    if ext:
        return ext.lower()
    if content_type and content_type.startswith("image/"):
        return content_type.split("/", 1)[1].split("+", 1)[0]
    return LibraryConstants.FALLBACK_EXTENSION
