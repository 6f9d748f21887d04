"""
Object storage for uploaded and derived images.

Objects live in a single bucket directory on disk and are published under
``{public_base_url}/{bucket}/{path}``. A URL belongs to the managed
namespace when it starts with ``{public_base_url}/{bucket}/``; anything
else is an external resource that storage never touches.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from threading import RLock
from typing import List, Optional

from core.constants import ErrorMessages, LibraryConstants

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Storage operation failed"""


@dataclass(frozen=True)
class StoredObject:
    """Listing entry for a stored object"""

    name: str
    size: int


class ObjectStorage:
    """
    Interface of the object storage backend.

    Implementations raise StorageError (or OSError) on failure.
    """

    bucket: str

    def put(self, path: str, data: bytes) -> str:
        """Store bytes under path, returns the object path"""
        raise NotImplementedError

    def public_url(self, path: str) -> str:
        """Public URL of an object path"""
        raise NotImplementedError

    def remove(self, paths: List[str]) -> None:
        """Delete objects"""
        raise NotImplementedError

    def list(self, prefix: str, search: Optional[str] = None) -> List[StoredObject]:
        """List objects directly under prefix whose name contains search"""
        raise NotImplementedError

    def read(self, path: str) -> bytes:
        """Read object bytes"""
        raise NotImplementedError

    def get_stats(self) -> dict:
        """Object count and total bytes"""
        raise NotImplementedError

    def path_from_url(self, url: str) -> Optional[str]:
        """
        Object path of a managed-storage URL.

        Returns:
            Path relative to the bucket, or None for external URLs
        """
        prefix = self.public_url("")
        if not url.startswith(prefix):
            return None
        path = url[len(prefix):]
        return path or None


class LocalObjectStorage(ObjectStorage):
    """Filesystem-backed bucket"""

    def __init__(
        self,
        root_path: str,
        public_base_url: str,
        bucket: str = LibraryConstants.DEFAULT_BUCKET,
    ):
        """
        Initialize local storage

        Args:
            root_path: Directory holding the bucket directory
            public_base_url: URL prefix the root directory is served under
            bucket: Bucket (sub-directory) name
        """
        self.root_path = Path(root_path)
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        self.bucket_path = self.root_path / bucket
        self.bucket_path.mkdir(parents=True, exist_ok=True)

        self.lock = RLock()

        logger.info(f"Object storage initialized at {self.bucket_path}")

    def _resolve(self, path: str) -> Path:
        """Absolute filesystem path of an object, confined to the bucket"""
        bucket_root = self.bucket_path.resolve()
        target = (bucket_root / path.lstrip("/")).resolve()
        if target != bucket_root and bucket_root not in target.parents:
            raise StorageError(ErrorMessages.STORAGE_PATH_INVALID.format(path=path))
        return target

    def put(self, path: str, data: bytes) -> str:
        target = self._resolve(path)
        with self.lock:
            if target.exists():
                raise StorageError(f"Object already exists: {path}")
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp = target.with_name(target.name + ".part")
            tmp.write_bytes(data)
            os.replace(tmp, target)

        logger.debug(f"Stored {len(data)} bytes at {self.bucket}/{path}")
        return path

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{self.bucket}/{path.lstrip('/')}"

    def remove(self, paths: List[str]) -> None:
        with self.lock:
            for path in paths:
                target = self._resolve(path)
                try:
                    target.unlink()
                except FileNotFoundError:
                    logger.debug(f"Object already gone: {self.bucket}/{path}")

    def list(self, prefix: str, search: Optional[str] = None) -> List[StoredObject]:
        directory = self._resolve(prefix) if prefix else self.bucket_path.resolve()
        if not directory.is_dir():
            return []

        entries = []
        for entry in sorted(directory.iterdir()):
            if not entry.is_file() or entry.name.endswith(".part"):
                continue
            if search and search not in entry.name:
                continue
            entries.append(StoredObject(name=entry.name, size=entry.stat().st_size))
        return entries

    def read(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except FileNotFoundError:
            raise StorageError(f"Object not found: {self.bucket}/{path}")

    def get_stats(self) -> dict:
        """Object count and total bytes in the bucket"""
        count = 0
        total = 0
        for entry in self.bucket_path.rglob("*"):
            if entry.is_file():
                count += 1
                total += entry.stat().st_size
        return {"objects": count, "bytes": total}
