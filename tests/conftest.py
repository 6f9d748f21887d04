"""
Pytest configuration and fixtures for Media Pipeline tests
"""

import struct
import zlib

import cv2
import numpy as np
import pytest

from core.compositor import Compositor
from core.identity import StaticIdentity
from core.image.loader import ImageLoader
from core.media_repository import MediaRepository
from core.storage import LocalObjectStorage
from services.library_controller import LibraryController
from services.metadata_probe import MetadataProbe
from services.persistence_gateway import PersistenceGateway

OWNER_ID = "owner-1"


@pytest.fixture
def test_image():
    """Create a 400x200 BGR test image"""
    image = np.zeros((200, 400, 3), dtype=np.uint8)
    # Add some content
    cv2.rectangle(image, (50, 50), (150, 150), (255, 255, 255), -1)
    cv2.circle(image, (300, 100), 40, (0, 0, 200), -1)
    return image


@pytest.fixture
def png_bytes(test_image):
    """Test image encoded as PNG"""
    ok, buffer = cv2.imencode(".png", test_image)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def oversized_png():
    """Tiny PNG whose header claims 20000x20000 pixels"""

    def chunk(kind, body):
        crc = zlib.crc32(kind + body) & 0xFFFFFFFF
        return struct.pack(">I", len(body)) + kind + body + struct.pack(">I", crc)

    header = struct.pack(">IIBBBBB", 20000, 20000, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(b""))
        + chunk(b"IEND", b"")
    )


@pytest.fixture
def storage(tmp_path):
    """Create LocalObjectStorage in a temporary directory"""
    return LocalObjectStorage(
        root_path=str(tmp_path / "storage"),
        public_base_url="http://testserver/storage",
    )


@pytest.fixture
def repository():
    """Create an in-memory MediaRepository"""
    repo = MediaRepository("sqlite://")
    yield repo
    repo.dispose()


@pytest.fixture
def identity():
    """Signed-in owner"""
    return StaticIdentity(OWNER_ID)


@pytest.fixture
def loader(storage):
    """Create ImageLoader reading from the test storage"""
    return ImageLoader(storage, timeout_seconds=2)


@pytest.fixture
def gateway(storage, repository, identity):
    """Create PersistenceGateway for the signed-in owner"""
    return PersistenceGateway(storage=storage, repository=repository, identity=identity)


@pytest.fixture
def probe(loader, storage):
    """Create MetadataProbe"""
    return MetadataProbe(loader, storage)


@pytest.fixture
def controller(gateway, probe, loader):
    """Create LibraryController with real collaborators"""
    return LibraryController(
        gateway=gateway,
        probe=probe,
        loader=loader,
        compositor=Compositor(),
        max_upload_bytes=1024 * 1024,
    )
