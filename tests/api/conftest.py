"""
Pytest configuration for API integration tests
"""

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

from config import AuthSettings, DatabaseSettings, Settings, StorageSettings

TOKEN = "test-token"


@pytest.fixture(scope="function")
def client(tmp_path):
    """
    Create a test client with a fresh storage directory and database.
    Each test gets a fresh app to avoid state contamination.
    """
    from main import create_app

    settings = Settings(
        storage=StorageSettings(
            root_path=str(tmp_path / "storage"),
            public_base_url="http://testserver/storage",
            max_upload_mb=1,
        ),
        database=DatabaseSettings(url="sqlite://"),
        auth=AuthSettings(tokens={TOKEN: "owner-1", "other-token": "owner-2"}),
    )
    app = create_app(settings)

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {TOKEN}"}


@pytest.fixture
def png_upload():
    """PNG file tuple for multipart uploads"""
    image = np.zeros((200, 400, 3), dtype=np.uint8)
    cv2.rectangle(image, (50, 50), (150, 150), (255, 255, 255), -1)
    ok, buffer = cv2.imencode(".png", image)
    return ("photo.png", buffer.tobytes(), "image/png")


@pytest.fixture
def uploaded_item(client, auth_headers, png_upload):
    """Upload one image and return its item"""
    response = client.post(
        "/api/library/upload", files=[("files", png_upload)], headers=auth_headers
    )
    return response.json()["uploaded"][0]
