"""
API Integration Tests for Library Endpoints
"""

import asyncio
import io

from fastapi import UploadFile
from starlette.datastructures import Headers

from api.routers.library import upload_images
from schemas import UploadReport


class TestLibraryAPI:
    """Integration tests for library API endpoints"""

    def test_requires_token(self, client):
        response = client.get("/api/library")

        assert response.status_code == 401
        assert response.json()["error_kind"] == "not_authenticated"

    def test_unknown_token(self, client):
        response = client.get("/api/library", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_empty_library(self, client, auth_headers):
        response = client.get("/api/library", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "browsing"
        assert data["items"] == []
        assert data["preview"] is None

    def test_upload(self, client, auth_headers, png_upload):
        files = [
            ("files", png_upload),
            ("files", ("notes.txt", b"hello", "text/plain")),
        ]
        response = client.post("/api/library/upload", files=files, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert [item["name"] for item in data["uploaded"]] == ["photo.png"]
        assert data["rejected"][0]["name"] == "notes.txt"
        assert data["rejected"][0]["error_kind"] == "validation_failure"

    def test_upload_too_large(self, client, auth_headers):
        """Test that a file over the configured limit is rejected"""
        data = b"\x89PNG" + b"\0" * (1024 * 1024)
        files = [("files", ("huge.png", data, "image/png"))]

        response = client.post("/api/library/upload", files=files, headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["uploaded"] == []
        assert "too large" in body["rejected"][0]["reason"]

    def test_uploaded_image_is_served(self, client, uploaded_item, png_upload):
        """Test that the public URL resolves through the storage mount"""
        path = uploaded_item["url"].replace("http://testserver", "")

        response = client.get(path)

        assert response.status_code == 200
        assert response.content == png_upload[1]

    def test_search(self, client, auth_headers, uploaded_item):
        response = client.get("/api/library?search=PHOTO", headers=auth_headers)
        assert len(response.json()["items"]) == 1

        response = client.get("/api/library?search=beach", headers=auth_headers)
        data = response.json()
        assert data["items"] == []
        assert data["total_items"] == 1

    def test_libraries_are_per_owner(self, client, uploaded_item):
        response = client.get("/api/library", headers={"Authorization": "Bearer other-token"})
        assert response.json()["items"] == []

    def test_add_by_url(self, client, auth_headers):
        response = client.post(
            "/api/library/url",
            json={"url": "https://example.com/photos/cat.jpg"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["item"]["name"] == "cat.jpg"

    def test_add_empty_url(self, client, auth_headers):
        response = client.post("/api/library/url", json={"url": " "}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error_kind"] == "validation_failure"

    def test_delete(self, client, auth_headers, uploaded_item):
        response = client.delete(
            f"/api/library/items/{uploaded_item['id']}", headers=auth_headers
        )
        assert response.status_code == 200

        response = client.get("/api/library", headers=auth_headers)
        assert response.json()["items"] == []

    def test_delete_missing(self, client, auth_headers):
        response = client.delete("/api/library/items/missing", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error_kind"] == "not_found"

    def test_selection_and_bulk_delete(self, client, auth_headers, uploaded_item):
        item_id = uploaded_item["id"]

        response = client.post(f"/api/library/selection/{item_id}/toggle", headers=auth_headers)
        assert response.json()["selected_ids"] == [item_id]
        assert response.json()["selection_mode"] is True

        response = client.post("/api/library/bulk-delete", json={}, headers=auth_headers)
        data = response.json()
        assert data["deleted"] == 1
        assert data["failed_ids"] == []

    def test_bulk_delete_partial(self, client, auth_headers, uploaded_item):
        response = client.post(
            "/api/library/bulk-delete",
            json={"ids": [uploaded_item["id"], "missing"]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["deleted"] == 1
        assert data["failed_ids"] == ["missing"]
        assert data["error_kind"] == "partial_bulk_failure"

    def test_select_all_and_clear(self, client, auth_headers, uploaded_item):
        response = client.post("/api/library/selection/all", headers=auth_headers)
        assert response.json()["selected_ids"] == [uploaded_item["id"]]

        response = client.delete("/api/library/selection", headers=auth_headers)
        assert response.json()["selection_mode"] is False


class TestSystemAPI:
    """Integration tests for unauthenticated endpoints"""

    def test_root(self, client):
        assert client.get("/").json()["name"] == "Media Pipeline"

    def test_health(self, client):
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert all(data["services"].values())

    def test_status(self, client, uploaded_item):
        response = client.get("/api/system/status")

        assert response.status_code == 200
        data = response.json()
        assert data["library_items"] == 1
        assert data["storage_usage"]["objects"] == 1

    def test_config_hides_tokens(self, client):
        data = client.get("/api/system/config").json()

        assert data["auth"] == {"owners": ["owner-1", "owner-2"]}
        assert "test-token" not in str(data)


class TestUploadReading:
    """Test how the upload route reads multipart files"""

    def test_reads_at_most_one_byte_past_limit(self):
        received = []

        class RecordingController:
            max_upload_bytes = 10

            async def upload_files(self, uploads):
                received.extend(uploads)
                return UploadReport()

        upload = UploadFile(
            file=io.BytesIO(b"x" * 1000),
            filename="big.png",
            headers=Headers({"content-type": "image/png"}),
        )

        asyncio.run(upload_images(files=[upload], controller=RecordingController()))

        assert len(received[0].data) == 11
        assert received[0].content_type == "image/png"
