"""
Tests for local object storage
"""

import pytest

from core.storage import StorageError


class TestLocalObjectStorage:
    """Test LocalObjectStorage functionality"""

    def test_put_and_read(self, storage):
        path = storage.put("owner-1/a.png", b"data")

        assert path == "owner-1/a.png"
        assert storage.read("owner-1/a.png") == b"data"

    def test_put_never_overwrites(self, storage):
        storage.put("owner-1/a.png", b"first")

        with pytest.raises(StorageError):
            storage.put("owner-1/a.png", b"second")

        assert storage.read("owner-1/a.png") == b"first"

    def test_public_url_round_trip(self, storage):
        """Test that public URLs map back to their object path"""
        url = storage.public_url("owner-1/a.png")

        assert url == "http://testserver/storage/blog-images/owner-1/a.png"
        assert storage.path_from_url(url) == "owner-1/a.png"

    def test_external_url_not_managed(self, storage):
        assert storage.path_from_url("https://example.com/photos/cat.jpg") is None

    def test_external_url_with_bucket_segment_not_managed(self, storage):
        """Test that only URLs under the public bucket prefix are managed"""
        url = "https://cdn.example.com/blog-images/owner-1/a.png"

        assert storage.path_from_url(url) is None

    def test_list_with_search(self, storage):
        storage.put("owner-1/a.png", b"1")
        storage.put("owner-1/b.png", b"22")

        entries = storage.list("owner-1", search="b.png")

        assert [(e.name, e.size) for e in entries] == [("b.png", 2)]

    def test_list_missing_directory(self, storage):
        assert storage.list("nobody") == []

    def test_remove(self, storage):
        storage.put("owner-1/a.png", b"1")

        storage.remove(["owner-1/a.png", "owner-1/missing.png"])

        with pytest.raises(StorageError):
            storage.read("owner-1/a.png")

    def test_path_cannot_escape_bucket(self, storage):
        with pytest.raises(StorageError):
            storage.put("../outside.png", b"x")

    def test_get_stats(self, storage):
        storage.put("owner-1/a.png", b"123")
        storage.put("owner-2/b.png", b"45")

        assert storage.get_stats() == {"objects": 2, "bytes": 5}
