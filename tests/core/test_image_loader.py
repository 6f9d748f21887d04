"""
Tests for source image loading
"""

import asyncio

import httpx
import pytest

from core.image.loader import FetchTooLargeError, ImageLoader
from services.metadata_probe import MetadataProbe


class TestImageLoader:
    """Test ImageLoader functionality"""

    def test_load_managed_object(self, loader, storage, png_bytes):
        storage.put("owner-1/a.png", png_bytes)

        data = asyncio.run(loader.load(storage.public_url("owner-1/a.png")))

        assert data == png_bytes

    def test_load_external_within_limit(self, storage):
        def handler(request):
            return httpx.Response(200, content=b"x" * 100)

        loader = ImageLoader(storage, transport=httpx.MockTransport(handler), max_bytes=100)

        assert asyncio.run(loader.load("https://example.com/a.png")) == b"x" * 100

    def test_declared_length_over_limit(self, storage):
        """Test that a too-large Content-Length is rejected"""

        def handler(request):
            return httpx.Response(200, content=b"x" * 101)

        loader = ImageLoader(storage, transport=httpx.MockTransport(handler), max_bytes=100)

        with pytest.raises(FetchTooLargeError):
            asyncio.run(loader.load("https://example.com/a.png"))

    def test_streamed_body_over_limit(self, storage):
        """Test that a body without Content-Length is cut off at the limit"""
        served = []

        async def chunks():
            for _ in range(10):
                served.append(1)
                yield b"x" * 64

        def handler(request):
            return httpx.Response(200, content=chunks())

        loader = ImageLoader(storage, transport=httpx.MockTransport(handler), max_bytes=100)

        with pytest.raises(FetchTooLargeError):
            asyncio.run(loader.load("https://example.com/a.png"))

        assert len(served) < 10

    def test_oversized_external_has_no_metadata(self, storage, png_bytes):
        def handler(request):
            return httpx.Response(200, content=png_bytes)

        loader = ImageLoader(
            storage, transport=httpx.MockTransport(handler), max_bytes=len(png_bytes) - 1
        )
        probe = MetadataProbe(loader, storage)

        assert asyncio.run(probe.probe_dimensions("https://example.com/a.png")) is None
