"""Tests for the emote metadata prober."""

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from PySide6.QtCore import QBuffer, QByteArray, QIODevice
from PySide6.QtGui import QImage, QImageReader

from chat_avatars.emotes.models import ImageFormat, ImageMeta
from chat_avatars.emotes.probe import (
    PROBE_CHUNK_SIZE,
    PROBE_MAX_BYTES,
    PROBE_RANGE_HEADER,
    _fetch_prefix,
    classify_animated,
    probe,
    read_image_meta,
)

# Smallest valid GIF: 1x1, one transparent pixel
TINY_GIF = (
    b"GIF89a\x01\x00\x01\x00\x80\x00\x00\x00\x00\x00\xff\xff\xff"
    b"!\xf9\x04\x01\x00\x00\x00\x00,\x00\x00\x00\x00\x01\x00\x01\x00\x00\x02\x02D\x01\x00;"
)


def _png_bytes(width: int, height: int) -> bytes:
    image = QImage(width, height, QImage.Format.Format_ARGB32)
    image.fill(0)
    data = QByteArray()
    buffer = QBuffer(data)
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    image.save(buffer, "PNG")
    buffer.close()
    return bytes(data)


def _supports(fmt: bytes) -> bool:
    return fmt in [bytes(f) for f in QImageReader.supportedImageFormats()]


# --- classify_animated ---


def test_classify_animated():
    assert classify_animated(ImageFormat.PNG) is False
    assert classify_animated(ImageFormat.GIF) is True
    assert classify_animated(ImageFormat.WEBP) is True
    assert classify_animated(ImageFormat.JPEG) is False
    assert classify_animated(ImageFormat.OTHER) is False


# --- read_image_meta ---


def test_read_png_meta():
    meta = read_image_meta(_png_bytes(30, 20))
    assert meta == ImageMeta(width=30, height=20, format=ImageFormat.PNG, animated=False)


@pytest.mark.skipif(not _supports(b"gif"), reason="Qt GIF plugin not available")
def test_read_gif_meta():
    meta = read_image_meta(TINY_GIF)
    assert meta == ImageMeta(width=1, height=1, format=ImageFormat.GIF, animated=True)


def test_read_garbage():
    assert read_image_meta(b"definitely not an image") is None


def test_read_empty():
    assert read_image_meta(b"") is None


# --- probe ---


def test_probe_unreachable_host_falls_back():
    meta = asyncio.run(probe("http://127.0.0.1:9/emote.png"))
    assert meta == ImageMeta.fallback()


def test_probe_fetches_prefix_with_range_header():
    png = _png_bytes(40, 24) + b"\x00" * (PROBE_MAX_BYTES * 2)
    seen_ranges = []

    async def handler(request):
        seen_ranges.append(request.headers.get("Range"))
        return web.Response(body=png, content_type="image/png")

    async def scenario():
        app = web.Application()
        app.router.add_get("/emote", handler)
        async with TestServer(app) as server:
            return await probe(str(server.make_url("/emote")))

    meta = asyncio.run(scenario())

    assert seen_ranges == [PROBE_RANGE_HEADER]
    assert (meta.width, meta.height, meta.format) == (40, 24, ImageFormat.PNG)


def test_probe_http_error_falls_back():
    async def handler(request):
        return web.Response(status=404)

    async def scenario():
        app = web.Application()
        app.router.add_get("/emote", handler)
        async with TestServer(app) as server:
            return await probe(str(server.make_url("/emote")))

    assert asyncio.run(scenario()) == ImageMeta.fallback()


def test_probe_unreadable_body_falls_back():
    async def handler(request):
        return web.Response(body=b"<html>not found</html>", content_type="text/html")

    async def scenario():
        app = web.Application()
        app.router.add_get("/emote", handler)
        async with TestServer(app) as server:
            return await probe(str(server.make_url("/emote")))

    assert asyncio.run(scenario()) == ImageMeta.fallback()


class _CountingContent:
    """Streams a body in chunks and counts what the reader pulled."""

    def __init__(self, body: bytes):
        self.body = body
        self.consumed = 0

    async def iter_chunked(self, size):
        for start in range(0, len(self.body), size):
            chunk = self.body[start : start + size]
            self.consumed += len(chunk)
            yield chunk


class _FakeResponse:
    def __init__(self, status, content):
        self.status = status
        self.content = content

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class _FakeSession:
    def __init__(self, response):
        self.response = response
        self.headers = []

    def get(self, url, headers=None, timeout=None):
        self.headers.append(headers)
        return self.response


def test_probe_reads_only_the_prefix():
    # Server ignores the Range header and sends a large full body
    body = _png_bytes(40, 24) + b"\x00" * (PROBE_MAX_BYTES * 8)
    content = _CountingContent(body)
    session = _FakeSession(_FakeResponse(200, content))

    meta = asyncio.run(probe("https://example.com/emote.png", session))

    assert (meta.width, meta.height) == (40, 24)
    assert session.headers == [{"Range": PROBE_RANGE_HEADER}]
    assert content.consumed <= PROBE_MAX_BYTES + PROBE_CHUNK_SIZE
    assert content.consumed < len(body)


def test_fetch_prefix_truncates_to_max_bytes():
    content = _CountingContent(b"\x01" * (PROBE_MAX_BYTES * 4))
    session = _FakeSession(_FakeResponse(206, content))

    data = asyncio.run(_fetch_prefix("https://example.com/emote.png", session))

    assert len(data) == PROBE_MAX_BYTES
    assert content.consumed == PROBE_MAX_BYTES
