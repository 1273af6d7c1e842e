"""Emote metadata prober - learns image size and format from a byte prefix."""

import logging

import aiohttp
from PySide6.QtCore import QBuffer, QByteArray, QIODevice
from PySide6.QtGui import QImageReader

from .models import ImageFormat, ImageMeta

logger = logging.getLogger(__name__)

PROBE_RANGE_HEADER = "bytes=0-8096"
PROBE_MAX_BYTES = 8 * 1024  # Enough for PNG/GIF/WebP headers
PROBE_TIMEOUT_SECONDS = 10
PROBE_CHUNK_SIZE = 2048

# QImageReader format names -> ImageFormat
_QT_FORMATS = {
    "png": ImageFormat.PNG,
    "gif": ImageFormat.GIF,
    "webp": ImageFormat.WEBP,
    "jpeg": ImageFormat.JPEG,
    "jpg": ImageFormat.JPEG,
    "bmp": ImageFormat.BMP,
}


def classify_animated(image_format: ImageFormat) -> bool:
    """Decide animation from the container format alone."""
    if image_format is ImageFormat.PNG:
        return False
    if image_format.animated:
        return True
    logger.warning(f"Unsupported emote image format: {image_format.value}, treating as static")
    return False


def read_image_meta(data: bytes) -> ImageMeta | None:
    """Decode format and dimensions from (possibly truncated) image bytes.

    Uses QImageReader metadata only (no pixel decoding) so it's safe
    to call from any thread. Returns None if the header can't be read.
    """
    if not data:
        return None

    byte_array = QByteArray(data)
    buffer = QBuffer(byte_array)
    buffer.open(QIODevice.OpenModeFlag.ReadOnly)

    reader = QImageReader(buffer)
    format_name = bytes(reader.format()).decode("ascii", errors="ignore").lower()
    size = reader.size()
    buffer.close()

    if not format_name or not size.isValid():
        return None

    image_format = _QT_FORMATS.get(format_name, ImageFormat.OTHER)
    return ImageMeta(
        width=size.width(),
        height=size.height(),
        format=image_format,
        animated=classify_animated(image_format),
    )


async def _fetch_prefix(url: str, session: aiohttp.ClientSession) -> bytes | None:
    """Fetch at most PROBE_MAX_BYTES from the start of url."""
    async with session.get(
        url,
        headers={"Range": PROBE_RANGE_HEADER},
        timeout=aiohttp.ClientTimeout(total=PROBE_TIMEOUT_SECONDS),
    ) as resp:
        if resp.status not in (200, 206):
            logger.warning(f"Emote probe got HTTP {resp.status} for {url}")
            return None
        data = bytearray()
        async for chunk in resp.content.iter_chunked(PROBE_CHUNK_SIZE):
            data.extend(chunk)
            if len(data) >= PROBE_MAX_BYTES:
                break
        return bytes(data[:PROBE_MAX_BYTES])


async def probe(url: str, session: aiohttp.ClientSession | None = None) -> ImageMeta:
    """Probe an emote image for its format and natural size.

    Never raises: any network, timeout or decoding problem yields
    ImageMeta.fallback() so the message can still be displayed.
    """
    try:
        if session is None:
            async with aiohttp.ClientSession() as own_session:
                data = await _fetch_prefix(url, own_session)
        else:
            data = await _fetch_prefix(url, session)
    except Exception as e:
        logger.warning(f"Emote probe failed for {url}: {e!r}")
        return ImageMeta.fallback()

    meta = read_image_meta(data) if data else None
    if meta is None:
        logger.warning(f"Could not read emote image header: {url}")
        return ImageMeta.fallback()

    logger.debug(f"Probed {url}: {meta.format.value} {meta.width}x{meta.height}")
    return meta
