"""Image payload helpers: bounded reads, remote fetches and JPEG encoding."""

from __future__ import annotations

from io import BytesIO

import httpx
from fastapi import UploadFile
from PIL import Image, ImageOps, UnidentifiedImageError

JPEG_CONTENT_TYPE = "image/jpeg"
JPEG_EXTENSION = ".jpg"
JPEG_QUALITY = 90
MAX_IMAGE_DIMENSION = 2048
READ_CHUNK_SIZE = 64 * 1024


class UploadTooLargeError(ValueError):
    """Raised when a payload exceeds the configured byte limit."""


class RemoteImageError(Exception):
    """Raised when a remote image cannot be retrieved."""


async def read_upload_file(upload: UploadFile, max_bytes: int) -> bytes:
    """Read an uploaded file, refusing anything above ``max_bytes``."""
    buffer = bytearray()
    while True:
        chunk = await upload.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        buffer.extend(chunk)
        if len(buffer) > max_bytes:
            raise UploadTooLargeError(f"File exceeds the {max_bytes} byte limit")
    return bytes(buffer)


async def fetch_image_bytes(
    client: httpx.AsyncClient,
    url: str,
    *,
    max_bytes: int,
    timeout: float | None = None,
) -> bytes:
    """Download ``url`` and return its body.

    Any transport error, non-2xx status or oversized body raises
    ``RemoteImageError``.
    """
    buffer = bytearray()
    try:
        async with client.stream("GET", url, timeout=timeout, follow_redirects=True) as response:
            if not response.is_success:
                raise RemoteImageError(f"Unexpected status {response.status_code}")
            async for chunk in response.aiter_bytes():
                buffer.extend(chunk)
                if len(buffer) > max_bytes:
                    raise RemoteImageError(f"Image exceeds the {max_bytes} byte limit")
    except httpx.HTTPError as exc:
        raise RemoteImageError(str(exc) or exc.__class__.__name__) from exc
    if not buffer:
        raise RemoteImageError("Empty response body")
    return bytes(buffer)


def process_image_bytes(
    data: bytes,
    *,
    max_dimension: int = MAX_IMAGE_DIMENSION,
) -> tuple[bytes, str]:
    """Decode any supported image and re-encode it as an RGB JPEG.

    Raises ``ValueError`` when ``data`` is not a decodable image.
    """
    try:
        with Image.open(BytesIO(data)) as source:
            image = ImageOps.exif_transpose(source)
            image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise ValueError("Invalid image file") from exc

    if image.mode != "RGB":
        image = image.convert("RGB")
    image.thumbnail((max_dimension, max_dimension))

    output = BytesIO()
    image.save(output, format="JPEG", quality=JPEG_QUALITY, optimize=True)
    return output.getvalue(), JPEG_CONTENT_TYPE


__all__ = [
    "JPEG_CONTENT_TYPE",
    "JPEG_EXTENSION",
    "MAX_IMAGE_DIMENSION",
    "RemoteImageError",
    "UploadTooLargeError",
    "fetch_image_bytes",
    "process_image_bytes",
    "read_upload_file",
]
