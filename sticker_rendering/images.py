"""Awaitable decoding of user supplied images."""

from __future__ import annotations

import asyncio
from io import BytesIO

from PIL import Image, UnidentifiedImageError


class ImageDecodeError(Exception):
    """Raised when image bytes cannot be turned into a bitmap."""


def _decode(data: bytes) -> Image.Image:
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ImageDecodeError(f"Cannot decode image: {exc}") from exc


async def decode_image(data: bytes) -> Image.Image:
    """Return a fully loaded RGBA bitmap for ``data``."""

    if not data:
        raise ImageDecodeError("Image data is empty.")
    return await asyncio.to_thread(_decode, data)
