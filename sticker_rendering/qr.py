"""QR symbol generation."""

from __future__ import annotations

import asyncio
from io import BytesIO

import qrcode
from qrcode.exceptions import DataOverflowError
from PIL import Image


class QrGenerationError(Exception):
    """Raised when a QR symbol cannot be produced for a payload."""


def _generate(payload: str, size_px: int) -> Image.Image:
    if not payload:
        raise QrGenerationError("QR payload is empty.")
    if size_px < 1:
        raise QrGenerationError(f"QR size must be positive, got {size_px}px.")

    qr = qrcode.QRCode(border=1)
    try:
        qr.add_data(payload)
        qr.make(fit=True)
    except (DataOverflowError, ValueError) as exc:
        raise QrGenerationError(f"Cannot encode QR payload: {exc}") from exc

    buffer = BytesIO()
    qr.make_image(fill_color="black", back_color="white").save(buffer, kind="PNG")
    buffer.seek(0)
    with Image.open(buffer) as img:
        return img.convert("RGB").resize((size_px, size_px), Image.Resampling.NEAREST)


async def generate_qr_image(payload: str, size_px: int) -> Image.Image:
    """Return a square QR bitmap ``size_px`` wide encoding ``payload``."""

    return await asyncio.to_thread(_generate, payload, size_px)
