"""Sticker layout and rasterization."""

from .images import ImageDecodeError, decode_image
from .layout import compute_pixel_layout
from .presets import get_preset, list_presets
from .qr import QrGenerationError, generate_qr_image
from .rasterizer import (
    ContactLine,
    contact_lines,
    default_font_config,
    render_sticker,
    validate_canvas,
)

__all__ = [
    "ContactLine",
    "ImageDecodeError",
    "QrGenerationError",
    "compute_pixel_layout",
    "contact_lines",
    "decode_image",
    "default_font_config",
    "generate_qr_image",
    "get_preset",
    "list_presets",
    "render_sticker",
    "validate_canvas",
]
