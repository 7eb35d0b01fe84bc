"""Rasterize one sticker record into PNG bytes."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import lru_cache
from io import BytesIO

import fitz
from PIL import Image
from reportlab.lib.colors import Color, HexColor
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from fonts import FontConfig, build_font_config
from sticker_types import (
    InvalidConfigurationError,
    PixelLayout,
    Region,
    StickerDimensions,
    StickerRecord,
)
from units import RASTER_DPI, pixels_to_points
from .images import ImageDecodeError, decode_image
from .layout import compute_pixel_layout
from .qr import QrGenerationError, generate_qr_image

logger = logging.getLogger(__name__)

BACKGROUND = HexColor("#FFFFFF")
BORDER = HexColor("#E5E7EB")
PLACEHOLDER_FILL = HexColor("#F3F4F6")
PLACEHOLDER_INK = HexColor("#9CA3AF")
TEXT_INK = HexColor("#1F2937")
MUTED_INK = HexColor("#6B7280")

BORDER_WIDTH_PX = 2
MAX_FONT_PX = 32.0


@lru_cache(maxsize=1)
def default_font_config() -> FontConfig:
    """Resolve the fonts on first use, after ``.env`` has been loaded."""
    return build_font_config()


def validate_canvas(dimensions: StickerDimensions) -> PixelLayout:
    """Return the pixel layout, rejecting a canvas smaller than 1x1 px."""

    layout = compute_pixel_layout(dimensions)
    width_px, height_px = layout.canvas_size
    if width_px < 1 or height_px < 1:
        raise InvalidConfigurationError(
            f"Sticker canvas must be at least 1x1 px, got {width_px}x{height_px}."
        )
    return layout


async def render_sticker(
    record: StickerRecord,
    dimensions: StickerDimensions,
    fonts: FontConfig | None = None,
) -> bytes:
    """Return PNG bytes for ``record`` at the canvas size of ``dimensions``.

    A logo that fails to decode and a QR payload that cannot be encoded are
    both logged and replaced by placeholder boxes; neither fails the record.
    """

    layout = validate_canvas(dimensions)

    logo_image = await _load_logo(record)
    qr_image = await _load_qr(record, layout.qr)

    return await asyncio.to_thread(
        _compose,
        record,
        layout,
        logo_image,
        qr_image,
        fonts or default_font_config(),
    )


async def _load_logo(record: StickerRecord) -> Image.Image | None:
    if not record.logo:
        return None
    try:
        return await decode_image(record.logo)
    except ImageDecodeError as exc:
        logger.warning("Logo for sticker %s could not be decoded: %s", record.id, exc)
        return None


async def _load_qr(record: StickerRecord, region: Region) -> Image.Image | None:
    payload = record.qr_payload
    if not payload:
        return None
    try:
        return await generate_qr_image(payload, int(region.width))
    except QrGenerationError as exc:
        logger.warning("QR generation failed for sticker %s: %s", record.id, exc)
        return None


def _compose(
    record: StickerRecord,
    layout: PixelLayout,
    logo_image: Image.Image | None,
    qr_image: Image.Image | None,
    fonts: FontConfig,
) -> bytes:
    width_px, height_px = layout.canvas_size
    buffer = BytesIO()
    canvas_obj = canvas.Canvas(
        buffer,
        pagesize=(pixels_to_points(width_px), pixels_to_points(height_px)),
    )
    # draw in pixel units
    points_per_px = pixels_to_points(1)
    canvas_obj.scale(points_per_px, points_per_px)

    _draw_background(canvas_obj, width_px, height_px)
    _draw_logo(canvas_obj, layout.logo, height_px, logo_image, fonts)
    _draw_qr(canvas_obj, layout.qr, height_px, qr_image)
    _draw_contact(canvas_obj, layout.contact, height_px, record, fonts)

    canvas_obj.showPage()
    canvas_obj.save()

    with fitz.open(stream=buffer.getvalue(), filetype="pdf") as doc:
        page = doc.load_page(0)
        pix = page.get_pixmap(dpi=RASTER_DPI)
        rendered_png = pix.tobytes("png")

    with Image.open(BytesIO(rendered_png)) as img:
        if img.size != (width_px, height_px):
            img = img.resize((width_px, height_px), Image.Resampling.LANCZOS)
        output = BytesIO()
        img.save(output, format="PNG")
        return output.getvalue()


def _flip(region: Region, canvas_height: float) -> float:
    """Return the bottom edge of ``region`` in ReportLab's bottom-up space."""

    return canvas_height - region.y - region.height


def _is_drawable(region: Region) -> bool:
    return region.width > 0 and region.height > 0


def _draw_background(canvas_obj: canvas.Canvas, width: int, height: int) -> None:
    canvas_obj.setFillColor(BACKGROUND)
    canvas_obj.rect(0, 0, width, height, stroke=0, fill=1)
    canvas_obj.saveState()
    canvas_obj.setStrokeColor(BORDER)
    canvas_obj.setLineWidth(BORDER_WIDTH_PX)
    canvas_obj.rect(0, 0, width, height, stroke=1, fill=0)
    canvas_obj.restoreState()


def _draw_logo(
    canvas_obj: canvas.Canvas,
    region: Region,
    canvas_height: float,
    logo_image: Image.Image | None,
    fonts: FontConfig,
) -> None:
    if not _is_drawable(region):
        return

    bottom = _flip(region, canvas_height)
    if logo_image is not None:
        # stretch to fill, aspect ratio is not preserved
        canvas_obj.drawImage(
            ImageReader(logo_image),
            region.x,
            bottom,
            width=region.width,
            height=region.height,
            mask="auto",
        )
        return

    canvas_obj.setFillColor(PLACEHOLDER_FILL)
    canvas_obj.rect(region.x, bottom, region.width, region.height, stroke=0, fill=1)

    font_size = min(region.width / 8.0, MAX_FONT_PX)
    if font_size <= 0:
        return
    baseline_top = region.y + region.height / 2.0 + font_size * 0.35
    canvas_obj.setFillColor(PLACEHOLDER_INK)
    canvas_obj.setFont(fonts.placeholder.font_name, font_size)
    canvas_obj.drawCentredString(
        region.x + region.width / 2.0,
        canvas_height - baseline_top,
        "LOGO",
    )


def _draw_qr(
    canvas_obj: canvas.Canvas,
    region: Region,
    canvas_height: float,
    qr_image: Image.Image | None,
) -> None:
    if not _is_drawable(region):
        return

    bottom = _flip(region, canvas_height)
    if qr_image is not None:
        canvas_obj.drawImage(
            ImageReader(qr_image),
            region.x,
            bottom,
            width=region.width,
            height=region.height,
        )
        return

    canvas_obj.saveState()
    canvas_obj.setFillColor(PLACEHOLDER_FILL)
    canvas_obj.setStrokeColor(PLACEHOLDER_INK)
    canvas_obj.setLineWidth(1)
    canvas_obj.rect(region.x, bottom, region.width, region.height, stroke=1, fill=1)
    canvas_obj.restoreState()


@dataclass(frozen=True)
class ContactLine:
    text: str
    font_name: str
    font_size: float
    color: Color
    baseline_y: float


def contact_lines(
    record: StickerRecord,
    region: Region,
    fonts: FontConfig,
) -> list[ContactLine]:
    """Return the non-empty contact lines to draw, baselines top-down in px."""

    base_size = min(region.height / 3.0, MAX_FONT_PX)
    if base_size <= 0:
        return []

    candidates = [
        (record.phone, fonts.phone, TEXT_INK, 1.0),
        (record.email, fonts.email, TEXT_INK, 2.2),
    ]
    # website is dropped first when the contact box is too short
    if record.website and region.height > base_size * 2.5:
        candidates.append((record.website, fonts.website, MUTED_INK, 3.2))

    return [
        ContactLine(
            text=text,
            font_name=settings.font_name,
            font_size=settings.size_for(base_size),
            color=color,
            baseline_y=region.y + base_size * offset,
        )
        for text, settings, color, offset in candidates
        if text
    ]


def _draw_contact(
    canvas_obj: canvas.Canvas,
    region: Region,
    canvas_height: float,
    record: StickerRecord,
    fonts: FontConfig,
) -> None:
    center_x = region.x + region.width / 2.0
    for line in contact_lines(record, region, fonts):
        canvas_obj.setFillColor(line.color)
        canvas_obj.setFont(line.font_name, line.font_size)
        canvas_obj.drawCentredString(center_x, canvas_height - line.baseline_y, line.text)
