"""Pixel layout of the regions inside one sticker."""

from __future__ import annotations

from sticker_types import PixelLayout, Region, StickerDimensions
from units import cm_to_pixels


def _centered(canvas_width: float, width: float, y: float, height: float) -> Region:
    return Region((canvas_width - width) / 2.0, y, width, height)


def compute_pixel_layout(dimensions: StickerDimensions) -> PixelLayout:
    """Stack logo, QR and contact regions top to bottom.

    Each region starts below the previous one's bottom edge plus its trailing
    spacing, so regions never overlap for non-negative input. Regions that
    run past the canvas bottom are kept as-is and get clipped when drawn.
    """

    canvas_width = cm_to_pixels(dimensions.sticker.width)
    canvas_height = cm_to_pixels(dimensions.sticker.height)

    cursor = cm_to_pixels(dimensions.spacing.top)

    logo = _centered(
        canvas_width,
        cm_to_pixels(dimensions.logo.width),
        cursor,
        cm_to_pixels(dimensions.logo.height),
    )
    cursor = logo.bottom + cm_to_pixels(dimensions.spacing.middle)

    qr_side = cm_to_pixels(dimensions.qr.width)
    qr = _centered(canvas_width, qr_side, cursor, qr_side)
    cursor = qr.bottom + cm_to_pixels(dimensions.spacing.bottom)

    contact = _centered(
        canvas_width,
        cm_to_pixels(dimensions.contact.width),
        cursor,
        cm_to_pixels(dimensions.contact.height),
    )

    return PixelLayout(
        width=canvas_width,
        height=canvas_height,
        logo=logo,
        qr=qr,
        contact=contact,
    )
