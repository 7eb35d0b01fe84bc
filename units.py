"""Physical-to-digital length conversions."""

from __future__ import annotations

from reportlab.lib.units import mm

RASTER_DPI = 300
CM_TO_PIXELS = 118.11  # 300 DPI


def cm_to_pixels(cm: float) -> float:
    return cm * CM_TO_PIXELS


def cm_to_millimeters(cm: float) -> float:
    return cm * 10.0


def mm_to_points(value_mm: float) -> float:
    """Convert millimeters to PDF points."""

    return value_mm * mm


def pixels_to_points(px: float, dpi: int = RASTER_DPI) -> float:
    return px * 72.0 / dpi


__all__ = [
    "CM_TO_PIXELS",
    "RASTER_DPI",
    "cm_to_millimeters",
    "cm_to_pixels",
    "mm_to_points",
    "pixels_to_points",
]
