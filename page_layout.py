"""Tiling of stickers onto print pages.

The same ``PageLayout`` drives the page preview and the PDF paginator, so both
place slot ``k`` at identical coordinates.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from io import BytesIO

import fitz
from reportlab.lib.colors import HexColor
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from sticker_types import (
    InvalidConfigurationError,
    PageConfiguration,
    StickerDimensions,
)
from units import cm_to_millimeters, mm_to_points

PREVIEW_MAX_WIDTH_PX = 400
PREVIEW_MAX_HEIGHT_PX = 600


@dataclass(frozen=True)
class SlotGeometry:
    """One sticker slot on a page; millimeters, origin at the page top-left."""

    index: int
    row: int
    col: int
    x_mm: float
    y_mm: float
    width_mm: float
    height_mm: float

    on_new_page: bool

    def to_pdf_rect(self, page_height_mm: float) -> tuple[float, float, float, float]:
        """Return ``(left, bottom, width, height)`` in points, bottom-up."""

        bottom_mm = page_height_mm - self.y_mm - self.height_mm
        return (
            mm_to_points(self.x_mm),
            mm_to_points(bottom_mm),
            mm_to_points(self.width_mm),
            mm_to_points(self.height_mm),
        )


@dataclass(frozen=True)
class PageLayout:
    page_width_mm: float
    page_height_mm: float
    usable_width_mm: float
    usable_height_mm: float
    sticker_width_mm: float
    sticker_height_mm: float
    fit_scale: float
    stickers_per_row: int
    stickers_per_col: int
    margin_left_mm: float
    margin_top_mm: float
    gap_horizontal_mm: float
    gap_vertical_mm: float

    @property
    def stickers_per_page(self) -> int:
        return max(1, self.stickers_per_row * self.stickers_per_col)

    def slot(self, k: int) -> SlotGeometry:
        """Return the geometry of the ``k``-th slot within a page."""

        if not 0 <= k < self.stickers_per_page:
            raise IndexError(
                f"Slot {k} outside page of {self.stickers_per_page} slots."
            )
        row = k // self.stickers_per_row
        col = k % self.stickers_per_row
        return SlotGeometry(
            index=k,
            row=row,
            col=col,
            x_mm=self.margin_left_mm + col * (self.sticker_width_mm + self.gap_horizontal_mm),
            y_mm=self.margin_top_mm + row * (self.sticker_height_mm + self.gap_vertical_mm),
            width_mm=self.sticker_width_mm,
            height_mm=self.sticker_height_mm,
            on_new_page=k == 0,
        )

    def page_slots(self) -> list[SlotGeometry]:
        return [self.slot(k) for k in range(self.stickers_per_page)]

    def placement(self, index: int) -> tuple[int, SlotGeometry]:
        """Return ``(page_index, slot)`` for the record at global ``index``."""

        return index // self.stickers_per_page, self.slot(index % self.stickers_per_page)

    def page_count(self, total: int) -> int:
        if total <= 0:
            return 0
        return math.ceil(total / self.stickers_per_page)


def validate_page_configuration(
    config: PageConfiguration,
    dimensions: StickerDimensions,
) -> None:
    """Raise ``InvalidConfigurationError`` for geometry that cannot be tiled."""

    page_width, page_height = config.page_size_mm
    if page_width <= 0 or page_height <= 0:
        raise InvalidConfigurationError(
            f"Page size must be positive, got {page_width}x{page_height}mm."
        )
    margins = config.margins
    if min(margins.top, margins.bottom, margins.left, margins.right) < 0:
        raise InvalidConfigurationError("Page margins cannot be negative.")
    if config.gap_horizontal_mm < 0 or config.gap_vertical_mm < 0:
        raise InvalidConfigurationError("Sticker gaps cannot be negative.")
    if page_width - margins.left - margins.right <= 0 or (
        page_height - margins.top - margins.bottom <= 0
    ):
        raise InvalidConfigurationError("Margins leave no usable page area.")
    if config.sticker_scale <= 0:
        raise InvalidConfigurationError("Sticker scale must be positive.")
    if config.dpi <= 0:
        raise InvalidConfigurationError("DPI must be positive.")
    if dimensions.sticker.width <= 0 or dimensions.sticker.height <= 0:
        raise InvalidConfigurationError("Sticker size must be positive.")


def compute_page_layout(
    config: PageConfiguration,
    dimensions: StickerDimensions,
) -> PageLayout:
    """Work out how many stickers fit per page and where they go."""

    validate_page_configuration(config, dimensions)

    page_width, page_height = config.page_size_mm
    margins = config.margins
    usable_width = page_width - margins.left - margins.right
    usable_height = page_height - margins.top - margins.bottom

    sticker_width = cm_to_millimeters(dimensions.sticker.width) * config.sticker_scale
    sticker_height = cm_to_millimeters(dimensions.sticker.height) * config.sticker_scale

    fit_scale = 1.0
    if sticker_width > usable_width or sticker_height > usable_height:
        fit_scale = min(usable_width / sticker_width, usable_height / sticker_height)
        sticker_width *= fit_scale
        sticker_height *= fit_scale

    gap_h = config.gap_horizontal_mm
    gap_v = config.gap_vertical_mm
    per_row = math.floor((usable_width + gap_h) / (sticker_width + gap_h))
    per_col = math.floor((usable_height + gap_v) / (sticker_height + gap_v))

    return PageLayout(
        page_width_mm=page_width,
        page_height_mm=page_height,
        usable_width_mm=usable_width,
        usable_height_mm=usable_height,
        sticker_width_mm=sticker_width,
        sticker_height_mm=sticker_height,
        fit_scale=fit_scale,
        stickers_per_row=max(1, per_row),
        stickers_per_col=max(1, per_col),
        margin_left_mm=margins.left,
        margin_top_mm=margins.top,
        gap_horizontal_mm=gap_h,
        gap_vertical_mm=gap_v,
    )


@dataclass(frozen=True)
class PagePreview:
    png: bytes
    layout: PageLayout
    slots: tuple[SlotGeometry, ...]


def render_page_preview(
    config: PageConfiguration,
    dimensions: StickerDimensions,
    sample_png: bytes | None = None,
) -> PagePreview:
    """Draw one page with margins, printable area and every sticker slot."""

    layout = compute_page_layout(config, dimensions)
    page_w = layout.page_width_mm
    page_h = layout.page_height_mm
    margins = config.margins

    buffer = BytesIO()
    canvas_obj = canvas.Canvas(buffer, pagesize=(page_w * mm, page_h * mm))
    canvas_obj.scale(mm, mm)

    canvas_obj.setFillColor(HexColor("#F9FAFB"))
    canvas_obj.rect(0, page_h - margins.top, page_w, margins.top, stroke=0, fill=1)
    canvas_obj.rect(0, 0, page_w, margins.bottom, stroke=0, fill=1)
    canvas_obj.rect(0, 0, margins.left, page_h, stroke=0, fill=1)
    canvas_obj.rect(page_w - margins.right, 0, margins.right, page_h, stroke=0, fill=1)

    canvas_obj.saveState()
    canvas_obj.setStrokeColor(HexColor("#E5E7EB"))
    canvas_obj.setLineWidth(0.5)
    canvas_obj.rect(0, 0, page_w, page_h, stroke=1, fill=0)
    canvas_obj.setStrokeColor(HexColor("#3B82F6"))
    canvas_obj.setLineWidth(0.3)
    canvas_obj.setDash([2, 2])
    canvas_obj.rect(
        margins.left,
        margins.bottom,
        layout.usable_width_mm,
        layout.usable_height_mm,
        stroke=1,
        fill=0,
    )
    canvas_obj.restoreState()

    sample = ImageReader(BytesIO(sample_png)) if sample_png else None
    slots = tuple(layout.page_slots())
    for slot in slots:
        bottom = page_h - slot.y_mm - slot.height_mm
        if sample is not None:
            canvas_obj.drawImage(
                sample,
                slot.x_mm,
                bottom,
                width=slot.width_mm,
                height=slot.height_mm,
                mask="auto",
            )
        canvas_obj.saveState()
        canvas_obj.setFillColor(HexColor("#FFFFFF"))
        canvas_obj.setStrokeColor(HexColor("#D1D5DB"))
        canvas_obj.setLineWidth(0.3)
        canvas_obj.rect(
            slot.x_mm,
            bottom,
            slot.width_mm,
            slot.height_mm,
            stroke=1,
            fill=0 if sample is not None else 1,
        )
        canvas_obj.restoreState()

    canvas_obj.showPage()
    canvas_obj.save()

    px_per_mm = min(PREVIEW_MAX_WIDTH_PX / page_w, PREVIEW_MAX_HEIGHT_PX / page_h)
    zoom = px_per_mm / mm
    with fitz.open(stream=buffer.getvalue(), filetype="pdf") as doc:
        page = doc.load_page(0)
        pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom))
        png = pix.tobytes("png")

    return PagePreview(png=png, layout=layout, slots=slots)


__all__ = [
    "PageLayout",
    "PagePreview",
    "SlotGeometry",
    "compute_page_layout",
    "render_page_preview",
    "validate_page_configuration",
]
