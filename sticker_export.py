"""Batched PNG export and paginated PDF export of sticker records."""

from __future__ import annotations

import asyncio
import logging
import re
import zipfile
from dataclasses import dataclass, field
from enum import StrEnum
from io import BytesIO
from pathlib import Path
from typing import Awaitable, Callable, Protocol, Sequence

from PIL import Image
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from page_layout import PageLayout, compute_page_layout
from sticker_rendering import render_sticker, validate_canvas
from sticker_types import (
    DEFAULT_PAGE_CONFIG,
    InvalidConfigurationError,
    PageConfiguration,
    Quality,
    StickerDimensions,
    StickerRecord,
)
from units import RASTER_DPI

logger = logging.getLogger(__name__)

PRODUCT_NAME = "Sticker Generator Pro"
STATUS_CANCELLED = "Export cancelled"

# encoder name and JPEG quality; None keeps the lossless PNG
_QUALITY_ENCODING: dict[Quality, tuple[str, int | None]] = {
    Quality.DRAFT: ("JPEG", 60),
    Quality.NORMAL: ("JPEG", 85),
    Quality.HIGH: ("PNG", None),
}

Renderer = Callable[[StickerRecord, StickerDimensions], Awaitable[bytes]]


class ExportState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    CANCELLED = "cancelled"


@dataclass
class ExportJob:
    """Working state of one export run, mutated only by the controller."""

    records: tuple[StickerRecord, ...]
    batch_size: int
    progress: float = 0.0
    current_batch: int = 0
    status: str = ""
    state: ExportState = ExportState.RUNNING
    cancel_requested: bool = False
    exported: int = 0

    @property
    def total(self) -> int:
        return len(self.records)

    @property
    def total_batches(self) -> int:
        return -(-self.total // self.batch_size)


@dataclass(frozen=True)
class PdfDocument:
    filename: str
    data: bytes
    page_count: int
    placements: list[tuple[int, int]] = field(default_factory=list)


class ImageSink(Protocol):
    def write(self, filename: str, data: bytes) -> None:
        ...


class DirectorySink:
    """Write every exported image into a directory."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.written: list[Path] = []

    def write(self, filename: str, data: bytes) -> None:
        destination = self.directory / filename
        destination.write_bytes(data)
        self.written.append(destination)


class ZipSink:
    """Collect exported images into an in-memory ZIP archive."""

    def __init__(self) -> None:
        self._buffer = BytesIO()
        self._zip = zipfile.ZipFile(self._buffer, "w", compression=zipfile.ZIP_DEFLATED)
        self.names: list[str] = []

    def write(self, filename: str, data: bytes) -> None:
        self._zip.writestr(filename, data)
        self.names.append(filename)

    @property
    def closed(self) -> bool:
        return self._zip.fp is None

    def close(self) -> None:
        self._zip.close()

    def getvalue(self) -> bytes:
        self.close()
        return self._buffer.getvalue()


def sticker_filename(record: StickerRecord, position: int) -> str:
    """Return the download name for the record at 1-based ``position``."""

    if record.number is not None:
        return f"sticker-{record.formatted_number or record.number}.png"
    safe_name = re.sub(r"[^a-zA-Z0-9]", "_", record.name)
    return f"sticker-{position}-{safe_name}.png"


def pdf_filename(dimensions: StickerDimensions, count: int) -> str:
    return f"stickers-batch-{dimensions.describe()}-{count}items.pdf"


class BatchExportController:
    """Run one export at a time, reporting progress and honouring cancel().

    Cancellation is cooperative: the flag is polled before each batch and
    each record, and a record already being rendered still completes.
    """

    def __init__(
        self,
        dimensions: StickerDimensions,
        page_config: PageConfiguration = DEFAULT_PAGE_CONFIG,
        *,
        item_delay: float = 0.05,
        batch_delay: float = 1.0,
        renderer: Renderer = render_sticker,
        on_progress: Callable[[ExportJob], None] | None = None,
    ) -> None:
        self.dimensions = dimensions
        self.page_config = page_config
        self.item_delay = item_delay
        self.batch_delay = batch_delay
        self._renderer = renderer
        self._on_progress = on_progress
        self._job: ExportJob | None = None

    @property
    def job(self) -> ExportJob | None:
        return self._job

    @property
    def state(self) -> ExportState:
        return self._job.state if self._job else ExportState.IDLE

    def cancel(self) -> None:
        job = self._job
        if job is not None and job.state is ExportState.RUNNING:
            job.cancel_requested = True

    def _start(self, records: Sequence[StickerRecord], batch_size: int) -> ExportJob:
        if not records:
            raise InvalidConfigurationError("There are no stickers to export.")
        if batch_size < 1:
            raise InvalidConfigurationError(
                f"Batch size must be at least 1, got {batch_size}."
            )
        validate_canvas(self.dimensions)
        previous = self._job
        if previous is not None and previous.state is ExportState.RUNNING:
            previous.cancel_requested = True
        job = ExportJob(records=tuple(records), batch_size=batch_size)
        self._job = job
        return job

    def _report(self, job: ExportJob, status: str | None = None) -> None:
        if status is not None:
            job.status = status
        if self._on_progress is not None:
            self._on_progress(job)

    def _finish_cancelled(self, job: ExportJob) -> None:
        job.state = ExportState.CANCELLED
        job.current_batch = 0
        logger.info("Export cancelled after %d of %d stickers", job.exported, job.total)
        self._report(job, STATUS_CANCELLED)

    def _finish_failed(self, job: ExportJob, exc: BaseException) -> None:
        job.state = ExportState.IDLE
        job.current_batch = 0
        logger.error(
            "Export failed after %d of %d stickers: %s", job.exported, job.total, exc
        )
        self._report(job, f"Export failed: {exc}")

    async def export_png(
        self,
        records: Sequence[StickerRecord],
        sink: ImageSink,
        batch_size: int = 100,
    ) -> ExportJob:
        """Render every record to PNG and hand it to ``sink`` in batches."""

        job = self._start(records, batch_size)
        try:
            await self._run_png(job, sink)
        except (Exception, asyncio.CancelledError) as exc:
            self._finish_failed(job, exc)
            raise
        return job

    async def _run_png(self, job: ExportJob, sink: ImageSink) -> None:
        batch_size = job.batch_size
        total_batches = job.total_batches

        for batch_index in range(total_batches):
            if job.cancel_requested:
                break

            job.current_batch = batch_index + 1
            self._report(job, f"Processing batch {batch_index + 1} of {total_batches}")

            start = batch_index * batch_size
            batch = job.records[start:start + batch_size]
            for offset, record in enumerate(batch):
                if job.cancel_requested:
                    break

                position = start + offset + 1
                self._report(
                    job,
                    f"Batch {batch_index + 1}: Generating sticker {offset + 1}/{len(batch)}",
                )
                png = await self._renderer(record, self.dimensions)
                sink.write(sticker_filename(record, position), png)

                job.exported = position
                job.progress = position / job.total * 100
                self._report(job)
                await asyncio.sleep(self.item_delay)

            if batch_index < total_batches - 1 and not job.cancel_requested:
                self._report(
                    job,
                    f"Completed batch {batch_index + 1}. Preparing next batch...",
                )
                await asyncio.sleep(self.batch_delay)

        if job.cancel_requested:
            self._finish_cancelled(job)
            return

        job.state = ExportState.IDLE
        job.current_batch = 0
        self._report(job, f"Export completed! {job.total} stickers exported.")

    async def export_pdf(self, records: Sequence[StickerRecord]) -> PdfDocument | None:
        """Lay every record out on pages; ``None`` when cancelled."""

        layout = compute_page_layout(self.page_config, self.dimensions)
        job = self._start(records, batch_size=layout.stickers_per_page)
        try:
            return await self._run_pdf(job, layout)
        except (Exception, asyncio.CancelledError) as exc:
            self._finish_failed(job, exc)
            raise

    async def _run_pdf(self, job: ExportJob, layout: PageLayout) -> PdfDocument | None:
        buffer = BytesIO()
        page_w_mm, page_h_mm = layout.page_width_mm, layout.page_height_mm
        canvas_obj = canvas.Canvas(buffer, pagesize=(page_w_mm * mm, page_h_mm * mm))
        placements: list[tuple[int, int]] = []

        for i, record in enumerate(job.records):
            if job.cancel_requested:
                break

            if i > 0 and i % layout.stickers_per_page == 0:
                canvas_obj.showPage()

            self._report(job, f"Processing sticker {i + 1} of {job.total}")
            png = await self._renderer(record, self.dimensions)

            page_index, slot = layout.placement(i)
            left, bottom, width, height = slot.to_pdf_rect(page_h_mm)
            canvas_obj.drawImage(
                ImageReader(encode_for_pdf(png, self.page_config, layout)),
                left,
                bottom,
                width=width,
                height=height,
            )
            placements.append((page_index, slot.index))

            job.exported = i + 1
            job.progress = (i + 1) / job.total * 100
            self._report(job)
            await asyncio.sleep(0)

        if job.cancel_requested:
            # partial document is dropped
            self._finish_cancelled(job)
            return None

        canvas_obj.setTitle(f"Stickers Batch - {self.dimensions.describe()}")
        canvas_obj.setSubject(f"{job.total} stickers exported")
        canvas_obj.setCreator(PRODUCT_NAME)
        canvas_obj.showPage()
        canvas_obj.save()

        job.state = ExportState.IDLE
        self._report(job, "PDF export completed!")
        return PdfDocument(
            filename=pdf_filename(self.dimensions, job.total),
            data=buffer.getvalue(),
            page_count=layout.page_count(job.total),
            placements=placements,
        )


def encode_for_pdf(png: bytes, page_config: PageConfiguration, layout: PageLayout) -> BytesIO:
    """Re-encode a sticker for embedding at the page's DPI and quality.

    Below the raster resolution the image is downsampled to the slot size at
    ``page_config.dpi``; it is never upsampled.
    """

    encoder, jpeg_quality = _QUALITY_ENCODING[page_config.quality]
    output = BytesIO()
    with Image.open(BytesIO(png)) as img:
        img = img.convert("RGB")
        if page_config.dpi < RASTER_DPI:
            target = (
                max(1, round(layout.sticker_width_mm / 25.4 * page_config.dpi)),
                max(1, round(layout.sticker_height_mm / 25.4 * page_config.dpi)),
            )
            if target[0] < img.width and target[1] < img.height:
                img = img.resize(target, Image.Resampling.LANCZOS)
        if jpeg_quality is None:
            img.save(output, format=encoder)
        else:
            img.save(output, format=encoder, quality=jpeg_quality)
    output.seek(0)
    return output


__all__ = [
    "BatchExportController",
    "DirectorySink",
    "ExportJob",
    "ExportState",
    "ImageSink",
    "PdfDocument",
    "ZipSink",
    "encode_for_pdf",
    "pdf_filename",
    "sticker_filename",
]
