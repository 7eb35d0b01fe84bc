import tempfile
import unittest
import zipfile
from dataclasses import replace
from io import BytesIO

import fitz
from PIL import Image

from page_layout import compute_page_layout
from sticker_export import (
    BatchExportController,
    DirectorySink,
    ExportJob,
    ExportState,
    ZipSink,
    encode_for_pdf,
    pdf_filename,
    sticker_filename,
)
from sticker_types import (
    DEFAULT_DIMENSIONS,
    DEFAULT_PAGE_CONFIG,
    InvalidConfigurationError,
    Quality,
    Size,
    StickerDimensions,
    StickerRecord,
)


def _records(count: int) -> list[StickerRecord]:
    return [StickerRecord(id=str(i), name=f"Shop {i}") for i in range(1, count + 1)]


def _tiny_png() -> bytes:
    buf = BytesIO()
    Image.new("RGB", (59, 94), (200, 0, 0)).save(buf, format="PNG")
    return buf.getvalue()


class _FakeRenderer:
    def __init__(self) -> None:
        self.rendered: list[str] = []
        self.png = _tiny_png()

    async def __call__(self, record: StickerRecord, dimensions: StickerDimensions) -> bytes:
        self.rendered.append(record.id)
        return self.png


class _ListSink:
    def __init__(self) -> None:
        self.names: list[str] = []

    def write(self, filename: str, data: bytes) -> None:
        self.names.append(filename)


class FilenameTests(unittest.TestCase):
    def test_named_record(self) -> None:
        record = StickerRecord(id="1", name="Café & Co")
        self.assertEqual(sticker_filename(record, 3), "sticker-3-Caf____Co.png")

    def test_numbered_record(self) -> None:
        record = StickerRecord(id="sticker-7", name="x", number=7, formatted_number="ID-007")
        self.assertEqual(sticker_filename(record, 1), "sticker-ID-007.png")

    def test_pdf_filename(self) -> None:
        self.assertEqual(
            pdf_filename(DEFAULT_DIMENSIONS, 12), "stickers-batch-5x8cm-12items.pdf"
        )


class PngExportTests(unittest.IsolatedAsyncioTestCase):
    def _controller(self, **kwargs) -> tuple[BatchExportController, _FakeRenderer]:
        renderer = _FakeRenderer()
        controller = BatchExportController(
            DEFAULT_DIMENSIONS,
            item_delay=0,
            batch_delay=0,
            renderer=renderer,
            **kwargs,
        )
        return controller, renderer

    async def test_exports_every_record_in_batches(self) -> None:
        updates: list[tuple[int, float, str]] = []

        def on_progress(job: ExportJob) -> None:
            updates.append((job.exported, job.progress, job.status))

        controller, renderer = self._controller(on_progress=on_progress)
        sink = _ListSink()
        job = await controller.export_png(_records(250), sink, batch_size=100)

        self.assertEqual(len(sink.names), 250)
        self.assertEqual(renderer.rendered, [str(i) for i in range(1, 251)])
        self.assertEqual(job.total_batches, 3)
        batch_statuses = [s for _, _, s in updates if s.startswith("Processing batch")]
        self.assertEqual(
            sorted(set(batch_statuses)),
            ["Processing batch 1 of 3", "Processing batch 2 of 3", "Processing batch 3 of 3"],
        )

        progress = [p for _, p, _ in updates]
        self.assertEqual(progress, sorted(progress))
        for exported, value, _ in updates:
            if exported < 250:
                self.assertLess(value, 100)
        self.assertEqual(job.progress, 100)
        self.assertEqual(job.state, ExportState.IDLE)
        self.assertEqual(job.status, "Export completed! 250 stickers exported.")

    async def test_cancel_mid_batch_stops_after_current_record(self) -> None:
        controller, _ = self._controller()

        class _CancellingSink(_ListSink):
            def write(self, filename: str, data: bytes) -> None:
                super().write(filename, data)
                if len(self.names) == 130:
                    controller.cancel()

        sink = _CancellingSink()
        job = await controller.export_png(_records(250), sink, batch_size=100)

        self.assertEqual(len(sink.names), 130)
        self.assertEqual(job.state, ExportState.CANCELLED)
        self.assertEqual(job.status, "Export cancelled")
        self.assertEqual(job.current_batch, 0)
        self.assertAlmostEqual(job.progress, 52.0)
        self.assertEqual(controller.state, ExportState.CANCELLED)

    async def test_batch_size_must_be_positive(self) -> None:
        controller, _ = self._controller()
        with self.assertRaises(InvalidConfigurationError):
            await controller.export_png(_records(3), _ListSink(), batch_size=0)

    async def test_empty_export_is_rejected(self) -> None:
        controller, _ = self._controller()
        with self.assertRaises(InvalidConfigurationError):
            await controller.export_png([], _ListSink())

    async def test_records_are_snapshotted(self) -> None:
        controller, renderer = self._controller()
        records = _records(3)

        class _MutatingSink(_ListSink):
            def write(self, filename: str, data: bytes) -> None:
                super().write(filename, data)
                records.append(StickerRecord(id="late"))

        await controller.export_png(records, _MutatingSink(), batch_size=2)
        self.assertEqual(renderer.rendered, ["1", "2", "3"])

    async def test_zip_and_directory_sinks(self) -> None:
        controller, _ = self._controller()
        zip_sink = ZipSink()
        await controller.export_png(_records(2), zip_sink)
        with zipfile.ZipFile(BytesIO(zip_sink.getvalue())) as archive:
            self.assertEqual(
                archive.namelist(),
                ["sticker-1-Shop_1.png", "sticker-2-Shop_2.png"],
            )

        with tempfile.TemporaryDirectory() as tmp:
            dir_sink = DirectorySink(tmp)
            await controller.export_png(_records(2), dir_sink)
            self.assertEqual(len(dir_sink.written), 2)
            self.assertTrue(all(path.exists() for path in dir_sink.written))


class PdfExportTests(unittest.IsolatedAsyncioTestCase):
    async def test_pdf_paginates_like_layout(self) -> None:
        renderer = _FakeRenderer()
        controller = BatchExportController(DEFAULT_DIMENSIONS, renderer=renderer)
        document = await controller.export_pdf(_records(10))

        self.assertIsNotNone(document)
        assert document is not None
        layout = compute_page_layout(DEFAULT_PAGE_CONFIG, DEFAULT_DIMENSIONS)
        self.assertEqual(document.page_count, 2)
        self.assertEqual(
            document.placements,
            [(layout.placement(i)[0], layout.placement(i)[1].index) for i in range(10)],
        )
        self.assertEqual(document.filename, "stickers-batch-5x8cm-10items.pdf")

        with fitz.open(stream=document.data, filetype="pdf") as doc:
            self.assertEqual(doc.page_count, 2)
            self.assertEqual(doc.metadata["title"], "Stickers Batch - 5x8cm")
            self.assertEqual(doc.metadata["subject"], "10 stickers exported")
            self.assertEqual(doc.metadata["creator"], "Sticker Generator Pro")
        self.assertEqual(controller.state, ExportState.IDLE)

    async def test_exact_page_fill_has_no_blank_page(self) -> None:
        controller = BatchExportController(DEFAULT_DIMENSIONS, renderer=_FakeRenderer())
        document = await controller.export_pdf(_records(9))
        assert document is not None
        with fitz.open(stream=document.data, filetype="pdf") as doc:
            self.assertEqual(doc.page_count, 1)

    async def test_cancel_discards_document(self) -> None:
        controller: BatchExportController

        def on_progress(job: ExportJob) -> None:
            if job.exported == 3:
                controller.cancel()

        controller = BatchExportController(
            DEFAULT_DIMENSIONS, renderer=_FakeRenderer(), on_progress=on_progress
        )
        document = await controller.export_pdf(_records(10))
        self.assertIsNone(document)
        job = controller.job
        assert job is not None
        self.assertEqual(job.exported, 3)
        self.assertEqual(job.status, "Export cancelled")


class ExportFailureTests(unittest.IsolatedAsyncioTestCase):
    async def test_zero_sized_sticker_is_rejected_before_running(self) -> None:
        flat = replace(DEFAULT_DIMENSIONS, sticker=Size(0.0, 8.0))
        controller = BatchExportController(
            flat, item_delay=0, batch_delay=0, renderer=_FakeRenderer()
        )
        with self.assertRaises(InvalidConfigurationError):
            await controller.export_png(_records(2), _ListSink())
        self.assertIsNone(controller.job)
        self.assertEqual(controller.state, ExportState.IDLE)

    async def test_renderer_error_ends_the_job(self) -> None:
        async def broken(record: StickerRecord, dimensions: StickerDimensions) -> bytes:
            raise RuntimeError("renderer crashed")

        controller = BatchExportController(
            DEFAULT_DIMENSIONS, item_delay=0, batch_delay=0, renderer=broken
        )
        with self.assertLogs("sticker_export", level="ERROR"):
            with self.assertRaises(RuntimeError):
                await controller.export_png(_records(2), _ListSink())
        job = controller.job
        assert job is not None
        self.assertEqual(controller.state, ExportState.IDLE)
        self.assertEqual(job.current_batch, 0)
        self.assertEqual(job.status, "Export failed: renderer crashed")

    async def test_pdf_renderer_error_ends_the_job(self) -> None:
        async def broken(record: StickerRecord, dimensions: StickerDimensions) -> bytes:
            raise RuntimeError("no fonts")

        controller = BatchExportController(DEFAULT_DIMENSIONS, renderer=broken)
        with self.assertLogs("sticker_export", level="ERROR"):
            with self.assertRaises(RuntimeError):
                await controller.export_pdf(_records(3))
        self.assertEqual(controller.state, ExportState.IDLE)


class EncodeForPdfTests(unittest.TestCase):
    def setUp(self) -> None:
        # noisy content so JPEG quality changes the encoded size
        img = Image.effect_noise((590, 944), 64).convert("RGB")
        buf = BytesIO()
        img.save(buf, format="PNG")
        self.png = buf.getvalue()

    def _encode(self, **overrides) -> bytes:
        config = replace(DEFAULT_PAGE_CONFIG, **overrides)
        layout = compute_page_layout(config, DEFAULT_DIMENSIONS)
        return encode_for_pdf(self.png, config, layout).getvalue()

    def test_quality_selects_encoding(self) -> None:
        draft = self._encode(quality=Quality.DRAFT)
        normal = self._encode(quality=Quality.NORMAL)
        high = self._encode(quality=Quality.HIGH)
        self.assertTrue(draft.startswith(b"\xff\xd8"))
        self.assertTrue(normal.startswith(b"\xff\xd8"))
        self.assertTrue(high.startswith(b"\x89PNG"))
        self.assertLess(len(draft), len(normal))

    def test_high_quality_is_lossless(self) -> None:
        with Image.open(BytesIO(self._encode(quality=Quality.HIGH))) as encoded:
            with Image.open(BytesIO(self.png)) as original:
                self.assertEqual(encoded.tobytes(), original.convert("RGB").tobytes())

    def test_low_dpi_downsamples_to_slot_size(self) -> None:
        with Image.open(BytesIO(self._encode(dpi=150))) as img:
            self.assertEqual(img.size, (295, 472))

    def test_raster_dpi_keeps_size(self) -> None:
        with Image.open(BytesIO(self._encode(dpi=300))) as img:
            self.assertEqual(img.size, (590, 944))
        with Image.open(BytesIO(self._encode(dpi=600))) as img:
            self.assertEqual(img.size, (590, 944))


class ZipSinkTests(unittest.TestCase):
    def test_close_is_idempotent(self) -> None:
        sink = ZipSink()
        sink.write("a.png", b"data")
        self.assertFalse(sink.closed)
        sink.close()
        sink.close()
        self.assertTrue(sink.closed)
        with zipfile.ZipFile(BytesIO(sink.getvalue())) as archive:
            self.assertEqual(archive.namelist(), ["a.png"])


if __name__ == "__main__":
    unittest.main()
