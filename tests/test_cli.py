import contextlib
import io
import tempfile
import unittest
from pathlib import Path

import fitz

from app_state import SettingsStore
from sticker_data import CSV_TEMPLATE
from sticker_generator import build_parser, main
from sticker_types import Margins, PageFormat, Size, Spacing


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.settings = str(self.tmp / "settings.json")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _run(self, *argv: str) -> str:
        out = io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(io.StringIO()):
            self.assertEqual(main(list(argv)), 0)
        return out.getvalue()

    def test_template_command(self) -> None:
        destination = self.tmp / "template.csv"
        self._run("template", "-o", str(destination))
        self.assertEqual(destination.read_text(encoding="utf-8"), CSV_TEMPLATE)

    def test_pdf_for_number_series(self) -> None:
        destination = self.tmp / "out.pdf"
        output = self._run(
            "pdf",
            "--settings", self.settings,
            "--series", "1", "3",
            "--prefix", "ID-",
            "--padding", "3",
            "-o", str(destination),
        )
        self.assertIn("1 pages, 3 stickers", output)
        self.assertIn("ID-001, ID-002, ID-003", output)
        with fitz.open(stream=destination.read_bytes(), filetype="pdf") as doc:
            self.assertEqual(doc.page_count, 1)

    def test_png_for_csv(self) -> None:
        csv_path = self.tmp / "data.csv"
        csv_path.write_text(CSV_TEMPLATE, encoding="utf-8")
        out_dir = self.tmp / "pngs"
        self._run("png", "--settings", self.settings, "--csv", str(csv_path), "-o", str(out_dir))
        self.assertEqual(
            sorted(p.name for p in out_dir.iterdir()),
            ["sticker-1-Maghreb_Distrib.png", "sticker-2-Example_Business.png"],
        )

    def test_invalid_series_exits(self) -> None:
        with self.assertRaises(SystemExit):
            self._run("pdf", "--settings", self.settings, "--series", "5", "1")

    def test_save_settings(self) -> None:
        self._run(
            "preview",
            "--settings", self.settings,
            "--preset", "large",
            "--orientation", "landscape",
            "--save-settings",
            "-o", str(self.tmp / "preview.png"),
        )
        state = SettingsStore(self.settings).load()
        self.assertEqual(state.dimensions.describe(), "7x7cm")
        self.assertEqual(state.page_config.orientation, "landscape")

    def test_dimension_and_page_flags(self) -> None:
        self._run(
            "preview",
            "--settings", self.settings,
            "--sticker-size", "6", "9",
            "--contact-size", "4", "1.5",
            "--spacing", "0.2", "0.4", "0.2",
            "--qr-width", "2.5",
            "--qr-height", "2.0",
            "--custom-size", "100", "150",
            "--margins", "5", "6", "7", "8",
            "--save-settings",
            "-o", str(self.tmp / "preview.png"),
        )
        state = SettingsStore(self.settings).load()
        self.assertEqual(state.dimensions.sticker, Size(6.0, 9.0))
        self.assertEqual(state.dimensions.contact, Size(4.0, 1.5))
        self.assertEqual(state.dimensions.spacing, Spacing(0.2, 0.4, 0.2))
        self.assertEqual(state.dimensions.qr, Size(2.0, 2.0))
        self.assertEqual(state.page_config.page_format, PageFormat.CUSTOM)
        self.assertEqual(state.page_config.page_size_mm, (100.0, 150.0))
        self.assertEqual(state.page_config.margins, Margins(5.0, 6.0, 7.0, 8.0))

    def test_zero_sized_sticker_exits(self) -> None:
        with self.assertRaises(SystemExit):
            self._run(
                "png",
                "--settings", self.settings,
                "--sticker-size", "0", "8",
                "-o", str(self.tmp / "pngs"),
            )

    def test_parser_rejects_unknown_command(self) -> None:
        with contextlib.redirect_stderr(io.StringIO()), self.assertRaises(SystemExit):
            build_parser().parse_args(["svg"])


if __name__ == "__main__":
    unittest.main()
