import unittest
from dataclasses import replace
from io import BytesIO

from PIL import Image
from reportlab.lib.units import mm

from page_layout import compute_page_layout, render_page_preview
from sticker_types import (
    DEFAULT_DIMENSIONS,
    DEFAULT_PAGE_CONFIG,
    InvalidConfigurationError,
    Margins,
    Orientation,
    PageFormat,
)


class PageLayoutTests(unittest.TestCase):
    def test_a4_portrait_grid(self) -> None:
        layout = compute_page_layout(DEFAULT_PAGE_CONFIG, DEFAULT_DIMENSIONS)
        self.assertEqual((layout.usable_width_mm, layout.usable_height_mm), (190, 277))
        self.assertEqual((layout.stickers_per_row, layout.stickers_per_col), (3, 3))
        self.assertEqual(layout.stickers_per_page, 9)
        self.assertEqual(layout.fit_scale, 1.0)

    def test_wider_gaps(self) -> None:
        config = replace(DEFAULT_PAGE_CONFIG, gap_horizontal_mm=10, gap_vertical_mm=10)
        layout = compute_page_layout(config, DEFAULT_DIMENSIONS)
        self.assertEqual(layout.stickers_per_page, 9)

    def test_landscape_swaps_grid(self) -> None:
        config = replace(DEFAULT_PAGE_CONFIG, orientation=Orientation.LANDSCAPE)
        layout = compute_page_layout(config, DEFAULT_DIMENSIONS)
        self.assertEqual((layout.page_width_mm, layout.page_height_mm), (297, 210))
        self.assertEqual((layout.stickers_per_row, layout.stickers_per_col), (5, 2))

    def test_oversized_sticker_is_fitted_to_one_per_page(self) -> None:
        config = replace(DEFAULT_PAGE_CONFIG, sticker_scale=5.0)
        layout = compute_page_layout(config, DEFAULT_DIMENSIONS)
        self.assertAlmostEqual(layout.fit_scale, 277 / 400)
        self.assertLessEqual(layout.sticker_width_mm, layout.usable_width_mm)
        self.assertAlmostEqual(layout.sticker_height_mm, layout.usable_height_mm)
        self.assertEqual(layout.stickers_per_page, 1)

    def test_slot_positions(self) -> None:
        layout = compute_page_layout(DEFAULT_PAGE_CONFIG, DEFAULT_DIMENSIONS)
        slot = layout.slot(4)
        self.assertEqual((slot.row, slot.col), (1, 1))
        self.assertAlmostEqual(slot.x_mm, 65)
        self.assertAlmostEqual(slot.y_mm, 95)
        left, bottom, width, height = slot.to_pdf_rect(layout.page_height_mm)
        self.assertAlmostEqual(left, 65 * mm)
        self.assertAlmostEqual(bottom, 122 * mm)
        self.assertAlmostEqual(width, 50 * mm)
        self.assertAlmostEqual(height, 80 * mm)
        with self.assertRaises(IndexError):
            layout.slot(9)

    def test_placement_and_page_count(self) -> None:
        layout = compute_page_layout(DEFAULT_PAGE_CONFIG, DEFAULT_DIMENSIONS)
        page, slot = layout.placement(10)
        self.assertEqual((page, slot.index), (1, 1))
        self.assertEqual(layout.page_count(0), 0)
        self.assertEqual(layout.page_count(9), 1)
        self.assertEqual(layout.page_count(10), 2)

    def test_invalid_configurations(self) -> None:
        bad_configs = [
            replace(DEFAULT_PAGE_CONFIG, margins=Margins(-1, 10, 10, 10)),
            replace(DEFAULT_PAGE_CONFIG, margins=Margins(150, 150, 10, 10)),
            replace(DEFAULT_PAGE_CONFIG, gap_vertical_mm=-2),
            replace(DEFAULT_PAGE_CONFIG, sticker_scale=0),
            replace(DEFAULT_PAGE_CONFIG, dpi=0),
            replace(
                DEFAULT_PAGE_CONFIG,
                page_format=PageFormat.CUSTOM,
                custom_width_mm=0,
            ),
        ]
        for config in bad_configs:
            with self.assertRaises(InvalidConfigurationError):
                compute_page_layout(config, DEFAULT_DIMENSIONS)


class PagePreviewTests(unittest.TestCase):
    def test_preview_slots_match_layout(self) -> None:
        preview = render_page_preview(DEFAULT_PAGE_CONFIG, DEFAULT_DIMENSIONS)
        layout = compute_page_layout(DEFAULT_PAGE_CONFIG, DEFAULT_DIMENSIONS)
        self.assertEqual(preview.layout, layout)
        self.assertEqual(list(preview.slots), layout.page_slots())

    def test_preview_fits_bounding_box(self) -> None:
        sample = BytesIO()
        Image.new("RGB", (59, 94), (10, 20, 30)).save(sample, format="PNG")
        preview = render_page_preview(
            DEFAULT_PAGE_CONFIG, DEFAULT_DIMENSIONS, sample.getvalue()
        )
        with Image.open(BytesIO(preview.png)) as img:
            self.assertLessEqual(img.width, 401)
            self.assertLessEqual(img.height, 601)
            self.assertGreater(img.width, 300)


if __name__ == "__main__":
    unittest.main()
