#!/usr/bin/env python3
"""Generate sticker PNGs or a printable PDF from the command line."""

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from dataclasses import replace
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from dotenv import load_dotenv

from app_state import AppState, SettingsStore
from number_series import generate_series, preview_numbers
from page_layout import render_page_preview
from sticker_data import read_sticker_table, write_csv_template
from sticker_export import BatchExportController, DirectorySink, ExportJob
from sticker_rendering import get_preset, list_presets, render_sticker
from sticker_types import (
    InvalidConfigurationError,
    Margins,
    NumberSeriesConfig,
    Orientation,
    PageFormat,
    Quality,
    Size,
    Spacing,
    StickerRecord,
)

T = TypeVar("T")


def _apply_page_options(state: AppState, args: argparse.Namespace) -> None:
    updates = {}
    if args.page_format:
        updates["page_format"] = PageFormat(args.page_format)
    if args.orientation:
        updates["orientation"] = Orientation(args.orientation)
    if args.quality:
        updates["quality"] = Quality(args.quality)
    if args.dpi is not None:
        updates["dpi"] = args.dpi
    if args.scale is not None:
        updates["sticker_scale"] = args.scale
    if args.custom_size:
        updates["custom_width_mm"], updates["custom_height_mm"] = args.custom_size
        if not args.page_format:
            updates["page_format"] = PageFormat.CUSTOM
    if args.margin is not None:
        updates["margins"] = Margins(args.margin, args.margin, args.margin, args.margin)
    if args.margins:
        updates["margins"] = Margins(*args.margins)
    if args.gap is not None:
        updates["gap_horizontal_mm"] = args.gap
        updates["gap_vertical_mm"] = args.gap
    if updates:
        state.page_config = replace(state.page_config, **updates)


def _apply_sticker_options(state: AppState, args: argparse.Namespace) -> None:
    if args.preset:
        state.dimensions = get_preset(args.preset)
    state.dimensions = state.dimensions.edited(
        sticker=Size(*args.sticker_size) if args.sticker_size else None,
        logo=Size(*args.logo_size) if args.logo_size else None,
        contact=Size(*args.contact_size) if args.contact_size else None,
        spacing=Spacing(*args.spacing) if args.spacing else None,
        qr_width=args.qr_width,
        qr_height=args.qr_height,
    )
    if args.batch_size is not None:
        state.batch_size = args.batch_size

    updates = {
        field: value
        for field, value in (
            ("name", args.name),
            ("phone", args.phone),
            ("email", args.email),
            ("website", args.website),
            ("qr_data", args.qr_data),
        )
        if value is not None
    }
    if updates:
        state.update_sticker(replace(state.current_sticker, **updates))


def _load_logo(path: Optional[str]) -> Optional[bytes]:
    if not path:
        return None
    logo_path = Path(path)
    if not logo_path.is_file():
        raise SystemExit(f"Logo file '{path}' does not exist.")
    return logo_path.read_bytes()


def _select_records(state: AppState, args: argparse.Namespace) -> List[StickerRecord]:
    """Pick the data source from the arguments and return its records."""

    if args.csv:
        state.select_bulk(read_sticker_table(args.csv))
    elif args.series:
        start, end = args.series
        state.series_config = NumberSeriesConfig(
            start_number=start,
            end_number=end,
            prefix=args.prefix,
            suffix=args.suffix,
            padding_length=args.padding,
            qr_number_only=args.qr_number_only,
            include_in_qr=args.include_in_qr,
            include_in_name=args.include_in_name,
        )
        if not state.series_config.is_valid_range:
            raise SystemExit(
                f"Invalid number range {start}..{end}: start must be >= 0 and <= end."
            )
        state.select_series(generate_series(state.series_config, state.current_sticker))
    else:
        state.select_single()

    records = state.records_for_export()
    logo = _load_logo(args.logo)
    if logo is not None:
        records = [replace(record, logo=logo) for record in records]
    return records


def _print_progress(job: ExportJob) -> None:
    sys.stderr.write(f"\r{job.progress:5.1f}% {job.status:<60}")
    sys.stderr.flush()


async def _run_export(
    controller: BatchExportController,
    coro_factory: Callable[[], Awaitable[T]],
) -> T:
    """Run an export, turning Ctrl-C into a cooperative cancel."""

    loop = asyncio.get_running_loop()
    handled = False
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, controller.cancel)
        handled = True
    try:
        return await coro_factory()
    finally:
        if handled:
            loop.remove_signal_handler(signal.SIGINT)


def export_png(state: AppState, records: Sequence[StickerRecord], output: str) -> str:
    controller = BatchExportController(
        state.dimensions,
        state.page_config,
        on_progress=_print_progress,
    )
    sink = DirectorySink(output)
    job = asyncio.run(
        _run_export(
            controller,
            lambda: controller.export_png(records, sink, state.batch_size),
        )
    )
    sys.stderr.write("\n")
    return f"{job.status} Files written to '{output}'."


def export_pdf(state: AppState, records: Sequence[StickerRecord], output: Optional[str]) -> str:
    controller = BatchExportController(
        state.dimensions,
        state.page_config,
        on_progress=_print_progress,
    )
    document = asyncio.run(
        _run_export(controller, lambda: controller.export_pdf(records))
    )
    sys.stderr.write("\n")
    if document is None:
        return "Export cancelled"

    destination = Path(output or document.filename)
    destination.write_bytes(document.data)
    return f"Wrote {destination} ({document.page_count} pages, {len(records)} stickers)."


def write_preview(state: AppState, records: Sequence[StickerRecord], output: Optional[str]) -> str:
    sample = asyncio.run(render_sticker(records[0], state.dimensions))
    preview = render_page_preview(state.page_config, state.dimensions, sample)
    destination = Path(output or "page_preview.png")
    destination.write_bytes(preview.png)
    layout = preview.layout
    return (
        f"Wrote {destination}: {layout.stickers_per_row}x{layout.stickers_per_col} "
        f"= {layout.stickers_per_page} stickers per page, "
        f"{layout.page_count(len(records))} page(s) for {len(records)} stickers."
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sticker generator: logo + QR + contact labels as PNG or PDF"
    )
    parser.add_argument(
        "command",
        choices=["png", "pdf", "preview", "template"],
        help="What to produce.",
    )
    parser.add_argument("-o", "--output")
    parser.add_argument(
        "--settings",
        help=(
            "Settings file (defaults to STICKER_SETTINGS_PATH from the "
            "environment/.env, else ~/.sticker_generator.json)."
        ),
    )
    parser.add_argument(
        "--save-settings",
        action="store_true",
        help="Persist the dimensions, page and series options used for this run.",
    )
    parser.add_argument("-v", "--verbose", action="store_true")

    design = parser.add_argument_group("design")
    design.add_argument(
        "-p", "--preset",
        help=f"Dimension preset ({', '.join(list_presets())}).",
    )
    design.add_argument("--name")
    design.add_argument("--phone")
    design.add_argument("--email")
    design.add_argument("--website")
    design.add_argument("--qr-data")
    design.add_argument("--logo", help="Logo image file (any common raster format).")
    for part in ("sticker", "logo", "contact"):
        design.add_argument(
            f"--{part}-size",
            nargs=2,
            type=float,
            metavar=("W", "H"),
            help=f"{part.capitalize()} width and height (cm).",
        )
    design.add_argument("--qr-width", type=float, help="QR side (cm); keeps it square.")
    design.add_argument(
        "--qr-height",
        type=float,
        help="QR side (cm); keeps it square, applied after --qr-width.",
    )
    design.add_argument(
        "--spacing",
        nargs=3,
        type=float,
        metavar=("TOP", "MIDDLE", "BOTTOM"),
        help="Vertical spacing between regions (cm).",
    )

    data = parser.add_argument_group("data")
    data.add_argument("--csv", help="CSV or spreadsheet with one sticker per row.")
    data.add_argument(
        "--series",
        nargs=2,
        type=int,
        metavar=("START", "END"),
        help="Generate numbered stickers for START..END inclusive.",
    )
    data.add_argument("--prefix", default="")
    data.add_argument("--suffix", default="")
    data.add_argument("--padding", type=int, default=0, help="Zero-pad width.")
    data.add_argument(
        "--qr-number-only",
        action="store_true",
        help="Encode only the bare number in the QR code.",
    )
    data.add_argument(
        "--include-in-qr",
        action="store_true",
        help="Append ?id=<number> to the QR payload.",
    )
    data.add_argument(
        "--include-in-name",
        action="store_true",
        help="Append #<number> to the business name.",
    )

    export = parser.add_argument_group("export")
    export.add_argument("-b", "--batch-size", type=int, help="PNG files per batch.")
    export.add_argument(
        "--page-format",
        choices=[f.value for f in PageFormat],
    )
    export.add_argument(
        "--custom-size",
        nargs=2,
        type=float,
        metavar=("W", "H"),
        help="Custom page size in mm (selects the Custom format).",
    )
    export.add_argument("--orientation", choices=[o.value for o in Orientation])
    export.add_argument("--quality", choices=[q.value for q in Quality])
    export.add_argument("--dpi", type=int)
    export.add_argument("--scale", type=float, help="Sticker scale factor on the page.")
    export.add_argument("--margin", type=float, help="Page margin on every side (mm).")
    export.add_argument(
        "--margins",
        nargs=4,
        type=float,
        metavar=("TOP", "BOTTOM", "LEFT", "RIGHT"),
        help="Per-side page margins (mm).",
    )
    export.add_argument("--gap", type=float, help="Gap between stickers (mm).")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point for sticker generation."""

    load_dotenv()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "template":
        destination = write_csv_template(args.output or "sticker_template.csv")
        print(f"Wrote {destination}")
        return 0

    store = SettingsStore(args.settings)
    state = store.load()
    _apply_sticker_options(state, args)
    _apply_page_options(state, args)

    try:
        records = _select_records(state, args)
        if args.command == "png":
            message = export_png(state, records, args.output or "stickers")
        elif args.command == "pdf":
            message = export_pdf(state, records, args.output)
        else:
            message = write_preview(state, records, args.output)
    except InvalidConfigurationError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc

    if args.save_settings:
        store.save(state)

    print(message)
    if args.series:
        print("Numbers: " + ", ".join(preview_numbers(state.series_config)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
