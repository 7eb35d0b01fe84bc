"""Web UI for designing stickers and exporting them."""

from __future__ import annotations

import argparse
import asyncio
import os
from dataclasses import replace
from io import BytesIO
from pathlib import Path

from dotenv import load_dotenv
from flask import (
    Flask,
    redirect,
    render_template,
    request,
    send_file,
    url_for,
)
from werkzeug.datastructures import ImmutableMultiDict
from werkzeug.wrappers import Response

from app_state import AppState, SettingsStore
from number_series import generate_series, preview_numbers, qr_preview
from page_layout import render_page_preview
from sticker_data import CSV_TEMPLATE, read_sticker_table
from sticker_export import BatchExportController, ZipSink
from sticker_rendering import get_preset, list_presets, render_sticker
from sticker_types import (
    InvalidConfigurationError,
    Margins,
    NumberSeriesConfig,
    Orientation,
    PageConfiguration,
    PageFormat,
    Quality,
    Size,
    Spacing,
    StickerDimensions,
)


__all__ = ["run_web_app", "create_app", "create_app_from_env"]


def _float_field(
    form: ImmutableMultiDict[str, str], name: str, default: float
) -> float:
    raw = (form.get(name) or "").strip()
    try:
        value = float(raw) if raw else default
    except ValueError:
        return default
    return max(0.0, value)


def _edit_dimensions(
    form: ImmutableMultiDict[str, str], dims: StickerDimensions
) -> StickerDimensions:
    """Apply the per-field size inputs; only a changed QR side is applied."""

    def size(prefix: str, current: Size) -> Size:
        return Size(
            _float_field(form, f"{prefix}_width", current.width),
            _float_field(form, f"{prefix}_height", current.height),
        )

    qr_width = _float_field(form, "qr_width", dims.qr.width)
    qr_height = _float_field(form, "qr_height", dims.qr.height)
    return dims.edited(
        sticker=size("sticker", dims.sticker),
        logo=size("logo", dims.logo),
        contact=size("contact", dims.contact),
        spacing=Spacing(
            _float_field(form, "spacing_top", dims.spacing.top),
            _float_field(form, "spacing_middle", dims.spacing.middle),
            _float_field(form, "spacing_bottom", dims.spacing.bottom),
        ),
        qr_width=qr_width if qr_width != dims.qr.width else None,
        qr_height=qr_height if qr_height != dims.qr.height else None,
    )


def _edit_page_config(
    form: ImmutableMultiDict[str, str], config: PageConfiguration
) -> PageConfiguration:
    updates: dict[str, object] = {}
    if form.get("page_format") in PageFormat._value2member_map_:
        updates["page_format"] = PageFormat(form["page_format"])
    if form.get("orientation") in Orientation._value2member_map_:
        updates["orientation"] = Orientation(form["orientation"])
    if form.get("quality") in Quality._value2member_map_:
        updates["quality"] = Quality(form["quality"])

    margins = config.margins
    updates["margins"] = Margins(
        top=_float_field(form, "margin_top", margins.top),
        bottom=_float_field(form, "margin_bottom", margins.bottom),
        left=_float_field(form, "margin_left", margins.left),
        right=_float_field(form, "margin_right", margins.right),
    )
    updates["gap_horizontal_mm"] = _float_field(
        form, "gap_horizontal_mm", config.gap_horizontal_mm)
    updates["gap_vertical_mm"] = _float_field(
        form, "gap_vertical_mm", config.gap_vertical_mm)
    updates["custom_width_mm"] = _float_field(
        form, "custom_width_mm", config.custom_width_mm)
    updates["custom_height_mm"] = _float_field(
        form, "custom_height_mm", config.custom_height_mm)
    updates["sticker_scale"] = _float_field(form, "sticker_scale", config.sticker_scale)
    updates["dpi"] = int(_float_field(form, "dpi", config.dpi))
    return replace(config, **updates)


def create_app(
    state: AppState | None = None,
    store: SettingsStore | None = None,
) -> Flask:
    """Create the Flask app around one ``AppState``."""
    template_dir = Path(__file__).resolve().parent / "templates"
    app = Flask(__name__, template_folder=str(template_dir))
    app.config["SECRET_KEY"] = os.getenv(
        "FLASK_SECRET_KEY", "sticker-generator-ui")

    if state is None:
        state = store.load() if store is not None else AppState()

    def _persist() -> None:
        if store is not None:
            store.save(state)

    def _error(message: str) -> Response:
        return redirect(url_for("index", error="generation", message=message))

    def _int_field(form: ImmutableMultiDict[str, str], name: str, default: int) -> int:
        raw = (form.get(name) or "").strip()
        try:
            return int(raw) if raw else default
        except ValueError:
            return default

    def _flag(form: ImmutableMultiDict[str, str], name: str) -> bool:
        return (form.get(name) or "").lower() in {"1", "true", "yes", "on"}

    @app.route("/", methods=["GET"])
    def index() -> str:  # pyright: ignore[reportUnusedFunction]
        source_type, count = state.active_source_info()
        error_message = None
        if request.args.get("error") == "generation":
            error_message = (
                request.args.get("message")
                or "Unable to generate stickers."
            )
        return render_template(
            "index.html",
            sticker=state.current_sticker,
            dimensions=state.dimensions,
            page_config=state.page_config,
            series=state.series_config,
            series_preview=preview_numbers(state.series_config),
            series_qr=qr_preview(state.series_config, state.current_sticker),
            batch_size=state.batch_size,
            source_type=source_type,
            source_count=count,
            presets=list(list_presets()),
            page_formats=[f.value for f in PageFormat],
            orientations=[o.value for o in Orientation],
            qualities=[q.value for q in Quality],
            error=error_message,
        )

    @app.route("/design", methods=["POST"])
    def design() -> Response:  # pyright: ignore[reportUnusedFunction]
        form = request.form
        logo_file = request.files.get("logo")
        logo = state.current_sticker.logo
        if logo_file and logo_file.filename:
            logo = logo_file.read() or None
        state.update_sticker(
            replace(
                state.current_sticker,
                name=form.get("name", state.current_sticker.name),
                phone=form.get("phone", state.current_sticker.phone),
                email=form.get("email", state.current_sticker.email),
                website=form.get("website", state.current_sticker.website),
                qr_data=form.get("qr_data", state.current_sticker.qr_data),
                logo=logo,
            )
        )

        preset = form.get("preset")
        if preset:
            try:
                state.dimensions = get_preset(preset)
            except SystemExit as exc:
                return _error(str(exc))
        else:
            state.dimensions = _edit_dimensions(form, state.dimensions)

        state.page_config = _edit_page_config(form, state.page_config)
        state.batch_size = max(1, _int_field(form, "batch_size", state.batch_size))
        _persist()
        return redirect(url_for("index"))

    @app.route("/import", methods=["POST"])
    def import_data() -> Response:  # pyright: ignore[reportUnusedFunction]
        upload = request.files.get("data_file")
        if not upload or not upload.filename:
            return _error("Choose a CSV or spreadsheet file to import.")
        try:
            records = read_sticker_table(BytesIO(upload.read()), upload.filename)
        except (ValueError, OSError) as exc:
            return _error(f"Error parsing file: {exc}")
        if not records:
            return _error("The imported file contains no rows.")
        state.select_bulk(records)
        return redirect(url_for("index"))

    @app.route("/series", methods=["POST"])
    def series() -> Response:  # pyright: ignore[reportUnusedFunction]
        form = request.form
        config = NumberSeriesConfig(
            start_number=_int_field(form, "start_number", state.series_config.start_number),
            end_number=_int_field(form, "end_number", state.series_config.end_number),
            prefix=form.get("prefix", ""),
            suffix=form.get("suffix", ""),
            padding_length=max(0, _int_field(form, "padding_length", 0)),
            qr_number_only=_flag(form, "qr_number_only"),
            include_in_qr=_flag(form, "include_in_qr"),
            include_in_name=_flag(form, "include_in_name"),
        )
        state.series_config = config
        _persist()
        if not config.is_valid_range:
            return _error("Invalid number range: start must be >= 0 and <= end.")
        state.select_series(generate_series(config, state.current_sticker))
        return redirect(url_for("index"))

    @app.route("/source/single", methods=["POST"])
    def source_single() -> Response:  # pyright: ignore[reportUnusedFunction]
        state.select_single()
        return redirect(url_for("index"))

    @app.route("/sticker.png", methods=["GET"])
    def sticker_png() -> Response:  # pyright: ignore[reportUnusedFunction]
        records = state.records_for_export()
        try:
            png = asyncio.run(render_sticker(records[0], state.dimensions))
        except InvalidConfigurationError as exc:
            return Response(f"Invalid sticker dimensions: {exc}", status=400)
        return send_file(BytesIO(png), mimetype="image/png")

    @app.route("/preview.png", methods=["GET"])
    def preview_png() -> Response:  # pyright: ignore[reportUnusedFunction]
        records = state.records_for_export()
        try:
            sample = asyncio.run(render_sticker(records[0], state.dimensions))
            preview = render_page_preview(state.page_config, state.dimensions, sample)
        except InvalidConfigurationError as exc:
            return Response(f"Invalid page configuration: {exc}", status=400)
        return send_file(BytesIO(preview.png), mimetype="image/png")

    @app.route("/export/png", methods=["POST"])
    def export_png() -> Response:  # pyright: ignore[reportUnusedFunction]
        records = state.records_for_export()
        controller = BatchExportController(
            state.dimensions,
            state.page_config,
            item_delay=0,
            batch_delay=0,
        )
        sink = ZipSink()
        try:
            asyncio.run(controller.export_png(records, sink, state.batch_size))
        except InvalidConfigurationError as exc:
            sink.close()
            return _error(str(exc))

        return send_file(
            BytesIO(sink.getvalue()),
            mimetype="application/zip",
            as_attachment=True,
            download_name="stickers_png.zip",
        )

    @app.route("/export/pdf", methods=["POST"])
    def export_pdf() -> Response:  # pyright: ignore[reportUnusedFunction]
        records = state.records_for_export()
        controller = BatchExportController(state.dimensions, state.page_config)
        try:
            document = asyncio.run(controller.export_pdf(records))
        except InvalidConfigurationError as exc:
            return _error(str(exc))
        if document is None:
            return _error("Export cancelled")

        return send_file(
            BytesIO(document.data),
            mimetype="application/pdf",
            as_attachment=True,
            download_name=document.filename,
        )

    @app.route("/template.csv", methods=["GET"])
    def csv_template() -> Response:  # pyright: ignore[reportUnusedFunction]
        return send_file(
            BytesIO(CSV_TEMPLATE.encode("utf-8")),
            mimetype="text/csv",
            as_attachment=True,
            download_name="sticker_template.csv",
        )

    return app


def create_app_from_env() -> Flask:
    """Create the Flask app with settings from STICKER_SETTINGS_PATH."""
    load_dotenv()
    return create_app(store=SettingsStore())


def run_web_app(host: str, port: int) -> None:
    app = create_app_from_env()

    use_reloader_env = os.getenv("USE_RELOADER")
    use_reloader = (
        str(use_reloader_env).lower() in {"1", "true", "yes", "on"}
        if use_reloader_env is not None
        else False
    )
    app.run(host=host, port=port, debug=False, use_reloader=use_reloader)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for the web UI."""
    parser = argparse.ArgumentParser(
        description="Sticker generator web UI"
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host/IP for the web UI (default: 127.0.0.1).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=4000,
        help="Port for the web UI (default: 4000).",
    )

    args = parser.parse_args(argv)
    run_web_app(host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    load_dotenv()
    main()
