"""Application state and the persisted settings snapshot."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Union

from sticker_types import (
    DEFAULT_DIMENSIONS,
    DEFAULT_PAGE_CONFIG,
    Margins,
    NumberSeriesConfig,
    Orientation,
    PageConfiguration,
    PageFormat,
    Quality,
    Size,
    Spacing,
    StickerDimensions,
    StickerRecord,
)

logger = logging.getLogger(__name__)

SETTINGS_VERSION = 1
DEFAULT_SETTINGS_PATH = Path.home() / ".sticker_generator.json"

DEFAULT_STICKER = StickerRecord(
    id="1",
    name="Maghreb Distrib",
    phone="+213 5 59 42 44 56",
    email="commercialmaghrebdistrib@gmail.com",
    website="https://maghrebdistrib.com",
    qr_data="https://maghrebdistrib.com",
)


@dataclass(frozen=True)
class SingleSource:
    record: StickerRecord

    label = "Single Design"

    @property
    def records(self) -> list[StickerRecord]:
        return [self.record]


@dataclass(frozen=True)
class BulkSource:
    records: list[StickerRecord]

    label = "CSV Import"


@dataclass(frozen=True)
class SeriesSource:
    records: list[StickerRecord]

    label = "Numbered Stickers"


ActiveDataSource = Union[SingleSource, BulkSource, SeriesSource]


@dataclass
class AppState:
    """Everything the user is working on, owned by the entry point."""

    current_sticker: StickerRecord = DEFAULT_STICKER
    dimensions: StickerDimensions = DEFAULT_DIMENSIONS
    page_config: PageConfiguration = DEFAULT_PAGE_CONFIG
    series_config: NumberSeriesConfig = field(default_factory=NumberSeriesConfig)
    batch_size: int = 100
    source: ActiveDataSource | None = None

    @property
    def active_source(self) -> ActiveDataSource:
        if self.source is None or isinstance(self.source, SingleSource):
            return SingleSource(self.current_sticker)
        return self.source

    def select_single(self) -> None:
        self.source = None

    def select_bulk(self, records: list[StickerRecord]) -> None:
        self.source = BulkSource(list(records)) if records else None

    def select_series(self, records: list[StickerRecord]) -> None:
        self.source = SeriesSource(list(records)) if records else None

    def update_sticker(self, record: StickerRecord) -> None:
        self.current_sticker = record

    def records_for_export(self) -> list[StickerRecord]:
        return list(self.active_source.records)

    def active_source_info(self) -> tuple[str, int]:
        source = self.active_source
        return source.label, len(source.records)


def _sticker_to_dict(record: StickerRecord) -> dict[str, Any]:
    data = asdict(record)
    data.pop("logo", None)
    return data


def state_to_snapshot(state: AppState) -> dict[str, Any]:
    """Return the persisted subset of ``state``; record collections are excluded."""

    return {
        "version": SETTINGS_VERSION,
        "current_sticker": _sticker_to_dict(state.current_sticker),
        "dimensions": asdict(state.dimensions),
        "page_config": asdict(state.page_config),
        "series_config": asdict(state.series_config),
        "batch_size": state.batch_size,
    }


def _size(data: dict[str, Any]) -> Size:
    return Size(float(data["width"]), float(data["height"]))


def snapshot_to_state(snapshot: dict[str, Any]) -> AppState:
    version = snapshot.get("version")
    if version != SETTINGS_VERSION:
        raise ValueError(
            f"Unsupported settings version {version!r}, expected {SETTINGS_VERSION}."
        )
    dims = snapshot["dimensions"]
    dimensions = StickerDimensions(
        sticker=_size(dims["sticker"]),
        logo=_size(dims["logo"]),
        qr=_size(dims["qr"]),
        contact=_size(dims["contact"]),
        spacing=Spacing(**{k: float(v) for k, v in dims["spacing"].items()}),
    )

    page = dict(snapshot["page_config"])
    page_config = PageConfiguration(
        page_format=PageFormat(page["page_format"]),
        custom_width_mm=float(page["custom_width_mm"]),
        custom_height_mm=float(page["custom_height_mm"]),
        orientation=Orientation(page["orientation"]),
        dpi=int(page["dpi"]),
        margins=Margins(**{k: float(v) for k, v in page["margins"].items()}),
        gap_horizontal_mm=float(page["gap_horizontal_mm"]),
        gap_vertical_mm=float(page["gap_vertical_mm"]),
        sticker_scale=float(page["sticker_scale"]),
        quality=Quality(page["quality"]),
    )

    sticker = snapshot.get("current_sticker")
    current = StickerRecord(**sticker) if sticker else DEFAULT_STICKER

    return AppState(
        current_sticker=current,
        dimensions=dimensions,
        page_config=page_config,
        series_config=NumberSeriesConfig(**snapshot["series_config"]),
        batch_size=max(1, int(snapshot.get("batch_size", 100))),
    )


class SettingsStore:
    """Load settings at startup and save them whenever they change."""

    def __init__(self, path: str | Path | None = None) -> None:
        env_path = os.getenv("STICKER_SETTINGS_PATH")
        self.path = Path(path or env_path or DEFAULT_SETTINGS_PATH)

    def load(self) -> AppState:
        if not self.path.exists():
            return AppState()
        try:
            snapshot = json.loads(self.path.read_text(encoding="utf-8"))
            return snapshot_to_state(snapshot)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", self.path, exc)
            return AppState()

    def save(self, state: AppState) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(state_to_snapshot(state), indent=2),
            encoding="utf-8",
        )
        return self.path


__all__ = [
    "ActiveDataSource",
    "AppState",
    "BulkSource",
    "DEFAULT_STICKER",
    "SETTINGS_VERSION",
    "SeriesSource",
    "SettingsStore",
    "SingleSource",
    "snapshot_to_state",
    "state_to_snapshot",
]
