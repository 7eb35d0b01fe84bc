"""Named sticker dimension presets."""

from __future__ import annotations

from typing import Iterable

from sticker_types import DEFAULT_DIMENSIONS, Size, Spacing, StickerDimensions

_PRESETS: dict[str, StickerDimensions] = {
    "original": DEFAULT_DIMENSIONS,
    "large": StickerDimensions(
        sticker=Size(7.0, 7.0),
        logo=Size(4.5, 3.0),
        qr=Size(3.5, 3.5),
        contact=Size(4.5, 1.2),
        spacing=Spacing(0.4, 0.4, 0.4),
    ),
    "small": StickerDimensions(
        sticker=Size(4.0, 4.0),
        logo=Size(2.8, 1.8),
        qr=Size(2.2, 2.2),
        contact=Size(2.8, 0.8),
        spacing=Spacing(0.2, 0.2, 0.2),
    ),
    "business-card": StickerDimensions(
        sticker=Size(8.5, 5.5),
        logo=Size(4.0, 2.5),
        qr=Size(2.8, 2.8),
        contact=Size(6.0, 1.0),
        spacing=Spacing(0.3, 0.3, 0.3),
    ),
}


def get_preset(name: str) -> StickerDimensions:
    """Return the dimensions registered under ``name``."""

    key = name.strip().lower().replace("_", "-").replace(" ", "-")
    preset = _PRESETS.get(key)
    if preset is None:
        available = ", ".join(sorted(_PRESETS))
        raise SystemExit(
            f"Unknown preset '{name}'. Available presets: {available}"
        )
    return preset


def list_presets() -> Iterable[str]:
    """Return the preset identifiers."""

    return sorted(_PRESETS)
