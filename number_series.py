"""Expansion of a numeric ID range into sticker records."""

from __future__ import annotations

from dataclasses import replace
from typing import List

from sticker_types import NumberSeriesConfig, StickerRecord

__all__ = [
    "format_number",
    "generate_series",
    "preview_numbers",
    "qr_preview",
    "series_qr_payload",
]


def format_number(number: int, config: NumberSeriesConfig) -> str:
    """Return ``prefix + zero-padded number + suffix``."""

    digits = str(number)
    if config.padding_length > 0:
        digits = digits.zfill(config.padding_length)
    return f"{config.prefix}{digits}{config.suffix}"


def series_qr_payload(
    number: int,
    formatted: str,
    config: NumberSeriesConfig,
    base: StickerRecord,
) -> str:
    if config.qr_number_only:
        return str(number)
    base_target = base.qr_data or base.website
    if config.include_in_qr and base_target:
        return f"{base_target}?id={formatted}"
    return base_target or str(number)


def generate_series(
    config: NumberSeriesConfig,
    base: StickerRecord,
) -> List[StickerRecord]:
    """Return one record per number in ``[start, end]``, ascending.

    An invalid range yields an empty list.
    """

    if not config.is_valid_range:
        return []

    records: List[StickerRecord] = []
    for number in range(config.start_number, config.end_number + 1):
        formatted = format_number(number, config)
        name = f"{base.name} #{formatted}" if config.include_in_name else base.name
        records.append(
            replace(
                base,
                id=f"sticker-{number}",
                name=name,
                qr_data=series_qr_payload(number, formatted, config, base),
                number=number,
                formatted_number=formatted,
            )
        )
    return records


def preview_numbers(config: NumberSeriesConfig) -> List[str]:
    """Return a short sample of formatted numbers for display."""

    if not config.is_valid_range:
        return []
    start, end = config.start_number, config.end_number
    if config.count <= 5:
        return [format_number(n, config) for n in range(start, end + 1)]
    return [
        format_number(start, config),
        format_number(start + 1, config),
        "...",
        format_number(end - 1, config),
        format_number(end, config),
    ]


def qr_preview(config: NumberSeriesConfig, base: StickerRecord) -> str:
    """Return the QR payload the first generated sticker will carry."""

    start = config.start_number
    return series_qr_payload(start, format_number(start, config), config, base)
