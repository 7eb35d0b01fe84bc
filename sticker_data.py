"""Tabular import of sticker records and the downloadable CSV template."""

from __future__ import annotations

from pathlib import Path
from typing import IO, Dict, Iterable, List, Mapping, Union

import pandas as pd

from sticker_types import StickerRecord

__all__ = [
    "CSV_TEMPLATE",
    "TEMPLATE_COLUMNS",
    "read_sticker_table",
    "rows_to_sticker_records",
    "row_to_sticker_record",
    "write_csv_template",
]

TEMPLATE_COLUMNS = ("name", "phone", "email", "website", "qr_data")

CSV_TEMPLATE = (
    "name,phone,email,website,qr_data\n"
    "Maghreb Distrib,+213 5 59 42 44 56,contact@maghrebdistrib.com,"
    "https://maghrebdistrib.com,https://maghrebdistrib.com\n"
    "Example Business,+213 X XX XX XX XX,info@example.com,"
    "https://example.com,https://example.com"
)

_SPREADSHEET_SUFFIXES = {".xls", ".xlsx"}

TableSource = Union[str, Path, IO[bytes]]


def _cell(row: Mapping[str, str], *names: str) -> str:
    for name in names:
        value = (row.get(name) or "").strip()
        if value:
            return value
    return ""


def row_to_sticker_record(row: Mapping[str, str], index: int) -> StickerRecord:
    """Map one table row onto a record, honouring column synonyms."""

    website = _cell(row, "website", "url")
    phone = _cell(row, "phone", "telephone")
    return StickerRecord(
        id=f"{index + 1}",
        name=_cell(row, "name", "business_name"),
        phone=phone,
        email=_cell(row, "email"),
        website=website,
        qr_data=_cell(row, "qr_data") or website or phone,
    )


def rows_to_sticker_records(rows: Iterable[Mapping[str, str]]) -> List[StickerRecord]:
    return [row_to_sticker_record(row, i) for i, row in enumerate(rows)]


def read_sticker_table(
    source: TableSource,
    filename: str | None = None,
) -> List[StickerRecord]:
    """Load a CSV or spreadsheet and return its rows as sticker records.

    ``filename`` picks the parser for file-like sources; paths use their own
    suffix. Column names are matched case-insensitively.
    """

    name = filename or (str(source) if isinstance(source, (str, Path)) else "")
    suffix = Path(name).suffix.lower()
    if suffix in _SPREADSHEET_SUFFIXES:
        df = pd.read_excel(source, dtype=str)
    else:
        df = pd.read_csv(source, dtype=str, skip_blank_lines=True)

    df = df.fillna("")
    df.columns = [str(col).strip().lower() for col in df.columns]
    rows: List[Dict[str, str]] = df.to_dict(orient="records")
    return rows_to_sticker_records(rows)


def write_csv_template(path: str | Path) -> Path:
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(CSV_TEMPLATE, encoding="utf-8")
    return destination
