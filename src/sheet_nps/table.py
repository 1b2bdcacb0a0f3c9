"""Table builder — header normalisation, row → Record conversion, blank-row cleanup."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

import pandas as pd

from sheet_nps import PLACEHOLDER_COLUMN_PREFIX, ROW_ID_PREFIX
from sheet_nps.models import Record, SheetInfo

_DATE_LIKE_RE = r"[0-9]{1,4}[-/][0-9]{1,2}[-/][0-9]{1,4}"


def _normalize_header(header: Sequence[str]) -> list[str]:
    return [
        cell.strip() if cell and cell.strip() else f"{PLACEHOLDER_COLUMN_PREFIX}{idx}"
        for idx, cell in enumerate(header, start=1)
    ]


def csv_to_objects(table: Sequence[Sequence[str]]) -> list[Record]:
    """Turn a raw table into Records keyed by the (normalised) first row.

    Returns ``[]`` when there is no data row or the header is entirely
    blank. Short rows are padded with ``""``; extra cells are ignored.
    """
    if len(table) < 2:
        return []

    header = table[0]
    if not header or all(not cell.strip() for cell in header):
        return []

    columns = _normalize_header(header)
    records: list[Record] = []
    for row_idx, row in enumerate(table[1:], start=1):
        cells = {
            column: row[idx] if idx < len(row) else ""
            for idx, column in enumerate(columns)
        }
        records.append(Record(cells, row_id=f"{ROW_ID_PREFIX}{row_idx}"))
    return records


def _clean_value(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def clean_sheet_data(records: Sequence[Mapping[str, Any]]) -> list[Record]:
    """Drop all-blank rows and trim every value of the rows that remain."""
    cleaned: list[Record] = []
    for record in records:
        cells = {key: _clean_value(value) for key, value in record.items()}
        if not any(cells.values()):
            continue
        row_id = record.row_id if isinstance(record, Record) else ""
        cleaned.append(Record(cells, row_id=row_id))
    return cleaned


def _column_type(values: pd.Series) -> str:
    non_blank = values[values.str.strip() != ""]
    if non_blank.empty:
        return "empty"
    if pd.to_numeric(non_blank, errors="coerce").notna().all():
        return "number"
    if non_blank.str.fullmatch(_DATE_LIKE_RE).all():
        return "date"
    return "text"


def get_sheet_info(records: Sequence[Mapping[str, str]]) -> SheetInfo:
    """Describe *records*: row count, columns in first-seen order, column types."""
    if not records:
        return SheetInfo()

    columns: list[str] = []
    for record in records:
        for key in record:
            if key not in columns:
                columns.append(key)

    frame = pd.DataFrame(
        [{column: record.get(column, "") for column in columns} for record in records],
        columns=columns,
        dtype="string",
    ).fillna("")
    column_types = {column: _column_type(frame[column]) for column in columns}
    return SheetInfo(row_count=len(records), columns=columns, column_types=column_types)
