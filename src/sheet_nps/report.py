"""Excel report writer — produces NPS_Report.xlsx."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, cast

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo
from openpyxl.worksheet.worksheet import Worksheet

from sheet_nps.columns import ColumnIdentification, is_suggestive_name
from sheet_nps.models import LoadReport, NPSCategory, NPSSummary, Record
from sheet_nps.scoring import get_nps_classification, get_nps_color

# ── Style constants ──────────────────────────────────────────────

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)

TITLE_FONT = Font(name="Calibri", bold=True, size=14, color="2F5496")
SUBTITLE_FONT = Font(name="Calibri", bold=False, size=10, color="808080")
LABEL_FONT = Font(name="Calibri", bold=True, size=11)
VALUE_FONT = Font(name="Calibri", size=11)
WARN_FONT = Font(name="Calibri", italic=True, size=10, color="CC6600")

NOTE_FILL = PatternFill(start_color="FFF2CC", end_color="FFF2CC", fill_type="solid")
KPI_FILL = PatternFill(start_color="D6E4F0", end_color="D6E4F0", fill_type="solid")

INT_FMT = '#,##0'
# Percentages are percent-points (e.g. 33.3), so append a literal percent
# sign instead of Excel percent scaling.
PCT_FMT = '0.0"%"'
DECIMAL_FMT = '0.00'

_COL_FORMATS: dict[str, str] = {
    "count": INT_FMT,
    "percent": PCT_FMT,
    "valid_count": INT_FMT,
    "valid_percentage": PCT_FMT,
    "average_value": DECIMAL_FMT,
}

CATEGORY_LABELS: dict[NPSCategory, str] = {
    NPSCategory.DETRATOR: "Detractor",
    NPSCategory.NEUTRO: "Passive",
    NPSCategory.PROMOTOR: "Promoter",
}

MAX_IGNORED_VALUES = 10
ROW_ID_HEADER = "row_id"
_AUTO_WIDTH_SAMPLE_ROWS = 300
_EXCEL_FORMULA_PREFIXES = ("=", "+", "-", "@")


# ── Helpers ──────────────────────────────────────────────────────


def _style_header(ws: Worksheet, ncols: int) -> None:
    for c in range(1, ncols + 1):
        cell = ws.cell(row=1, column=c)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGN


def _auto_width(ws: Worksheet) -> None:
    max_row = min(ws.max_row, _AUTO_WIDTH_SAMPLE_ROWS + 1)  # include header row
    for c_idx in range(1, ws.max_column + 1):
        letter = get_column_letter(c_idx)
        width = 0
        for row in ws.iter_rows(min_row=1, max_row=max_row, min_col=c_idx, max_col=c_idx):
            width = max(width, len(str(row[0].value or "")))
        ws.column_dimensions[letter].width = min(width + 4, 40)


def _apply_number_formats(ws: Worksheet, col_names: list[str]) -> None:
    """Apply number formats to data columns (rows 2+) by column name."""
    if ws.max_row < 2:
        return

    for c_idx, name in enumerate(col_names, 1):
        fmt = _COL_FORMATS.get(name.lower())
        if fmt:
            for row in ws.iter_rows(min_row=2, max_row=ws.max_row, min_col=c_idx, max_col=c_idx):
                for cell in row:
                    cell.number_format = fmt


def _sanitize_table_name(name: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9_]", "_", name)
    if not cleaned:
        cleaned = "Table"
    if not re.match(r"^[A-Za-z_]", cleaned):
        cleaned = f"_{cleaned}"
    return cleaned[:255]


def _unique_table_name(ws: Worksheet, base_name: str) -> str:
    parent = ws.parent
    if parent is None:
        return base_name

    existing: set[str] = set()
    for sheet in parent.worksheets:
        existing.update(cast(Iterable[str], sheet.tables.keys()))
    suffix = 1
    candidate = base_name
    while candidate in existing:
        suffix_str = f"_{suffix}"
        candidate = f"{base_name[: 255 - len(suffix_str)]}{suffix_str}"
        suffix += 1
    return candidate


def _add_excel_table(ws: Worksheet, name: str, ncols: int, nrows: int) -> None:
    """Turn the data range into a proper Excel Table object."""
    if nrows < 1 or ncols < 1:
        return
    ref = f"A1:{get_column_letter(ncols)}{nrows + 1}"  # +1 for header
    table = Table(displayName=_unique_table_name(ws, _sanitize_table_name(name)), ref=ref)
    table.tableStyleInfo = TableStyleInfo(
        name="TableStyleMedium9", showFirstColumn=False,
        showLastColumn=False, showRowStripes=True, showColumnStripes=False,
    )
    ws.add_table(table)


def _excel_value(val: Any) -> Any:
    try:
        if pd.isna(val):
            return None
    except (TypeError, ValueError):
        return val

    # Free-text survey answers must never be evaluated as formulas.
    if isinstance(val, str):
        if val.startswith("'"):
            return val
        stripped = val.lstrip()
        if stripped and stripped[0] in _EXCEL_FORMULA_PREFIXES:
            return f"'{val}"

    return val


def _df_to_sheet(
    wb: Workbook, name: str, df: pd.DataFrame, *, as_table: bool = False,
) -> None:
    ws = wb.create_sheet(title=name)
    col_names = [str(c) for c in df.columns]

    if not col_names:
        ws.cell(row=1, column=1, value="No data").font = VALUE_FONT
        ws.column_dimensions["A"].width = 18
        return

    for c_idx, col_name in enumerate(col_names, 1):
        ws.cell(row=1, column=c_idx, value=_excel_value(col_name))
    for r_idx, row_vals in enumerate(df.itertuples(index=False, name=None), 2):
        for c_idx, val in enumerate(row_vals, 1):
            ws.cell(row=r_idx, column=c_idx, value=_excel_value(val))
    _style_header(ws, len(col_names))
    _apply_number_formats(ws, col_names)
    ws.freeze_panes = "A2"
    if (not as_table) and (len(df) > 0):
        ws.auto_filter.ref = ws.dimensions
    _auto_width(ws)
    if as_table and len(df) > 0:
        _add_excel_table(ws, name, len(col_names), len(df))


def _fill_row(ws: Worksheet, row: int, fill: PatternFill, ncols: int = 4) -> None:
    for c in range(1, ncols + 1):
        ws.cell(row=row, column=c).fill = fill


# ── Frames ───────────────────────────────────────────────────────


def distribution_frame(summary: NPSSummary) -> pd.DataFrame:
    """One row per grade 0..10: count, share of valid answers and category."""
    total = summary.total_respostas
    return pd.DataFrame(
        {
            "grade": list(summary.respostas_por_nota),
            "count": list(summary.respostas_por_nota.values()),
            "percent": [
                (count / total * 100) if total else 0.0
                for count in summary.respostas_por_nota.values()
            ],
            "category": [
                CATEGORY_LABELS[category] for category in summary.categoria_por_nota.values()
            ],
        }
    )


def columns_frame(identification: ColumnIdentification) -> pd.DataFrame:
    rows: list[dict[str, Any]] = []
    for column in identification.analyzed_columns:
        stats = identification.stats[column]
        rows.append(
            {
                "column": column,
                "suggestive_name": is_suggestive_name(column),
                "valid_count": stats.valid_count,
                "valid_percentage": stats.valid_percentage,
                "average_value": stats.average_value,
                "has_expected_range": stats.has_expected_range,
                "matched_rule": identification.matched_rules.get(column, ""),
            }
        )
    return pd.DataFrame(
        rows,
        columns=[
            "column", "suggestive_name", "valid_count", "valid_percentage",
            "average_value", "has_expected_range", "matched_rule",
        ],
    )


def records_frame(records: Sequence[Mapping[str, str]]) -> pd.DataFrame:
    """Records as a DataFrame, with the row id (when present) as first column.

    The row id header is ``row_id``, prefixed with underscores until it no
    longer collides with a survey column.
    """
    if not records:
        return pd.DataFrame()

    columns: list[str] = []
    for record in records:
        for key in record:
            if key not in columns:
                columns.append(key)
    id_header = ROW_ID_HEADER
    while id_header in columns:
        id_header = f"_{id_header}"

    rows = [
        [record.row_id if isinstance(record, Record) else ""]
        + [record.get(column, "") for column in columns]
        for record in records
    ]
    return pd.DataFrame(rows, columns=[id_header, *columns], dtype="string")


def ignored_values_lines(summary: NPSSummary, limit: int = MAX_IGNORED_VALUES) -> list[str]:
    """Ignored raw values for display, truncated to *limit* plus a remainder line."""
    values = list(summary.valores_ignorados)
    lines = values[:limit]
    if len(values) > limit:
        lines.append(f"... and {len(values) - limit} more")
    return lines


# ── Dashboard ────────────────────────────────────────────────────


def _write_dashboard(wb: Workbook, summary: NPSSummary, load_report: LoadReport) -> None:
    ws = wb.create_sheet(title="Dashboard")

    ws.cell(row=1, column=1, value="sheet-nps — NPS Dashboard").font = TITLE_FONT
    ws.merge_cells("A1:D1")
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    ws.cell(row=2, column=1, value=f"Generated {generated}").font = SUBTITLE_FONT
    ws.merge_cells("A2:D2")

    # ── Notes block ──────────────────────────────────────────────
    row = 4
    ws.cell(row=row, column=1, value="Notes").font = LABEL_FONT
    ws.merge_cells(f"A{row}:D{row}")
    _fill_row(ws, row, NOTE_FILL)
    row += 1
    ws.cell(row=row, column=1, value=f"Rows in: {load_report.rows_in}")
    ws.cell(row=row, column=2, value=f"Rows out: {load_report.rows_out}")
    ws.cell(row=row, column=3, value=f"Invalid answers: {summary.respostas_invalidas}")
    _fill_row(ws, row, NOTE_FILL)
    row += 1
    columns_used = ", ".join(summary.colunas_identificadas) or "none"
    ws.cell(row=row, column=1, value=_excel_value(f"NPS columns: {columns_used}"))
    _fill_row(ws, row, NOTE_FILL)
    row += 1
    notes = list(load_report.warnings)
    if not summary.has_result:
        notes.append("No NPS could be computed: no valid 0-10 answers were found")
    for note in notes:
        ws.cell(row=row, column=1, value=_excel_value(f"⚠ {note}")).font = WARN_FONT
        _fill_row(ws, row, NOTE_FILL)
        row += 1

    # ── KPI cards ────────────────────────────────────────────────
    row += 1
    ws.cell(row=row, column=1, value="Key Metrics").font = LABEL_FONT
    ws.merge_cells(f"A{row}:D{row}")
    _fill_row(ws, row, KPI_FILL)
    row += 1

    kpis: list[tuple[str, Any, str | None]] = [
        ("NPS Score", summary.score, INT_FMT),
        ("Classification", get_nps_classification(summary.score), None),
        ("Total Responses", summary.total_respostas, INT_FMT),
        ("Promoters", summary.promotores, INT_FMT),
        ("Passives", summary.neutros, INT_FMT),
        ("Detractors", summary.detratores, INT_FMT),
        ("Promoters %", summary.percentual_promotores, PCT_FMT),
        ("Passives %", summary.percentual_neutros, PCT_FMT),
        ("Detractors %", summary.percentual_detratores, PCT_FMT),
    ]
    for label, value, fmt in kpis:
        lbl_cell = ws.cell(row=row, column=1, value=label)
        lbl_cell.font = LABEL_FONT
        lbl_cell.fill = KPI_FILL
        val_cell = ws.cell(row=row, column=2, value=value)
        val_cell.font = VALUE_FONT
        val_cell.fill = KPI_FILL
        if fmt:
            val_cell.number_format = fmt
            val_cell.alignment = Alignment(horizontal="right")
        if label == "Classification":
            color = get_nps_color(summary.score).lstrip("#")
            val_cell.fill = PatternFill(start_color=color, end_color=color, fill_type="solid")
        row += 1

    # ── Ignored values ───────────────────────────────────────────
    ignored = ignored_values_lines(summary)
    if ignored:
        row += 1
        ws.cell(row=row, column=1, value="Ignored values").font = LABEL_FONT
        row += 1
        for value in ignored:
            ws.cell(row=row, column=1, value=_excel_value(value)).font = VALUE_FONT
            row += 1

    ws.column_dimensions["A"].width = 24
    ws.column_dimensions["B"].width = 22
    ws.column_dimensions["C"].width = 22
    ws.column_dimensions["D"].width = 18


# ── Public API ───────────────────────────────────────────────────


def write_report(
    out_dir: Path,
    summary: NPSSummary,
    records: Sequence[Mapping[str, str]],
    identification: ColumnIdentification | None = None,
    load_report: LoadReport | None = None,
) -> Path:
    """Write ``NPS_Report.xlsx`` and return the path."""
    if load_report is None:
        load_report = LoadReport(rows_in=len(records), rows_out=len(records))

    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    report_path = out_dir / "NPS_Report.xlsx"

    wb = Workbook()
    active_sheet = wb.active
    if active_sheet is not None:
        wb.remove(active_sheet)  # remove default sheet

    _write_dashboard(wb, summary, load_report)
    _df_to_sheet(wb, "Distribution", distribution_frame(summary), as_table=True)
    if identification is not None:
        _df_to_sheet(wb, "Columns", columns_frame(identification), as_table=True)
    _df_to_sheet(wb, "Clean_Data", records_frame(records), as_table=True)

    tmp_path = out_dir / "NPS_Report.tmp.xlsx"
    wb.save(tmp_path)
    tmp_path.replace(report_path)
    return report_path
