"""Loading + NPS calculation pipeline — pure functions, no side effects."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from sheet_nps.columns import DEFAULT_RULES, IdentificationRule, identify_nps_columns
from sheet_nps.models import (
    CATEGORY_BY_GRADE,
    GRADES,
    LoadReport,
    NPSCategory,
    NPSSummary,
    Record,
)
from sheet_nps.scoring import get_nps_category, parse_nps_value
from sheet_nps.table import clean_sheet_data, csv_to_objects
from sheet_nps.tokenizer import detect_separator, parse_csv
from sheet_nps.utils import round_half_up

# ── Loading ──────────────────────────────────────────────────────


def load_records(text: str, separator: str | None = None) -> tuple[list[Record], LoadReport]:
    """Tokenize, build and clean *text*.

    Returns ``(records, load_report)``. Structural problems (no data rows,
    blank header) produce an empty record list and a warning, never an
    exception.
    """
    sep = separator or detect_separator(text)
    table = parse_csv(text, sep)
    rows_in = max(len(table) - 1, 0)
    report = LoadReport(rows_in=rows_in, rows_out=rows_in, dropped_rows=0, separator=sep)

    if not table:
        report.warnings.append("Document is empty")
    elif len(table) == 1:
        report.warnings.append("Document has a header row but no data rows")

    records = csv_to_objects(table)
    if rows_in and not records:
        report.warnings.append("Header row is blank; no columns to read")

    cleaned = clean_sheet_data(records)
    report.rows_out = len(cleaned)
    report.dropped_rows = report.rows_in - report.rows_out
    blank_rows = len(records) - len(cleaned)
    if blank_rows:
        suffix = "" if blank_rows == 1 else "s"
        report.warnings.append(f"Dropped {blank_rows} blank row{suffix}")
    return cleaned, report


# ── NPS calculation ──────────────────────────────────────────────


def _empty_summary(
    columns: Sequence[str] = (),
    analyzed: Sequence[str] = (),
    ignored: Sequence[str] = (),
    invalid_count: int = 0,
) -> NPSSummary:
    return NPSSummary(
        colunas_identificadas=columns,
        colunas_analisadas=analyzed,
        valores_ignorados=ignored,
        respostas_invalidas=invalid_count,
    )


def calculate_nps(
    records: Sequence[Mapping[str, str]],
    explicit_columns: Sequence[str] | None = None,
    *,
    rules: Sequence[IdentificationRule] = DEFAULT_RULES,
) -> NPSSummary:
    """Compute the NPS summary of *records*.

    *explicit_columns*, when non-empty, is used verbatim; otherwise the
    columns are identified from the data. A summary with
    ``total_respostas == 0`` means no NPS could be computed.
    """
    if not records:
        return _empty_summary()

    if explicit_columns:
        columns = list(explicit_columns)
        analyzed = list(records[0])
    else:
        identification = identify_nps_columns(records, rules)
        columns = list(identification.columns)
        analyzed = list(identification.analyzed_columns)
        if not columns:
            return _empty_summary(analyzed=analyzed)

    counts = {category: 0 for category in NPSCategory}
    histogram = dict.fromkeys(GRADES, 0)
    invalid_count = 0
    ignored: list[str] = []

    for record in records:
        for column in columns:
            if column not in record:
                continue
            raw = record[column]
            result = parse_nps_value(raw)
            if result.valid and result.value is not None:
                histogram[round_half_up(result.value)] += 1
                counts[get_nps_category(result.value)] += 1
            elif raw is not None and str(raw).strip():
                invalid_count += 1
                if str(raw) not in ignored:
                    ignored.append(str(raw))

    total = sum(counts.values())
    if total == 0:
        return _empty_summary(columns, analyzed, ignored, invalid_count)

    detratores = counts[NPSCategory.DETRATOR]
    neutros = counts[NPSCategory.NEUTRO]
    promotores = counts[NPSCategory.PROMOTOR]
    pct_detratores = detratores / total * 100
    pct_neutros = neutros / total * 100
    pct_promotores = promotores / total * 100

    return NPSSummary(
        score=round_half_up(pct_promotores - pct_detratores),
        detratores=detratores,
        neutros=neutros,
        promotores=promotores,
        total_respostas=total,
        percentual_detratores=pct_detratores,
        percentual_neutros=pct_neutros,
        percentual_promotores=pct_promotores,
        respostas_por_nota=histogram,
        categoria_por_nota=dict(CATEGORY_BY_GRADE),
        colunas_identificadas=columns,
        respostas_invalidas=invalid_count,
        colunas_analisadas=analyzed,
        valores_ignorados=ignored,
    )
