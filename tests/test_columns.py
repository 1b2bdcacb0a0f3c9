from __future__ import annotations

import pytest

from sheet_nps.columns import (
    DEFAULT_RULES,
    IdentificationRule,
    analyze_column_values,
    identify_nps_columns,
    is_suggestive_name,
)
from sheet_nps.models import Record


def _records(column: str, values: list[str], **other: list[str]) -> list[Record]:
    rows = []
    for idx, value in enumerate(values):
        cells = {column: value}
        for name, other_values in other.items():
            cells[name] = other_values[idx]
        rows.append(Record(cells, row_id=f"row_{idx + 1}"))
    return rows


def test_analyze_column_values_collects_stats() -> None:
    records = _records("nota", ["0", "5", "10", "x", ""])

    stats = analyze_column_values(records, "nota")

    assert stats.valid_count == 3
    assert stats.valid_percentage == pytest.approx(60.0)
    assert stats.average_value == pytest.approx(5.0)
    assert (stats.has_low_values, stats.has_mid_values, stats.has_high_values) == (
        True,
        True,
        True,
    )
    assert stats.has_expected_range is True


def test_analyze_column_values_uses_full_record_count_as_denominator() -> None:
    records = [{"nota": "9"}, {"outra": "1"}, {"outra": "2"}, {"outra": "3"}]

    stats = analyze_column_values(records, "nota")

    assert stats.valid_count == 1
    assert stats.valid_percentage == pytest.approx(25.0)


def test_analyze_column_values_single_range_is_enough() -> None:
    stats = analyze_column_values(_records("nota", ["9", "10"]), "nota")

    assert stats.has_high_values is True
    assert stats.has_low_values is False
    assert stats.has_expected_range is True


def test_analyze_column_values_values_between_ranges_are_not_expected_range() -> None:
    stats = analyze_column_values(_records("nota", ["3.5", "7.5"]), "nota")

    assert stats.valid_count == 2
    assert stats.has_expected_range is False


def test_analyze_column_values_no_records() -> None:
    stats = analyze_column_values([], "nota")

    assert stats.valid_count == 0
    assert stats.valid_percentage == 0.0
    assert stats.average_value == 0.0
    assert stats.has_expected_range is False


@pytest.mark.parametrize(
    "name",
    ["NPS", "Nota", "Qual nota você daria?", "Avaliação geral", "Rating", "Overall score",
     "Satisfação", "Em uma escala de 0 a 10"],
)
def test_is_suggestive_name(name: str) -> None:
    assert is_suggestive_name(name) is True


@pytest.mark.parametrize("name", ["Nome", "Idade", "Comentário", "Cidade"])
def test_is_not_suggestive_name(name: str) -> None:
    assert is_suggestive_name(name) is False


def test_identify_suggestive_column_with_enough_valid_values() -> None:
    records = _records(
        "NPS", ["9", "3", "", "", "x", "", "", "", "", ""],
        Nome=["Ana", "Bruno", "Carla", "Diego", "Elisa", "Fábio", "Gabi", "Hugo", "Iris", "Joana"],
    )

    result = identify_nps_columns(records)

    assert result.columns == ("NPS",)
    assert result.analyzed_columns == ("NPS", "Nome")
    assert result.matched_rules == {"NPS": "suggestive_name_lenient"}


def test_identify_rules_are_tried_in_order() -> None:
    records = _records("nota", ["9", "3", "7", ""])

    result = identify_nps_columns(records)

    assert result.matched_rules["nota"] == "name_and_content"


def test_identify_unnamed_column_needs_half_valid_values() -> None:
    half = _records("pergunta 1", ["9", "3", "", ""])
    less = _records("pergunta 1", ["9", "3", "", "", ""])

    assert identify_nps_columns(half).columns == ("pergunta 1",)
    assert identify_nps_columns(half).matched_rules == {"pergunta 1": "content_only"}
    assert identify_nps_columns(less).columns == ()


def test_identify_suggestive_column_below_lenient_threshold_is_rejected() -> None:
    values = ["9"] + [""] * 10
    records = _records("nota", values)

    assert identify_nps_columns(records).columns == ()


def test_identify_multiple_columns_in_header_order() -> None:
    records = _records(
        "nota atendimento", ["9", "10", "6"],
        **{"nota produto": ["7", "8", "2"], "cidade": ["SP", "RJ", "BH"]},
    )

    result = identify_nps_columns(records)

    assert result.columns == ("nota atendimento", "nota produto")
    assert set(result.stats) == {"nota atendimento", "nota produto", "cidade"}


def test_identify_ignores_row_id() -> None:
    records = _records("nota", ["9", "8"])

    result = identify_nps_columns(records)

    assert "row_id" not in result.analyzed_columns
    assert "_rowId" not in result.analyzed_columns


def test_identify_no_records() -> None:
    result = identify_nps_columns([])

    assert result.columns == ()
    assert result.analyzed_columns == ()


def test_identify_accepts_custom_rules() -> None:
    records = _records("nota", ["9"] + [""] * 10)
    lenient = (*DEFAULT_RULES, IdentificationRule("any", suggestive=True, min_valid_percentage=5))

    result = identify_nps_columns(records, rules=lenient)

    assert result.columns == ("nota",)
    assert result.matched_rules == {"nota": "any"}
