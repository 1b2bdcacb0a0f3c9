"""Targeted tests for NPS calculation edge cases and summary contracts."""

from __future__ import annotations

import pytest

from sheet_nps.models import GRADES, NPSCategory
from sheet_nps.pipeline import calculate_nps, load_records
from sheet_nps.scoring import get_nps_classification, get_nps_color


def test_calculate_nps_with_explicit_column() -> None:
    records = [{"score": "9"}, {"score": "9"}, {"score": "3"}, {"score": "7"}]

    summary = calculate_nps(records, ["score"])

    assert summary.promotores == 2
    assert summary.detratores == 1
    assert summary.neutros == 1
    assert summary.total_respostas == 4
    assert summary.percentual_promotores == pytest.approx(50.0)
    assert summary.percentual_detratores == pytest.approx(25.0)
    assert summary.percentual_neutros == pytest.approx(25.0)
    assert summary.score == 25
    assert get_nps_classification(summary.score) == "Poor"
    assert get_nps_color(summary.score) == "#FF851B"
    assert summary.colunas_identificadas == ("score",)
    assert summary.colunas_analisadas == ("score",)


def test_calculate_nps_identifies_columns_automatically() -> None:
    records = [
        {"nome": "Ana", "nota": "10"},
        {"nome": "Bruno", "nota": "9"},
        {"nome": "Carla", "nota": "2"},
    ]

    summary = calculate_nps(records)

    assert summary.colunas_identificadas == ("nota",)
    assert summary.colunas_analisadas == ("nome", "nota")
    assert summary.score == 33


def test_histogram_covers_every_grade_and_rounds_half_up() -> None:
    records = [{"nota": v} for v in ["6.5", "8.5", "0", "10", "10"]]

    summary = calculate_nps(records, ["nota"])

    assert list(summary.respostas_por_nota) == list(GRADES)
    assert summary.respostas_por_nota[7] == 1
    assert summary.respostas_por_nota[9] == 1
    assert summary.respostas_por_nota[0] == 1
    assert summary.respostas_por_nota[10] == 2
    assert sum(summary.respostas_por_nota.values()) == summary.total_respostas
    assert summary.neutros == 1
    assert summary.promotores == 3
    assert summary.detratores == 1


def test_category_map_is_always_complete() -> None:
    summary = calculate_nps([{"nota": "9"}], ["nota"])

    assert summary.categoria_por_nota[6] is NPSCategory.DETRATOR
    assert summary.categoria_por_nota[7] is NPSCategory.NEUTRO
    assert summary.categoria_por_nota[9] is NPSCategory.PROMOTOR


def test_invalid_values_are_counted_and_deduplicated_verbatim() -> None:
    records = [
        {"nota": "9"},
        {"nota": "n/a"},
        {"nota": "n/a"},
        {"nota": "  talvez "},
        {"nota": ""},
        {"nota": "   "},
        {"outra": "x"},
    ]

    summary = calculate_nps(records, ["nota"])

    assert summary.total_respostas == 1
    assert summary.respostas_invalidas == 3
    assert summary.valores_ignorados == ("n/a", "  talvez ")


def test_decimal_prefix_answers_keep_their_fraction() -> None:
    records = [{"nota": "8.5 pontos"}, {"nota": "6.5 pts"}, {"nota": "-5 bom"}]

    summary = calculate_nps(records, ["nota"])

    assert summary.promotores == 1
    assert summary.neutros == 1
    assert summary.detratores == 0
    assert summary.respostas_por_nota[9] == 1
    assert summary.respostas_por_nota[7] == 1
    assert summary.respostas_invalidas == 1
    assert summary.valores_ignorados == ("-5 bom",)


def test_non_ascii_digits_are_invalid() -> None:
    summary = calculate_nps([{"nota": "٩"}, {"nota": "10"}], ["nota"])

    assert summary.total_respostas == 1
    assert summary.valores_ignorados == ("٩",)


def test_unparseable_columns_give_zero_summary() -> None:
    records = [{"nota": "11"}, {"nota": "abc"}, {"nota": "-2"}]

    summary = calculate_nps(records, ["nota"])

    assert summary.total_respostas == 0
    assert summary.has_result is False
    assert summary.score == 0
    assert summary.percentual_promotores == 0
    assert summary.percentual_neutros == 0
    assert summary.percentual_detratores == 0
    assert summary.colunas_identificadas == ("nota",)
    assert summary.respostas_invalidas == 3
    assert summary.valores_ignorados == ("11", "abc", "-2")
    assert set(summary.respostas_por_nota.values()) == {0}


def test_no_identified_column_gives_diagnostic_summary() -> None:
    records = [{"nome": "Ana", "cidade": "SP"}, {"nome": "Bruno", "cidade": "RJ"}]

    summary = calculate_nps(records)

    assert summary.total_respostas == 0
    assert summary.colunas_identificadas == ()
    assert summary.colunas_analisadas == ("nome", "cidade")


def test_empty_records_give_empty_summary() -> None:
    summary = calculate_nps([])

    assert summary.total_respostas == 0
    assert summary.colunas_identificadas == ()
    assert list(summary.respostas_por_nota) == list(GRADES)


def test_empty_explicit_columns_fall_back_to_identification() -> None:
    summary = calculate_nps([{"nota": "10"}, {"nota": "0"}], [])

    assert summary.colunas_identificadas == ("nota",)
    assert summary.score == 0


def test_explicit_columns_are_used_verbatim_even_if_missing() -> None:
    summary = calculate_nps([{"nota": "10"}], ["nota", "inexistente"])

    assert summary.colunas_identificadas == ("nota", "inexistente")
    assert summary.total_respostas == 1


def test_multiple_columns_are_pooled() -> None:
    records = [
        {"nota atendimento": "10", "nota produto": "6"},
        {"nota atendimento": "9", "nota produto": "8"},
    ]

    summary = calculate_nps(records)

    assert summary.total_respostas == 4
    assert summary.promotores == 2
    assert summary.detratores == 1
    assert summary.neutros == 1


def test_percentages_sum_to_100() -> None:
    records = [{"nota": v} for v in ["1", "7", "9"]]

    summary = calculate_nps(records, ["nota"])

    total_pct = (
        summary.percentual_promotores + summary.percentual_neutros + summary.percentual_detratores
    )
    assert total_pct == pytest.approx(100.0)
    assert summary.score == 0


def test_score_rounds_half_up() -> None:
    # 3 promoters, 4 detractors, 1 passive: 37.5% - 50% = -12.5
    records = [{"nota": v} for v in ["9", "9", "9", "0", "0", "0", "0", "7"]]

    summary = calculate_nps(records, ["nota"])

    assert summary.percentual_promotores - summary.percentual_detratores == pytest.approx(-12.5)
    assert summary.score == -12


def test_load_records_reports_dropped_blank_rows() -> None:
    records, report = load_records("a,b\n1,2\n,,\n3,4")

    assert [dict(r) for r in records] == [{"a": "1", "b": "2"}, {"a": "3", "b": "4"}]
    assert report.rows_in == 3
    assert report.rows_out == 2
    assert report.dropped_rows == 1
    assert report.separator == ","
    assert report.warnings == ["Dropped 1 blank row"]


def test_load_records_structural_problems_are_warnings() -> None:
    assert load_records("")[1].warnings == ["Document is empty"]
    assert load_records("a;b\n")[1].warnings == ["Document has a header row but no data rows"]

    records, report = load_records(",\n1,2\n")
    assert records == []
    assert report.dropped_rows == 1
    assert report.warnings == ["Header row is blank; no columns to read"]


def test_load_records_honours_explicit_separator() -> None:
    records, report = load_records("a;b,c\n1;2,3", separator=";")

    assert dict(records[0]) == {"a": "1", "b,c": "2,3"}
    assert report.separator == ";"
