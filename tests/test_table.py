from __future__ import annotations

from sheet_nps.models import Record
from sheet_nps.table import clean_sheet_data, csv_to_objects, get_sheet_info
from sheet_nps.tokenizer import parse_csv


def test_csv_to_objects_keys_rows_by_header_and_assigns_row_ids() -> None:
    records = csv_to_objects([["nome", "nota"], ["Ana", "9"], ["Bruno", "7"]])

    assert [dict(r) for r in records] == [
        {"nome": "Ana", "nota": "9"},
        {"nome": "Bruno", "nota": "7"},
    ]
    assert [r.row_id for r in records] == ["row_1", "row_2"]


def test_csv_to_objects_requires_a_data_row() -> None:
    assert csv_to_objects([]) == []
    assert csv_to_objects([["nome", "nota"]]) == []


def test_csv_to_objects_blank_header_yields_nothing() -> None:
    assert csv_to_objects([["", "  "], ["1", "2"]]) == []


def test_csv_to_objects_fills_placeholder_names_for_empty_headers() -> None:
    records = csv_to_objects([[" nome ", "", "nota"], ["Ana", "x", "9"]])

    assert list(records[0]) == ["nome", "coluna_2", "nota"]


def test_csv_to_objects_pads_short_rows_and_ignores_extra_cells() -> None:
    records = csv_to_objects([["a", "b"], ["1"], ["1", "2", "3"]])

    assert dict(records[0]) == {"a": "1", "b": ""}
    assert dict(records[1]) == {"a": "1", "b": "2"}


def test_row_id_is_not_a_column() -> None:
    record = csv_to_objects([["a"], ["1"]])[0]

    assert "_rowId" not in record
    assert "row_id" not in record
    assert len(record) == 1


def test_clean_sheet_data_drops_rows_with_only_separators() -> None:
    records = csv_to_objects(parse_csv("a,b\n1,2\n,,\n3,4"))

    cleaned = clean_sheet_data(records)

    assert [dict(r) for r in cleaned] == [{"a": "1", "b": "2"}, {"a": "3", "b": "4"}]
    assert [r.row_id for r in cleaned] == ["row_1", "row_3"]


def test_clean_sheet_data_trims_and_normalises_plain_mappings() -> None:
    cleaned = clean_sheet_data(
        [
            {"a": "  x ", "b": None},
            {"a": None, "b": "   "},
            {"a": 7, "b": ""},
        ]
    )

    assert [dict(r) for r in cleaned] == [{"a": "x", "b": ""}, {"a": "7", "b": ""}]
    assert all(isinstance(r, Record) for r in cleaned)
    assert all(r.row_id == "" for r in cleaned)


def test_clean_sheet_data_is_idempotent() -> None:
    records = csv_to_objects(parse_csv("a;b\n x ; 9 \n;\n y;\n"))

    once = clean_sheet_data(records)
    twice = clean_sheet_data(once)

    assert twice == once


def test_clean_sheet_data_empty_input() -> None:
    assert clean_sheet_data([]) == []


def test_get_sheet_info_detects_column_types() -> None:
    records = clean_sheet_data(
        [
            {"quando": "2024-03-01", "nota": "9", "nome": "Ana", "vazio": ""},
            {"quando": "01/03/2024", "nota": "7.5", "nome": "Bruno", "vazio": ""},
            {"quando": "", "nota": "", "nome": "10", "vazio": ""},
        ]
    )

    info = get_sheet_info(records)

    assert info.row_count == 3
    assert info.column_count == 4
    assert info.columns == ("quando", "nota", "nome", "vazio")
    assert dict(info.column_types) == {
        "quando": "date",
        "nota": "number",
        "nome": "text",
        "vazio": "empty",
    }


def test_get_sheet_info_unions_columns_in_first_seen_order() -> None:
    info = get_sheet_info([{"a": "1"}, {"b": "x", "a": "2"}])

    assert info.columns == ("a", "b")
    assert info.column_types["b"] == "text"


def test_get_sheet_info_empty() -> None:
    info = get_sheet_info([])

    assert info.row_count == 0
    assert info.columns == ()
