"""Data models / typed records used across the package."""

from __future__ import annotations

import math
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from numbers import Integral, Real
from types import MappingProxyType
from typing import Any

GRADES: tuple[int, ...] = tuple(range(11))
SEPARATORS: tuple[str, ...] = (",", ";", "\t")


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_percentage(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise TypeError(f"{field_name} must be a number")
    result = float(value)
    if not math.isfinite(result) or not 0 <= result <= 100:
        raise ValueError(f"{field_name} must be between 0 and 100")
    return result


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


class NPSCategory(str, Enum):
    """Detractor (0-6), Passive (7-8) or Promoter (9-10)."""

    DETRATOR = "detrator"
    NEUTRO = "neutro"
    PROMOTOR = "promotor"


def _category_for_grade(grade: int) -> NPSCategory:
    if grade <= 6:
        return NPSCategory.DETRATOR
    if grade <= 8:
        return NPSCategory.NEUTRO
    return NPSCategory.PROMOTOR


CATEGORY_BY_GRADE: Mapping[int, NPSCategory] = MappingProxyType(
    {grade: _category_for_grade(grade) for grade in GRADES}
)


@dataclass(frozen=True)
class Record(Mapping[str, str]):
    """One normalised data row keyed by column name.

    ``row_id`` (``"row_<n>"``) is kept for traceability only; it is not one
    of the mapping's keys.
    """

    cells: Mapping[str, str] = field(default_factory=dict)
    row_id: str = ""

    def __post_init__(self) -> None:
        cells: dict[str, str] = {}
        for key, value in dict(self.cells).items():
            if not isinstance(key, str):
                raise TypeError("Record column names must be strings")
            if not isinstance(value, str):
                raise TypeError(f"Record value for {key!r} must be a string")
            cells[key] = value
        if not isinstance(self.row_id, str):
            raise TypeError("row_id must be a string")
        object.__setattr__(self, "cells", MappingProxyType(cells))

    def __getitem__(self, key: str) -> str:
        return self.cells[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.cells)

    def __len__(self) -> int:
        return len(self.cells)


@dataclass(frozen=True)
class ScoreValue:
    """Result of parsing one cell; ``value`` is ``None`` iff invalid."""

    valid: bool = False
    value: float | None = None

    def __post_init__(self) -> None:
        if not self.valid:
            if self.value is not None:
                raise ValueError("value must be None for an invalid score")
            return
        if self.value is None or not math.isfinite(self.value) or not 0 <= self.value <= 10:
            raise ValueError("value must be a finite number between 0 and 10")

    @classmethod
    def invalid(cls) -> ScoreValue:
        return cls()


@dataclass(frozen=True)
class ColumnStats:
    """Per-column statistics used to decide whether a column holds NPS grades."""

    valid_count: int = 0
    valid_percentage: float = 0.0
    average_value: float = 0.0
    has_low_values: bool = False
    has_mid_values: bool = False
    has_high_values: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "valid_count", _to_non_negative_int(self.valid_count, "valid_count")
        )
        object.__setattr__(
            self,
            "valid_percentage",
            _to_percentage(self.valid_percentage, "valid_percentage"),
        )

    @property
    def has_expected_range(self) -> bool:
        observed = sum((self.has_low_values, self.has_mid_values, self.has_high_values))
        return observed >= 2 or (self.valid_count > 0 and observed >= 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid_count": self.valid_count,
            "valid_percentage": self.valid_percentage,
            "average_value": self.average_value,
            "has_low_values": self.has_low_values,
            "has_mid_values": self.has_mid_values,
            "has_high_values": self.has_high_values,
            "has_expected_range": self.has_expected_range,
        }


@dataclass(frozen=True)
class NPSSummary:
    """Terminal artifact of a calculation.

    Contract invariants: ``total_respostas == detratores + neutros +
    promotores``, the histogram covers exactly the grades 0..10 and sums
    to ``total_respostas``, and every percentage is 0 when there are no
    valid answers.
    """

    score: int = 0
    detratores: int = 0
    neutros: int = 0
    promotores: int = 0
    total_respostas: int = 0
    percentual_detratores: float = 0.0
    percentual_neutros: float = 0.0
    percentual_promotores: float = 0.0
    respostas_por_nota: Mapping[int, int] = field(
        default_factory=lambda: dict.fromkeys(GRADES, 0)
    )
    categoria_por_nota: Mapping[int, NPSCategory] = field(
        default_factory=lambda: dict(CATEGORY_BY_GRADE)
    )
    colunas_identificadas: Sequence[str] = ()
    respostas_invalidas: int = 0
    colunas_analisadas: Sequence[str] = ()
    valores_ignorados: Sequence[str] = ()

    def __post_init__(self) -> None:
        for name in ("detratores", "neutros", "promotores", "total_respostas",
                     "respostas_invalidas"):
            object.__setattr__(self, name, _to_non_negative_int(getattr(self, name), name))

        if isinstance(self.score, bool) or not isinstance(self.score, Integral):
            raise TypeError("score must be an integer")
        if not -100 <= self.score <= 100:
            raise ValueError("score must be between -100 and 100")
        object.__setattr__(self, "score", int(self.score))

        if self.total_respostas != self.detratores + self.neutros + self.promotores:
            raise ValueError("total_respostas must equal detratores + neutros + promotores")

        for name in ("percentual_detratores", "percentual_neutros", "percentual_promotores"):
            pct = _to_percentage(getattr(self, name), name)
            if self.total_respostas == 0 and pct != 0:
                raise ValueError(f"{name} must be 0 when total_respostas is 0")
            object.__setattr__(self, name, pct)

        histogram = dict(self.respostas_por_nota)
        if set(histogram) != set(GRADES):
            raise ValueError("respostas_por_nota must cover exactly the grades 0..10")
        histogram = {
            grade: _to_non_negative_int(histogram[grade], "respostas_por_nota")
            for grade in GRADES
        }
        if sum(histogram.values()) != self.total_respostas:
            raise ValueError("respostas_por_nota must sum to total_respostas")
        object.__setattr__(self, "respostas_por_nota", MappingProxyType(histogram))

        categories = dict(self.categoria_por_nota)
        if set(categories) != set(GRADES):
            raise ValueError("categoria_por_nota must cover exactly the grades 0..10")
        object.__setattr__(
            self,
            "categoria_por_nota",
            MappingProxyType({grade: NPSCategory(categories[grade]) for grade in GRADES}),
        )

        for name in ("colunas_identificadas", "colunas_analisadas", "valores_ignorados"):
            object.__setattr__(
                self, name, tuple(_to_string_list(getattr(self, name), name))
            )
        if len(self.valores_ignorados) > self.respostas_invalidas:
            raise ValueError("valores_ignorados cannot outnumber respostas_invalidas")

    @property
    def has_result(self) -> bool:
        return self.total_respostas > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "detratores": self.detratores,
            "neutros": self.neutros,
            "promotores": self.promotores,
            "total_respostas": self.total_respostas,
            "percentual_detratores": self.percentual_detratores,
            "percentual_neutros": self.percentual_neutros,
            "percentual_promotores": self.percentual_promotores,
            "respostas_por_nota": dict(self.respostas_por_nota),
            "categoria_por_nota": {
                grade: category.value for grade, category in self.categoria_por_nota.items()
            },
            "colunas_identificadas": list(self.colunas_identificadas),
            "respostas_invalidas": self.respostas_invalidas,
            "debug": {
                "colunas_analisadas": list(self.colunas_analisadas),
                "valores_ignorados": list(self.valores_ignorados),
            },
        }


@dataclass(frozen=True)
class SheetInfo:
    """Overview of a cleaned sheet: size, column names and column types."""

    row_count: int = 0
    columns: Sequence[str] = ()
    column_types: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "row_count", _to_non_negative_int(self.row_count, "row_count"))
        object.__setattr__(self, "columns", tuple(_to_string_list(self.columns, "columns")))
        object.__setattr__(self, "column_types", MappingProxyType(dict(self.column_types)))

    @property
    def column_count(self) -> int:
        return len(self.columns)

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_count": self.row_count,
            "column_count": self.column_count,
            "columns": list(self.columns),
            "column_types": dict(self.column_types),
        }


@dataclass
class LoadReport:
    """Report of tokenizing + cleaning one document.

    Contract invariant: ``dropped_rows == rows_in - rows_out``.
    """

    rows_in: int = 0
    rows_out: int = 0
    dropped_rows: int = 0
    separator: str = ","
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.rows_out = _to_non_negative_int(self.rows_out, "rows_out")
        self.dropped_rows = _to_non_negative_int(self.dropped_rows, "dropped_rows")
        self.warnings = _to_string_list(self.warnings, "warnings")
        if self.separator not in SEPARATORS:
            raise ValueError(f"separator must be one of {SEPARATORS!r}")
        if self.rows_out > self.rows_in:
            raise ValueError("rows_out must be <= rows_in")
        expected_dropped = self.rows_in - self.rows_out
        if self.dropped_rows != expected_dropped:
            raise ValueError("dropped_rows must equal rows_in - rows_out")

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows_in": self.rows_in,
            "rows_out": self.rows_out,
            "dropped_rows": self.dropped_rows,
            "separator": self.separator,
            "warnings": list(self.warnings),
        }


@dataclass
class RunManifest:
    """Audit-trail manifest for a single CLI run."""

    tool: str = "sheet-nps"
    version: str = ""
    source: str = ""
    output_dir: str = ""
    created_at_utc: str = ""
    rows_in: int = 0
    rows_out: int = 0
    sha256: str = ""
    status: str = "success"
    error_code: int | None = None
    error_message: str = ""

    def __post_init__(self) -> None:
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.rows_out = _to_non_negative_int(self.rows_out, "rows_out")
        if self.status not in {"success", "failed"}:
            raise ValueError("status must be 'success' or 'failed'")
        if self.error_code is not None:
            self.error_code = _to_non_negative_int(self.error_code, "error_code")

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "version": self.version,
            "source": self.source,
            "output_dir": self.output_dir,
            "created_at_utc": self.created_at_utc,
            "rows_in": self.rows_in,
            "rows_out": self.rows_out,
            "sha256": self.sha256,
            "status": self.status,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }
