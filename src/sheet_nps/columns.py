"""Column identifier — decide which columns hold 0-10 NPS grades."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from sheet_nps.models import ColumnStats
from sheet_nps.scoring import parse_nps_value

SUGGESTIVE_NAMES: tuple[str, ...] = (
    "nps",
    "nota",
    "score",
    "avaliação",
    "avaliacao",
    "nota nps",
    "pontuação",
    "pontuacao",
    "recomendação",
    "recomendacao",
    "indicação",
    "indicacao",
    "satisfação",
    "satisfacao",
    "classificação",
    "classificacao",
    "rating",
    "rate",
    "nota de 0 a 10",
    "avaliação de 0 a 10",
    "qual nota você daria",
    "qual nota voce daria",
    "de 0 a 10",
    "escala de 0 a 10",
)


@dataclass(frozen=True)
class IdentificationRule:
    """A column qualifies when its name suggestiveness matches and enough values parse."""

    name: str
    suggestive: bool
    min_valid_percentage: float


DEFAULT_RULES: tuple[IdentificationRule, ...] = (
    IdentificationRule("name_and_content", suggestive=True, min_valid_percentage=30),
    IdentificationRule("content_only", suggestive=False, min_valid_percentage=50),
    IdentificationRule("suggestive_name_lenient", suggestive=True, min_valid_percentage=10),
)


@dataclass(frozen=True)
class ColumnIdentification:
    columns: tuple[str, ...] = ()
    analyzed_columns: tuple[str, ...] = ()
    stats: Mapping[str, ColumnStats] = field(default_factory=dict)
    matched_rules: Mapping[str, str] = field(default_factory=dict)


def is_suggestive_name(column: str) -> bool:
    lowered = column.lower()
    return any(name in lowered for name in SUGGESTIVE_NAMES)


def analyze_column_values(records: Sequence[Mapping[str, str]], column: str) -> ColumnStats:
    """Parse every value of *column* and summarise how NPS-like it looks.

    The valid percentage is taken over all records, including those that
    lack the column, so sparsely populated columns score lower.
    """
    valid_count = 0
    total = 0.0
    has_low = has_mid = has_high = False

    for record in records:
        if column not in record:
            continue
        result = parse_nps_value(record[column])
        if not result.valid or result.value is None:
            continue
        value = result.value
        valid_count += 1
        total += value
        if 0 <= value <= 3:
            has_low = True
        if 4 <= value <= 7:
            has_mid = True
        if 8 <= value <= 10:
            has_high = True

    valid_percentage = valid_count / len(records) * 100 if records else 0.0
    return ColumnStats(
        valid_count=valid_count,
        valid_percentage=valid_percentage,
        average_value=total / valid_count if valid_count else 0.0,
        has_low_values=has_low,
        has_mid_values=has_mid,
        has_high_values=has_high,
    )


def _matching_rule(
    suggestive: bool, stats: ColumnStats, rules: Sequence[IdentificationRule]
) -> IdentificationRule | None:
    if not stats.has_expected_range:
        return None
    for rule in rules:
        if rule.suggestive == suggestive and stats.valid_percentage >= rule.min_valid_percentage:
            return rule
    return None


def identify_nps_columns(
    records: Sequence[Mapping[str, str]],
    rules: Sequence[IdentificationRule] = DEFAULT_RULES,
) -> ColumnIdentification:
    """Pick the columns that look like NPS grades.

    Candidates are the first record's columns. *rules* are tried in order
    and the first one that matches admits the column.
    """
    if not records:
        return ColumnIdentification()

    identified: list[str] = []
    analyzed: list[str] = []
    stats_by_column: dict[str, ColumnStats] = {}
    matched: dict[str, str] = {}

    for column in records[0]:
        analyzed.append(column)
        stats = analyze_column_values(records, column)
        stats_by_column[column] = stats
        rule = _matching_rule(is_suggestive_name(column), stats, rules)
        if rule is not None and column not in identified:
            identified.append(column)
            matched[column] = rule.name

    return ColumnIdentification(
        columns=tuple(identified),
        analyzed_columns=tuple(analyzed),
        stats=stats_by_column,
        matched_rules=matched,
    )
