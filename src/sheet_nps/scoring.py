"""Score parsing, NPS categories and the qualitative score bands."""

from __future__ import annotations

import math
import re
from numbers import Real

from sheet_nps.models import CATEGORY_BY_GRADE, NPSCategory, ScoreValue
from sheet_nps.utils import round_half_up

# ASCII digits only; the decimal pattern is matched as a prefix of the answer.
_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

# Order matters: the first keyword contained in the answer wins, so
# "muito bom" resolves through "bom" and "insatisfeito" before "satisfeito".
KEYWORD_SCORES: tuple[tuple[str, int], ...] = (
    ("péssimo", 0),
    ("pessimo", 0),
    ("ruim", 2),
    ("insatisfeito", 3),
    ("regular", 5),
    ("médio", 5),
    ("medio", 5),
    ("neutro", 7),
    ("bom", 8),
    ("satisfeito", 8),
    ("ótimo", 9),
    ("otimo", 9),
    ("excelente", 10),
    ("muito bom", 9),
    ("perfeito", 10),
)

# (inclusive upper bound, label, hex colour) for non-negative scores.
_SCORE_BANDS: tuple[tuple[float, str, str], ...] = (
    (30, "Poor", "#FF851B"),
    (50, "Good", "#FFDC00"),
    (75, "Very Good", "#2ECC40"),
)
_CRITICAL = ("Critical", "#FF4136")
_EXCELLENT = ("Excellent", "#0074D9")


def _in_scale(value: float) -> bool:
    return math.isfinite(value) and 0 <= value <= 10


def _keyword_score(text: str) -> int | None:
    lowered = text.lower()
    for keyword, score in KEYWORD_SCORES:
        if keyword in lowered:
            return score
    return None


def _text_to_number(text: str) -> float | None:
    # A leading run of digits is a decimal prefix too, so "9 - recomendo" is 9.
    match = _DECIMAL_RE.match(text)
    if match:
        return float(match.group(0))
    keyword = _keyword_score(text)
    return float(keyword) if keyword is not None else None


def parse_nps_value(cell: object) -> ScoreValue:
    """Parse one answer into a 0-10 score.

    Numbers are taken as-is. Text is tried as a decimal prefix
    (``"8.5 pontos"`` is 8.5, ``"-5 bom"`` is -5), then against
    :data:`KEYWORD_SCORES`. Anything outside [0, 10] is invalid.
    """
    if cell is None:
        return ScoreValue.invalid()
    if isinstance(cell, Real) and not isinstance(cell, bool):
        value = float(cell)
        return ScoreValue(True, value) if _in_scale(value) else ScoreValue.invalid()

    text = str(cell).strip()
    if not text:
        return ScoreValue.invalid()
    value = _text_to_number(text)
    if value is None or not _in_scale(value):
        return ScoreValue.invalid()
    return ScoreValue(True, value)


def get_nps_category(score: float | None) -> NPSCategory:
    """Categorise a grade after half-up rounding; out-of-scale grades are Passive."""
    if score is None or not math.isfinite(score):
        return NPSCategory.NEUTRO
    return CATEGORY_BY_GRADE.get(round_half_up(score), NPSCategory.NEUTRO)


def _score_band(score: float) -> tuple[str, str]:
    if score < 0:
        return _CRITICAL
    for upper, label, color in _SCORE_BANDS:
        if score <= upper:
            return label, color
    return _EXCELLENT


def get_nps_classification(score: float) -> str:
    return _score_band(score)[0]


def get_nps_color(score: float) -> str:
    return _score_band(score)[1]
