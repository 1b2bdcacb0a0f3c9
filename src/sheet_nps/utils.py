"""Shared helpers — rounding, hashing, timestamps."""

from __future__ import annotations

import hashlib
import math
from datetime import datetime, timezone


def round_half_up(value: float) -> int:
    """Round *value* to the nearest integer, ties towards +infinity.

    ``round()`` would give ``round(8.5) == 8``; grades and scores round half
    up, so an 8.5 answer is bucketed as a 9.
    """
    return math.floor(value + 0.5)


def sha256_text(text: str) -> str:
    """Return the hex SHA-256 digest of *text* encoded as UTF-8."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def utcnow_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()
