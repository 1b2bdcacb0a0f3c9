"""Delimited-text tokenizer — separator detection + quote-aware row splitting."""

from __future__ import annotations

import re

from sheet_nps.models import SEPARATORS

_LINE_BREAK_RE = re.compile(r"\r?\n")
_ENCLOSING_QUOTES_RE = re.compile(r'^"(.*)"$', re.DOTALL)

RawTable = list[list[str]]


def _first_non_blank_line(text: str) -> str | None:
    for line in _LINE_BREAK_RE.split(text):
        if line.strip():
            return line
    return None


def detect_separator(text: str) -> str:
    """Guess the separator from the first non-blank line of *text*.

    Counts literal ``,`` ``;`` and tab characters (quoted occurrences
    included) and returns the strictly most frequent one; ties and blank
    input fall back to ``,``.
    """
    first_line = _first_non_blank_line(text or "")
    if first_line is None:
        return ","

    detected = ","
    max_count = 0
    for sep in SEPARATORS:
        count = first_line.count(sep)
        if count > max_count:
            max_count = count
            detected = sep
    return detected


def _split_line(line: str, separator: str) -> list[str]:
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == '"':
            if in_quotes and i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == separator and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1
    fields.append("".join(current))
    return fields


def _clean_field(value: str) -> str:
    cleaned = _ENCLOSING_QUOTES_RE.sub(r"\1", value)
    cleaned = cleaned.replace('""', '"')
    return cleaned.strip()


def parse_csv(text: str, separator: str | None = None) -> RawTable:
    """Split *text* into rows of trimmed cell strings.

    *separator* defaults to :func:`detect_separator`. Blank lines are
    skipped; a quoted field may contain the separator, and ``""`` inside
    a quoted field stands for one literal quote. Fields never span lines.
    """
    if not text or not text.strip():
        return []
    if separator is None:
        separator = detect_separator(text)
    elif separator not in SEPARATORS:
        raise ValueError(f"Unsupported separator: {separator!r}")

    table: RawTable = []
    for line in _LINE_BREAK_RE.split(text):
        if not line.strip():
            continue
        row = [_clean_field(value) for value in _split_line(line, separator)]
        if row:
            table.append(row)
    return table
