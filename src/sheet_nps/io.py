"""I/O helpers — fetch or read survey exports, write JSON artifacts."""

from __future__ import annotations

import json
import re
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import requests

DEFAULT_TIMEOUT = 30.0

_SHEETS_EXPORT_RE = re.compile(r"https://docs\.google\.com/spreadsheets/d/([a-zA-Z0-9-_]+)/export")
_SHEETS_EDIT_RE = re.compile(r"https://docs\.google\.com/spreadsheets/d/([a-zA-Z0-9-_]+)/edit")
_SHEETS_PUBLISHED_RE = re.compile(r"https://docs\.google\.com/spreadsheets/d/e/([a-zA-Z0-9-_]+)/pub")
_FORMS_RE = re.compile(r"https://docs\.google\.com/forms/d/([a-zA-Z0-9-_]+)")

# ── Remote documents ─────────────────────────────────────────────


def _with_query_param(url: str, param: str) -> str:
    return f"{url}&{param}" if "?" in url else f"{url}?{param}"


def to_csv_export_url(url: str) -> str | None:
    """Return the CSV download URL for a Google Sheets link, or ``None``.

    Accepts ``…/d/<id>/edit``, ``…/d/e/<id>/pub`` and ``…/d/<id>/export``
    links. Google Forms links cannot be exported directly and give ``None``.
    """
    if not url or not url.strip():
        return None
    url = url.strip()

    if _SHEETS_EXPORT_RE.search(url):
        return url if "format=csv" in url else _with_query_param(url, "format=csv")

    match = _SHEETS_EDIT_RE.search(url)
    if match:
        return f"https://docs.google.com/spreadsheets/d/{match.group(1)}/export?format=csv"

    if _SHEETS_PUBLISHED_RE.search(url):
        return url if "output=csv" in url else _with_query_param(url, "output=csv")

    return None


def is_forms_url(url: str) -> bool:
    return bool(_FORMS_RE.search(url or ""))


def fetch_text(url: str, *, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Download the CSV body behind a Google Sheets *url*.

    Raises
    ------
    ValueError
        If *url* is not an exportable Google Sheets link, or the request
        fails.
    """
    csv_url = to_csv_export_url(url)
    if csv_url is None:
        if is_forms_url(url):
            raise ValueError(
                "Google Forms links cannot be exported as CSV; use the linked spreadsheet URL."
            )
        raise ValueError(f"Not a Google Sheets URL: {url!r}")

    try:
        response = requests.get(
            csv_url,
            headers={"Accept": "text/csv,text/plain,*/*", "Cache-Control": "no-cache"},
            timeout=timeout,
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        raise ValueError(
            f"Could not download {csv_url} (is the sheet published and public?): {exc}"
        ) from exc

    if "charset" not in response.headers.get("Content-Type", "").lower():
        response.encoding = "utf-8"
    return response.text


# ── Local files ──────────────────────────────────────────────────


def read_text(path: Path) -> str:
    """Read a delimited-text export, trying UTF-8 (with/without BOM) then Latin-1.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If *path* is a directory.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    if path.is_dir():
        raise ValueError(f"Input is a directory, not a file: {path}")

    raw = path.read_bytes()
    last_exc: UnicodeDecodeError | None = None
    for encoding in ("utf-8-sig", "utf-8", "latin-1"):
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError as exc:
            last_exc = exc
    raise ValueError(f"Could not decode {path}") from last_exc


def load_source(source: str | Path) -> str:
    """Return the raw text behind *source*: an ``http(s)://`` URL or a file path."""
    if isinstance(source, str) and source.startswith(("http://", "https://")):
        return fetch_text(source)
    return read_text(Path(source))


# ── Writing ──────────────────────────────────────────────────────


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(payload, encoding="utf-8")
    tmp_path.replace(path)
    return path
