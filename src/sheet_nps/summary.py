"""NPS summary persistence."""

from __future__ import annotations

from pathlib import Path

from sheet_nps.io import write_json
from sheet_nps.models import NPSSummary


def write_summary(out_dir: Path, summary: NPSSummary) -> Path:
    """Write ``nps_summary.json`` into *out_dir* and return the path."""
    return write_json(out_dir / "nps_summary.json", summary.to_dict())
