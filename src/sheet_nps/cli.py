"""CLI entry point for sheet-nps."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table as RichTable

from sheet_nps import __version__
from sheet_nps.columns import ColumnIdentification, identify_nps_columns
from sheet_nps.io import load_source, write_json
from sheet_nps.models import LoadReport, NPSSummary, Record, RunManifest
from sheet_nps.pipeline import calculate_nps, load_records
from sheet_nps.report import ignored_values_lines, write_report
from sheet_nps.scoring import get_nps_classification, get_nps_color
from sheet_nps.summary import write_summary
from sheet_nps.table import get_sheet_info
from sheet_nps.utils import sha256_text, utcnow_iso

app = typer.Typer(
    name="sheetnps",
    help="sheet-nps — Net Promoter Score summaries from survey spreadsheets.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()


class SeparatorOption(str, Enum):
    auto = "auto"
    comma = "comma"
    semicolon = "semicolon"
    tab = "tab"


_SEPARATOR_CHARS: dict[SeparatorOption, str | None] = {
    SeparatorOption.auto: None,
    SeparatorOption.comma: ",",
    SeparatorOption.semicolon: ";",
    SeparatorOption.tab: "\t",
}
_SEPARATOR_NAMES = {",": "comma", ";": "semicolon", "\t": "tab"}


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"sheet-nps v{__version__}")
        raise typer.Exit()


def _load_profile_columns(profile: Path | None) -> list[str]:
    """Return the ``column=<name>`` entries of a profile file."""
    if not profile:
        return []
    if not profile.exists():
        raise ValueError(f"Profile not found: {profile} (expected lines like column=NPS)")
    if profile.is_dir():
        raise ValueError(f"Profile is a directory, not a file: {profile}")
    try:
        text = profile.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Cannot read profile {profile}: {exc}") from exc

    columns: list[str] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        key, sep, value = stripped.partition("=")
        if not sep or key.strip().lower() != "column":
            raise ValueError(
                f"Invalid profile line {lineno} in {profile}: {stripped!r} (expected column=<name>)"
            )
        columns.append(value)
    return columns


def _parse_columns(raw: list[str]) -> list[str]:
    columns: list[str] = []
    for item in raw:
        name = item.strip()
        if not name:
            raise ValueError("Column names must be non-empty")
        if name not in columns:
            columns.append(name)
    return columns


def _resolve_source(input_file: Path | None, url: str | None) -> str:
    if input_file and url:
        raise ValueError("Use either --input or --url, not both")
    if input_file:
        return str(input_file)
    if url:
        return url
    raise ValueError("Missing source: pass --input PATH or --url URL")


def _source_label(input_file: Path | None, url: str | None) -> str:
    if input_file:
        return str(input_file.resolve())
    return url or ""


def _write_manifest(
    out_dir: Path,
    source: str,
    created_at: str,
    load_report: LoadReport,
    *,
    text: str = "",
    status: str = "success",
    error_code: int | None = None,
    error_message: str = "",
) -> Path:
    manifest = RunManifest(
        version=__version__,
        source=source,
        output_dir=str(out_dir.resolve()),
        created_at_utc=created_at,
        rows_in=load_report.rows_in,
        rows_out=load_report.rows_out,
        sha256=sha256_text(text) if text else "",
        status=status,
        error_code=error_code,
        error_message=error_message,
    )
    return write_json(out_dir / "run_manifest.json", manifest.to_dict())


def _fail(
    out_dir: Path,
    source: str,
    created_at: str,
    message: str,
    *,
    text: str = "",
    load_report: LoadReport | None = None,
    error_code: int = 2,
) -> typer.Exit:
    manifest_path = _write_manifest(
        out_dir,
        source,
        created_at,
        load_report or LoadReport(),
        text=text,
        status="failed",
        error_code=error_code,
        error_message=message,
    )
    _err(message)
    console.print(f"  Manifest -> {manifest_path}")
    return typer.Exit(code=error_code)


def _write_text_artifact(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(text, encoding="utf-8")
    tmp_path.replace(path)
    return path


def _summary_command(
    *,
    input_file: Path | None,
    url: str | None,
    out_dir: Path,
    columns: list[str],
    profile: Path | None,
    separator: SeparatorOption,
) -> str:
    parts: list[str] = ["sheetnps run"]
    if input_file:
        parts.append(f"--input {input_file.name}")
    if url:
        parts.append(f"--url {url}")
    parts.append(f"--out-dir {out_dir.name or str(out_dir)}")
    parts.append(f"--separator {separator.value}")
    if profile:
        parts.append(f"--profile {profile.name}")
    for column in columns:
        parts.append(f"--column {column!r}")
    return " ".join(parts)


def _write_summary_artifact(
    *,
    out_dir: Path,
    source: str,
    load_report: LoadReport,
    summary: NPSSummary,
    command: str,
    max_warnings: int = 5,
) -> Path:
    lines: list[str] = [
        "sheet-nps summary",
        f"tool_version: sheet-nps v{__version__}",
        f"source: {source}",
        f"separator: {_SEPARATOR_NAMES[load_report.separator]}",
        f"rows_in: {load_report.rows_in}",
        f"rows_out: {load_report.rows_out}",
        f"rows_dropped: {load_report.dropped_rows}",
        f"warning_count: {len(load_report.warnings)}",
    ]
    for idx, warning in enumerate(load_report.warnings[:max_warnings], start=1):
        lines.append(f"warning_{idx}: {warning}")
    if len(load_report.warnings) > max_warnings:
        lines.append(f"warning_more: {len(load_report.warnings) - max_warnings}")

    lines.extend(
        [
            f"nps_columns: {', '.join(summary.colunas_identificadas) or 'none'}",
            f"nps_score: {summary.score}",
            f"nps_classification: {get_nps_classification(summary.score)}",
            f"total_responses: {summary.total_respostas}",
            f"promoters: {summary.promotores} ({summary.percentual_promotores:.1f}%)",
            f"passives: {summary.neutros} ({summary.percentual_neutros:.1f}%)",
            f"detractors: {summary.detratores} ({summary.percentual_detratores:.1f}%)",
            f"invalid_answers: {summary.respostas_invalidas}",
        ]
    )
    for idx, value in enumerate(ignored_values_lines(summary), start=1):
        lines.append(f"ignored_{idx}: {value}")
    lines.append(f"command: {command}")
    payload = "\n".join(lines) + "\n"
    return _write_text_artifact(out_dir / "summary.txt", payload)


def _summary_table(summary: NPSSummary) -> RichTable:
    color = get_nps_color(summary.score)
    tbl = RichTable(title="NPS Summary", show_lines=True)
    tbl.add_column("Metric", style="bold")
    tbl.add_column("Value", justify="right")
    tbl.add_row("NPS", f"[bold {color}]{summary.score}[/bold {color}]")
    tbl.add_row("Classification", f"[{color}]{get_nps_classification(summary.score)}[/{color}]")
    tbl.add_row("Responses", str(summary.total_respostas))
    tbl.add_row("Promoters", f"{summary.promotores} ({summary.percentual_promotores:.1f}%)")
    tbl.add_row("Passives", f"{summary.neutros} ({summary.percentual_neutros:.1f}%)")
    tbl.add_row("Detractors", f"{summary.detratores} ({summary.percentual_detratores:.1f}%)")
    tbl.add_row("Invalid answers", str(summary.respostas_invalidas))
    tbl.add_row("Columns", "\n".join(summary.colunas_identificadas))
    return tbl


def _columns_table(records: list[Record], identification: ColumnIdentification) -> RichTable:
    info = get_sheet_info(records)
    tbl = RichTable(title="Column Analysis", show_lines=True)
    tbl.add_column("Column", style="bold")
    tbl.add_column("Type")
    tbl.add_column("Valid", justify="right")
    tbl.add_column("Mean", justify="right")
    tbl.add_column("0-10 range")
    tbl.add_column("NPS")
    for column in identification.analyzed_columns:
        stats = identification.stats[column]
        rule = identification.matched_rules.get(column)
        tbl.add_row(
            column,
            info.column_types.get(column, "empty"),
            f"{stats.valid_percentage:.1f}%",
            f"{stats.average_value:.2f}",
            "[green]yes[/green]" if stats.has_expected_range else "no",
            f"[green]{rule}[/green]" if rule else "-",
        )
    return tbl


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """sheet-nps CLI."""


# ── run command ──────────────────────────────────────────────────


@app.command()
def run(
    input_file: Path | None = typer.Option(
        None, "--input", "-i",
        help="Path to a CSV/TSV survey export.",
    ),
    url: str | None = typer.Option(
        None, "--url", "-u",
        help="Google Sheets URL (the sheet must be shared or published).",
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for summary + report + manifest.",
    ),
    column: list[str] | None = typer.Option(
        None, "--column", "-c",
        help="NPS column to use (repeatable). Skips automatic identification.",
    ),
    profile: Path | None = typer.Option(
        None, "--profile",
        help="Profile file listing NPS columns (column=<name> lines).",
    ),
    separator: SeparatorOption = typer.Option(
        SeparatorOption.auto,
        "--separator", "-s",
        help="Field separator: auto, comma, semicolon or tab.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes all artifacts.",
    ),
) -> None:
    """Compute the NPS of a survey export and write the report artifacts."""
    echo = _printer(quiet)
    created_at = utcnow_iso()
    out_dir.mkdir(parents=True, exist_ok=True)
    source_label = _source_label(input_file, url)
    try:
        columns = _parse_columns(_load_profile_columns(profile) + (column or []))
        source = _resolve_source(input_file, url)
    except ValueError as exc:
        raise _fail(out_dir, source_label, created_at, str(exc))

    if not quiet:
        console.print(Panel(
            f"[bold]sheet-nps[/bold] v{__version__}\n"
            f"Source: {source}\nOutput: {out_dir}",
            title="NPS Run", border_style="blue",
        ))
        if profile:
            console.print(f"  Using profile: {profile}")
        if columns:
            console.print(f"  NPS columns: {', '.join(columns)}")

    # ── Load ─────────────────────────────────────────────────────
    echo("[blue]>[/blue] Loading source …")
    try:
        text = load_source(source)
    except (FileNotFoundError, ValueError, OSError) as exc:
        raise _fail(out_dir, source_label, created_at, str(exc))

    load_report = LoadReport()
    try:
        records, load_report = load_records(text, _SEPARATOR_CHARS[separator])
        echo(
            f"  {load_report.rows_in} data rows, separator "
            f"{_SEPARATOR_NAMES[load_report.separator]}"
        )
        if not quiet:
            for w in load_report.warnings:
                console.print(f"  [yellow]![/yellow] {w}")

        if not records:
            raise _fail(
                out_dir, source_label, created_at,
                "No data rows found after cleaning.",
                text=text, load_report=load_report,
            )

        missing = [name for name in columns if name not in records[0]]
        if missing and not quiet:
            console.print(f"  [yellow]![/yellow] Columns not found: {', '.join(missing)}")

        # ── Compute ──────────────────────────────────────────────
        echo("[blue]>[/blue] Computing NPS …")
        identification = identify_nps_columns(records)
        summary = calculate_nps(records, columns or identification.columns)

        summary_json = write_summary(out_dir, summary)
        echo(f"  Summary JSON -> {summary_json}")

        if not summary.has_result:
            message = (
                "Could not compute NPS: no valid 0-10 answers in "
                + (f"columns {', '.join(summary.colunas_identificadas)}"
                   if summary.colunas_identificadas else "any identified column")
            )
            console.print("  Hint: use --column NAME to pick the score column")
            raise _fail(
                out_dir, source_label, created_at, message,
                text=text, load_report=load_report,
            )

        # ── Write report ─────────────────────────────────────────
        echo("[blue]>[/blue] Writing NPS_Report.xlsx …")
        report_path = write_report(
            out_dir, summary, records, identification, load_report=load_report,
        )
        echo(f"  Report -> {report_path}")

        manifest_path = _write_manifest(
            out_dir, source_label, created_at, load_report, text=text,
        )
        echo(f"  Manifest -> {manifest_path}")

        summary_path = _write_summary_artifact(
            out_dir=out_dir,
            source=source_label,
            load_report=load_report,
            summary=summary,
            command=_summary_command(
                input_file=input_file,
                url=url,
                out_dir=out_dir,
                columns=columns,
                profile=profile,
                separator=separator,
            ),
        )
        echo(f"  Summary  -> {summary_path}")

        if not quiet:
            console.print(_summary_table(summary))
            console.print(Panel(
                f"[green]Done[/green] — NPS {summary.score} "
                f"({summary.total_respostas} responses) -> {report_path}",
                title="Run Complete", border_style="green",
            ))
    except typer.Exit:
        raise
    except Exception as exc:
        raise _fail(
            out_dir, source_label, created_at,
            f"Unexpected internal error: {exc}",
            text=text, load_report=load_report, error_code=1,
        ) from exc


# ── inspect command ──────────────────────────────────────────────


@app.command()
def inspect(
    input_file: Path | None = typer.Option(
        None, "--input", "-i",
        help="Path to a CSV/TSV survey export.",
    ),
    url: str | None = typer.Option(
        None, "--url", "-u",
        help="Google Sheets URL (the sheet must be shared or published).",
    ),
    separator: SeparatorOption = typer.Option(
        SeparatorOption.auto,
        "--separator", "-s",
        help="Field separator: auto, comma, semicolon or tab.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Only print the identified NPS columns.",
    ),
) -> None:
    """Show how each column scores as an NPS candidate, without writing files.

    Exit 0 = at least one NPS column identified, exit 2 = none.
    """
    try:
        source = _resolve_source(input_file, url)
        text = load_source(source)
    except (FileNotFoundError, ValueError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    records, load_report = load_records(text, _SEPARATOR_CHARS[separator])
    if not records:
        for w in load_report.warnings:
            console.print(f"  [yellow]![/yellow] {w}")
        _err("No data rows found after cleaning.")
        raise typer.Exit(code=2)

    identification = identify_nps_columns(records)
    if not quiet:
        console.print(Panel(
            f"[bold]sheet-nps[/bold] v{__version__}  [dim]inspect mode[/dim]\n"
            f"Source: {source}\n"
            f"Rows: {len(records)}  Columns: {len(identification.analyzed_columns)}  "
            f"Separator: {_SEPARATOR_NAMES[load_report.separator]}",
            title="Inspect", border_style="cyan",
        ))
        for w in load_report.warnings:
            console.print(f"  [yellow]![/yellow] {w}")
        console.print(_columns_table(records, identification))

    if not identification.columns:
        _err("No NPS column identified.")
        console.print("  Hint: use sheetnps run --column NAME to pick the score column")
        raise typer.Exit(code=2)

    console.print(f"NPS columns: {', '.join(identification.columns)}")
