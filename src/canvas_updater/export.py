"""Export a run report to JSON or CSV and print a terminal summary."""

from __future__ import annotations

import csv
import json
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from canvas_updater.models import FileResult, Replacement, RunReport

CSV_HEADERS = [
    "file", "status", "format_spec", "day_number", "day_offset",
    "original", "rendered", "message",
]


def _replacement_to_dict(repl: Replacement) -> dict:
    d = repl.directive
    return {
        "format_spec": d.format_spec,
        "day_number": d.day_number,
        "day_offset": d.day_offset,
        "directive_span": list(d.directive_span),
        "replace_span": list(d.replace_span),
        "original": repl.original,
        "rendered": repl.rendered,
    }


def _file_to_dict(result: FileResult) -> dict:
    return {
        "file": result.path.as_posix(),
        "status": result.status,
        "error": result.error,
        "replacements": [_replacement_to_dict(r) for r in result.replacements],
        "warnings": [{"position": w.position, "message": w.message} for w in result.warnings],
    }


def report_to_dict(report: RunReport) -> dict:
    return {
        "start_date": report.start_date.isoformat(),
        "start_index": report.start_index,
        "input": str(report.input_path),
        "output": str(report.output_path) if report.output_path else None,
        "dry_run": report.dry_run,
        "replacement_count": report.replacement_count,
        "files": [_file_to_dict(f) for f in report.files],
    }


def export_json(report: RunReport, output_path: Path) -> None:
    """Export the run report to a JSON file."""
    output_path.write_text(
        json.dumps(report_to_dict(report), indent=2, ensure_ascii=False), encoding="utf-8"
    )


def export_csv(report: RunReport, output_path: Path) -> None:
    """Export one row per replacement, warning, and file error."""
    rows: list[dict[str, str]] = []
    for f in report.files:
        name = f.path.as_posix()
        for repl in f.replacements:
            d = repl.directive
            rows.append({
                "file": name,
                "status": f.status,
                "format_spec": d.format_spec,
                "day_number": str(d.day_number),
                "day_offset": str(d.day_offset),
                "original": repl.original.replace("\n", " "),
                "rendered": repl.rendered,
                "message": "",
            })
        for w in f.warnings:
            rows.append({"file": name, "status": "warning", "message": w.message})
        if f.error:
            rows.append({"file": name, "status": f.status, "message": f.error})

    with open(output_path, "w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=CSV_HEADERS, restval="")
        writer.writeheader()
        writer.writerows(rows)


def export_report(report: RunReport, output_path: Path) -> None:
    """Pick the exporter from the file suffix (.json or .csv)."""
    suffix = output_path.suffix.lower()
    if suffix == ".json":
        export_json(report, output_path)
    elif suffix == ".csv":
        export_csv(report, output_path)
    else:
        raise ValueError(f"Unsupported report format '{suffix}', use .json or .csv")


def print_summary(report: RunReport, console: Console | None = None) -> None:
    """Print a per-file table of files that had directives, warnings or errors."""
    console = console or Console()
    table = Table(title="DateReplace summary", show_lines=False)
    table.add_column("File", overflow="fold")
    table.add_column("Replaced", justify="right")
    table.add_column("Warnings", justify="right")
    table.add_column("Status")

    status_styles = {"updated": "green", "unchanged": "dim", "skipped": "red"}
    for f in report.files:
        if not (f.replacements or f.warnings or f.error):
            continue
        table.add_row(
            escape(f.path.as_posix()),
            str(len(f.replacements)),
            str(len(f.warnings)),
            f"[{status_styles[f.status]}]{f.status}[/]",
        )

    if table.row_count:
        console.print(table)
    console.print(
        f"{report.replacement_count} date(s) replaced in {len(report.changed_files())} file(s) "
        f"of {len(report.files)} scanned, start {report.start_date.isoformat()} "
        f"(index {report.start_index})."
    )
    if report.dry_run:
        console.print("[yellow]Dry run: no files written, no archive created.[/]")
    elif report.output_path is not None:
        console.print(f"Successfully created new archive at '{escape(str(report.output_path))}'")
