"""CLI interface for IAM Log Report."""

import json
import sys
from pathlib import Path
from typing import Dict

import click

from shared.cli import create_table, error, handle_errors, info, print_table, success, warning
from shared.logger import setup_logger

from .parser import LogReportParser
from .report import Table, project, tables_to_dict
from .source import SourceUnreadableError, is_log_file, read_log_text
from .workbook import DEFAULT_OUTPUT_NAME, save_workbook


def display_summary(tables: Dict[str, Table]) -> None:
    """Display row counts per report sheet."""
    table = create_table(title="Report Sheets")
    table.add_column("#", justify="right", style="dim", width=4)
    table.add_column("Sheet", style="cyan")
    table.add_column("Rows", justify="right")

    for idx, (name, sheet) in enumerate(tables.items(), 1):
        rows = f"[bold]{sheet.row_count:,}[/bold]" if sheet.row_count else "[dim]0[/dim]"
        table.add_row(str(idx), name, rows)

    print_table(table)


@click.command()
@click.argument("log_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_OUTPUT_NAME,
    show_default=True,
    help="Excel file to write",
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Print the report tables as JSON instead of writing a workbook",
)
@click.option(
    "--encoding",
    default="utf-8",
    show_default=True,
    help="Encoding of the log file",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@handle_errors
def main(
    log_file: Path,
    output: Path,
    as_json: bool,
    encoding: str,
    verbose: bool,
):
    """
    IAM Log Report - Turn IAM batch logs into an Excel report.

    Extracts included, ignored, tenant and group-added users from the log
    and writes one sheet per category, each with a header filter.

    Examples:

        \b
        # Write log_analysis.xlsx in the current directory
        iam-log-report batch.log

        \b
        # Choose the output file
        iam-log-report batch.log --output reports/2024-01.xlsx

        \b
        # JSON output
        iam-log-report batch.log --json > report.json
    """
    # Setup logging
    log_level = "DEBUG" if verbose else "INFO"
    if as_json and not verbose:
        # Only warnings alongside the JSON document
        log_level = "WARNING"
    setup_logger("tools.iam_log_report", level=log_level)

    if not is_log_file(log_file):
        error(f"Please choose a valid .log file: {log_file.name}")
        sys.exit(1)

    # Read
    if not as_json:
        info(f"Reading log file: {log_file}")
    try:
        text = read_log_text(log_file, encoding=encoding)
    except SourceUnreadableError as e:
        error(f"Could not read log file: {e.reason}")
        sys.exit(1)

    # Parse and project
    if not as_json:
        info("Analyzing...")
    records = LogReportParser().parse(text)
    tables = project(records)

    if as_json:
        print(json.dumps(tables_to_dict(tables), indent=2, ensure_ascii=False))
        sys.exit(0)

    display_summary(tables)

    if records.total == 0:
        warning("No matching records found; writing header-only sheets")

    # Write workbook
    info("Creating Excel file...")
    try:
        output_path = save_workbook(tables, output)
    except OSError as e:
        error(f"Failed to write {output}: {e}")
        sys.exit(1)

    success(f"Done! Report written to {output_path}")
    sys.exit(0)


if __name__ == "__main__":
    main()
