"""Excel workbook output for report tables."""

from pathlib import Path
from typing import Dict, Optional

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from shared.logger import get_logger

from .report import Table

logger = get_logger(__name__)

DEFAULT_OUTPUT_NAME = "log_analysis.xlsx"


def filter_reference(table: Table) -> Optional[str]:
    """
    Excel range for the table's header filter.

    Args:
        table: Report table

    Returns:
        A1-style range such as "A1:D2", or None when the table has no data rows
    """
    bounds = table.filter_bounds
    if bounds is None:
        return None

    (first_row, first_col), (last_row, last_col) = bounds
    start = f"{get_column_letter(first_col + 1)}{first_row + 1}"
    end = f"{get_column_letter(last_col + 1)}{last_row + 1}"
    return f"{start}:{end}"


def write_cell(worksheet: Worksheet, row: int, column: int, value: Optional[str]) -> None:
    """
    Write one parsed value as plain text.

    Control characters are dropped (openpyxl refuses them) and values that
    look like formulas are stored as strings.
    """
    if value is None:
        return

    cell = worksheet.cell(row=row, column=column, value=ILLEGAL_CHARACTERS_RE.sub("", value))
    if cell.data_type == "f":
        cell.data_type = "s"


def build_workbook(tables: Dict[str, Table]) -> Workbook:
    """
    Build a workbook with one sheet per table.

    Args:
        tables: Ordered mapping of sheet name to table

    Returns:
        openpyxl Workbook (not yet saved)
    """
    workbook = Workbook()
    workbook.remove(workbook.active)

    for name, table in tables.items():
        worksheet = workbook.create_sheet(title=name)
        worksheet.append(list(table.headers))
        for cell in worksheet[1]:
            cell.font = Font(bold=True)

        for row_idx, row in enumerate(table.rows, 2):
            for col_idx, value in enumerate(row, 1):
                write_cell(worksheet, row_idx, col_idx, value)

        ref = filter_reference(table)
        if ref:
            worksheet.auto_filter.ref = ref

        logger.debug(f"Added sheet '{name}' with {table.row_count} rows (filter: {ref or 'none'})")

    return workbook


def save_workbook(tables: Dict[str, Table], output_path: Path) -> Path:
    """
    Build and save the report workbook.

    Args:
        tables: Ordered mapping of sheet name to table
        output_path: Destination .xlsx path

    Returns:
        Path the workbook was written to
    """
    workbook = build_workbook(tables)
    workbook.save(output_path)

    logger.info(f"Saved workbook with {len(tables)} sheets to {output_path}")
    return output_path
