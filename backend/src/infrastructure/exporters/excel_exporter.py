"""Excel (.xlsx) exporter for report rows using openpyxl.

One sheet with a bold, frozen header row, an auto-filter over the header,
fixed column widths, optional clickable hyperlink columns and wrap-text
columns.
"""

import logging
import os
from typing import Any, Iterable, Sequence

import openpyxl
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter

from .csv_exporter import Column, row_value

logger = logging.getLogger(__name__)


def write_xlsx(
    path: str,
    columns: Sequence[Column],
    rows: Iterable[Any],
    sheet_title: str = "Report",
    hyperlink_keys: Sequence[str] = (),
    wrap_keys: Sequence[str] = (),
) -> int:
    """Write rows to a single-sheet workbook.

    Args:
        path: Output file path (parent directories are created)
        columns: (header, key, width) tuples
        rows: Report rows
        sheet_title: Worksheet title (max 31 chars in Excel)
        hyperlink_keys: Column keys whose http(s) values become links
        wrap_keys: Column keys rendered with wrap text

    Returns:
        Number of data rows written
    """
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = sheet_title[:31]

    ws.append([header for header, _, _ in columns])
    for idx, (_, _, width) in enumerate(columns, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width
        ws.cell(row=1, column=idx).font = Font(bold=True)
    ws.freeze_panes = "A2"
    ws.auto_filter.ref = f"A1:{get_column_letter(len(columns))}1"

    wrap = Alignment(wrap_text=True, vertical="top")
    count = 0
    for row in rows:
        ws.append([row_value(row, key) for _, key, _ in columns])
        count += 1
        excel_row = count + 1
        for idx, (_, key, _) in enumerate(columns, start=1):
            cell = ws.cell(row=excel_row, column=idx)
            if key in hyperlink_keys and isinstance(cell.value, str) and cell.value.startswith("http"):
                cell.hyperlink = cell.value
                cell.style = "Hyperlink"
            if key in wrap_keys:
                cell.alignment = wrap

    parent = os.path.dirname(os.path.abspath(path))
    os.makedirs(parent, exist_ok=True)
    wb.save(path)

    logger.info(f"Excel written: {path}", extra={"rows": count})
    return count
