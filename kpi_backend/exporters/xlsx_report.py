from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from kpi_backend.core.schema import ReportTable

_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")


def _sheet_title(name: str, used: set[str]) -> str:
    base = _INVALID_SHEET_CHARS.sub("_", name).strip() or "Sheet"
    base = base[:31]
    title = base
    suffix = 2
    while title.lower() in used:
        marker = f" ({suffix})"
        title = f"{base[: 31 - len(marker)]}{marker}"
        suffix += 1
    used.add(title.lower())
    return title


def export_workbook(path: Path, tables: Iterable[ReportTable]) -> Path:
    """Write each table to its own worksheet, in order."""

    workbook = Workbook()
    workbook.remove(workbook.active)
    used: set[str] = set()
    for table in tables:
        sheet = workbook.create_sheet(_sheet_title(table.name, used))
        for row in table.rows:
            sheet.append(list(row))
        if table.rows and table.rows[0]:
            sheet.cell(row=1, column=1).font = Font(bold=True)
        for index, width in enumerate(table.column_widths, start=1):
            sheet.column_dimensions[get_column_letter(index)].width = width
    if not workbook.sheetnames:
        workbook.create_sheet("Summary")
    path.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(path)
    return path
