from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

import pandas as pd

from kpi_backend.core.schema import ReportTable


def _file_stem(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]+", "_", name).strip("_").lower() or "table"


def export_tables(directory: Path, tables: Iterable[ReportTable]) -> list[Path]:
    """Write one headerless CSV per table; cells are written exactly as assembled."""

    directory.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for table in tables:
        stem = _file_stem(table.name)
        path = directory / f"{stem}.csv"
        suffix = 2
        while path in written:
            path = directory / f"{stem}_{suffix}.csv"
            suffix += 1
        df = pd.DataFrame(table.rows)
        df.to_csv(path, index=False, header=False)
        written.append(path)
    return written
