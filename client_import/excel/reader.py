from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.row_data import RawRow

"""Tabular decoder: CSV / Excel upload -> list[RawRow].

The first line of the first sheet is the header row; every following line
is a data row. Cells are returned as text exactly as the spreadsheet shows
them (no NA conversion), so the validator is the only place that
interprets values.
"""

__all__ = [
    "TabularDecodeError",
    "TabularStructureError",
    "MissingColumnsError",
    "SUPPORTED_SUFFIXES",
    "read_tabular_file",
    "decode_frame",
    "decode",
]

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
SUPPORTED_SUFFIXES = EXCEL_SUFFIXES | {".csv"}


class TabularDecodeError(Exception):
    """Raised when the file cannot be read as CSV or Excel at all."""


class TabularStructureError(Exception):
    """Raised when the file is readable but has no usable header/sheet."""


class MissingColumnsError(TabularStructureError):
    """Raised when required columns are missing from the header row."""


def _sniff_delimiter(path: Path) -> str:
    with path.open("r", encoding="utf-8-sig", errors="replace") as f:
        first = f.readline()
    counts = {sep: first.count(sep) for sep in (";", ",", "\t")}
    best = max(counts, key=lambda s: counts[s])
    return best if counts[best] > 0 else ","


def read_tabular_file(path: Path) -> pd.DataFrame:
    """Read the first sheet (or the CSV body) without header interpretation.

    Raises
    ------
    TabularDecodeError: unsupported extension or unreadable content
    TabularStructureError: empty file / workbook without sheets
    """
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise TabularDecodeError(
            f"unsupported file type '{suffix or path.name}'. Use .csv or .xlsx"
        )
    try:
        if suffix == ".csv":
            df = pd.read_csv(
                path,
                header=None,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=False,
                sep=_sniff_delimiter(path),
                encoding="utf-8-sig",
            )
        else:
            xls = pd.ExcelFile(path)
            if not xls.sheet_names:
                raise TabularStructureError("the workbook has no sheets")
            df = xls.parse(xls.sheet_names[0], header=None, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError as e:
        raise TabularStructureError("the file is empty") from e
    except (
        pd.errors.ParserError,
        pd.errors.OptionError,
        ValueError,
        KeyError,
        ImportError,
        OSError,
        zipfile.BadZipFile,
    ) as e:
        # OptionError: a zip archive that is not a workbook
        raise TabularDecodeError(
            f"could not read '{path.name}'. Check that it is a valid CSV or Excel file: {e}"
        ) from e
    return df


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value)


def decode_frame(df: pd.DataFrame) -> list[RawRow]:
    """Turn a header-less frame into RawRows using its first line as header.

    Entirely blank data lines are skipped but keep their position so that
    RawRow.row_number matches the line the user sees in the file.
    """
    if df.shape[0] == 0:
        raise TabularStructureError("the file has no header row")
    header_cells = [_cell_text(v).strip() for v in df.iloc[0].tolist()]
    if not any(header_cells):
        raise TabularStructureError("the first line of the file is empty; expected a header row")
    columns: list[str] = []
    seen: dict[str, int] = {}
    for i, h in enumerate(header_cells):
        name = h or f"Unnamed: {i}"
        count = seen.get(name, 0)
        seen[name] = count + 1
        # repeated headers become "E-mail.1", "E-mail.2"; the first keeps its name
        columns.append(name if count == 0 else f"{name}.{count}")

    rows: list[RawRow] = []
    for position, (_, raw) in enumerate(df.iloc[1:].iterrows(), start=1):
        values = {col: _cell_text(val) for col, val in zip(columns, raw.tolist(), strict=False)}
        row = RawRow(row_number=position, values=values)
        if row.is_blank():
            continue
        rows.append(row)
    return rows


def decode(path: Path) -> list[RawRow]:
    """Decode an uploaded CSV/Excel file into raw rows."""
    return decode_frame(read_tabular_file(path))
