"""Decode spreadsheet containers into the cell grid the report parser reads.

``.xlsx``/``.xlsm`` workbooks are read with openpyxl, legacy ``.xls``
workbooks with xlrd. Both yield rows of plain values: text, numbers,
datetimes or ``None``.
"""

from __future__ import annotations

from pathlib import Path

import xlrd
from openpyxl import load_workbook

LEGACY_SUFFIXES = {".xls"}


def _read_xlsx(path: Path) -> list[list[object]]:
    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        return [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def _xls_value(cell: xlrd.sheet.Cell, datemode: int) -> object:
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
        return None
    if cell.ctype == xlrd.XL_CELL_DATE:
        return xlrd.xldate.xldate_as_datetime(cell.value, datemode)
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    return cell.value


def _read_xls(path: Path) -> list[list[object]]:
    book = xlrd.open_workbook(str(path), on_demand=True)
    try:
        sheet = book.sheet_by_index(0)
        return [
            [_xls_value(cell, book.datemode) for cell in sheet.row(index)]
            for index in range(sheet.nrows)
        ]
    finally:
        book.release_resources()


def read_first_sheet(path: str | Path) -> list[list[object]]:
    """Read the first worksheet of a workbook as rows of values.

    Formula cells yield their cached values. Short rows are not padded.

    Raises:
        ValueError: If the file cannot be read as a workbook.
    """
    path = Path(path)
    reader = _read_xls if path.suffix.lower() in LEGACY_SUFFIXES else _read_xlsx
    try:
        return reader(path)
    except Exception as e:
        raise ValueError(f"Failed to read workbook {path}: {e}") from e
