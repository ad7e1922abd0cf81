"""Utility functions supporting workbook ingestion and column discovery."""
from __future__ import annotations

import logging
import zipfile
from io import BytesIO
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd
import xlrd
import yaml
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from xlrd.compdoc import CompDocError

from .standards.layouts import FieldRule


LOGGER_NAME = "giro.ingestion"
ALLOWED_EXTENSIONS = (".xlsx", ".xlsm", ".xls")

Row = Sequence[object]


class WorkbookReadError(ValueError):
    """Raised when a workbook cannot be opened or has no sheets."""


def load_config(path: str | Path) -> Dict:
    """Load a YAML configuration file."""

    with open(path, "r", encoding="utf-8") as stream:
        return yaml.safe_load(stream) or {}


def ensure_directory(directory: str | Path) -> Path:
    """Ensure that the directory exists."""

    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    return path


def validate_extension(path: Path, allowed: Iterable[str] = ALLOWED_EXTENSIONS) -> None:
    """Ensure the file extension is allowed."""

    suffix = path.suffix.lower()
    if suffix not in {ext.lower() for ext in allowed}:
        raise WorkbookReadError(f"Unsupported file extension: {suffix}. Allowed: {tuple(allowed)}")


# Compound-document signature shared by every legacy BIFF (.xls) workbook.
OLE2_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


def _read_legacy_rows(data: bytes, source: str) -> List[List[object]]:
    try:
        frame = pd.read_excel(BytesIO(data), sheet_name=0, header=None, engine="xlrd")
    except (xlrd.XLRDError, CompDocError, ValueError, OSError) as exc:
        raise WorkbookReadError(f"Failed to read legacy workbook {source}: {exc}") from exc
    # Object dtype turns numpy scalars into plain ints and floats.
    values = frame.astype(object).values.tolist()
    return [[None if pd.isna(cell) else cell for cell in row] for row in values]


def _read_xlsx_rows(data: bytes, source: str) -> List[List[object]]:
    try:
        workbook = load_workbook(BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
        raise WorkbookReadError(f"Failed to read workbook {source}: {exc}") from exc

    try:
        if not workbook.sheetnames:
            raise WorkbookReadError(f"Workbook {source} has no sheets")
        sheet = workbook[workbook.sheetnames[0]]
        return [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def read_workbook_rows(data: bytes, source: str = "<bytes>") -> List[List[object]]:
    """Read the first sheet of a workbook into a row matrix.

    xlsx/xlsm go through openpyxl, legacy ``.xls`` (detected by its OLE2
    signature) through pandas with the xlrd engine. Cells keep their reader
    types (str, int, float, datetime, None); formulas resolve to their cached
    values. Blank rows stay in place so row positions match the sheet.
    Any structural failure is raised as a single ``WorkbookReadError``.
    """

    if data[: len(OLE2_SIGNATURE)] == OLE2_SIGNATURE:
        rows = _read_legacy_rows(data, source)
    else:
        rows = _read_xlsx_rows(data, source)

    logging.getLogger(LOGGER_NAME).debug("Read %d rows from %s", len(rows), source)
    return rows


def normalize_str(value: object) -> str:
    """Case-fold and trim a cell for keyword matching; blanks and zero become ''."""

    if value is None or value == "" or value == 0:
        return ""
    if isinstance(value, float) and value != value:
        return ""
    return str(value).lower().strip()


def locate_header_row(
    rows: Sequence[Row],
    keywords: Iterable[str],
    scan_rows: int = 10,
    min_matches: int = 2,
) -> Optional[int]:
    """Return the index of the first row matching at least ``min_matches`` keywords.

    Each candidate row is flattened into one lower-cased string and every
    distinct keyword found as a substring counts once. Only the first
    ``scan_rows`` rows are considered; ``None`` means no header was found.
    """

    distinct = list(dict.fromkeys(k.lower() for k in keywords))
    for index, row in enumerate(rows[:scan_rows]):
        row_text = " ".join(normalize_str(cell) for cell in row)
        matches = sum(1 for keyword in distinct if keyword in row_text)
        if matches >= min_matches:
            return index
    return None


def header_cells(rows: Sequence[Row], header_index: Optional[int]) -> List[str]:
    """Return the normalized header texts, or an empty list without a header."""

    if header_index is None:
        return []
    return [normalize_str(cell) for cell in rows[header_index]]


def find_column(headers: Sequence[str], keywords: Iterable[str]) -> Optional[int]:
    """Return the first header index (left to right) containing any keyword."""

    kws = [k.lower() for k in keywords]
    for index, header in enumerate(headers):
        if any(k in header for k in kws):
            return index
    return None


def resolve_column(headers: Sequence[str], rule: FieldRule) -> Optional[int]:
    """Resolve one field: keyword tiers, then exact names, then the fallback."""

    for tier in rule.keywords:
        index = find_column(headers, tier)
        if index is not None:
            return index
    for name in rule.exact:
        for index, header in enumerate(headers):
            if header == name:
                return index
    return rule.fallback


def resolve_columns(headers: Sequence[str], rules: Iterable[FieldRule]) -> Dict[str, Optional[int]]:
    """Map every field of a layout to a column index (``None`` when unresolved)."""

    return {rule.name: resolve_column(headers, rule) for rule in rules}


def cell_at(row: Row, index: Optional[int]) -> object:
    """Return ``row[index]`` or ``None`` for an unresolved index or short row."""

    if index is None or index < 0 or index >= len(row):
        return None
    return row[index]
