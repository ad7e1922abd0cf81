"""Workbook ingestion: row matrix -> canonical sale and cut records.

Sales and cut workbooks run through the same steps, parametrized by a
``RecordLayout``:

  1. locate the header row by keyword scoring
  2. resolve each field to a column (keywords, exact names, position)
  3. decode every data row and keep the records passing the layout's check
  4. order the result when the layout asks for it (sales by date)
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .cell_decoder import cell_text, clean_number, format_date
from .ingestion_utils import (
    LOGGER_NAME,
    Row,
    WorkbookReadError,
    cell_at,
    header_cells,
    locate_header_row,
    read_workbook_rows,
    resolve_columns,
    validate_extension,
)
from .standards.layouts import CUTS_LAYOUT, DATE, NUMBER, SALES_LAYOUT, RecordLayout
from .standards.schemas import CutRecord, SaleRecord


LOGGER = logging.getLogger(LOGGER_NAME)


def _decode(value: object, kind: str, default: Any) -> Any:
    if kind == NUMBER:
        return clean_number(value) or 0.0
    if kind == DATE:
        return format_date(value)
    return cell_text(value, default)


def decode_row(row: Row, layout: RecordLayout, columns: Dict[str, Optional[int]]) -> Any:
    """Build one (not yet validated) record from a data row."""

    values = {
        rule.name: _decode(cell_at(row, columns.get(rule.name)), rule.kind, rule.default)
        for rule in layout.fields
    }
    return layout.build(values)


def assemble_records(rows: Sequence[Row], layout: RecordLayout) -> List[Any]:
    """Run the header/column/decode/filter steps of ``layout`` over ``rows``."""

    if not rows:
        return []

    header_index = locate_header_row(
        rows,
        layout.header_keywords,
        scan_rows=layout.header_scan_rows,
        min_matches=layout.min_keyword_matches,
    )
    columns = resolve_columns(header_cells(rows, header_index), layout.fields)
    data_rows = rows[header_index + 1:] if header_index is not None else rows

    if header_index is None:
        LOGGER.debug("No %s header found in first %d rows; using positional columns", layout.name, layout.header_scan_rows)
    else:
        LOGGER.debug("Located %s header at row %d", layout.name, header_index)
    LOGGER.debug("Resolved %s columns: %s", layout.name, columns)

    decoded = [decode_row(row, layout, columns) for row in data_rows]
    records = [record for record in decoded if layout.is_valid(record)]
    if layout.sort_key is not None:
        records.sort(key=layout.sort_key)

    dropped = len(decoded) - len(records)
    if dropped:
        LOGGER.debug("Dropped %d of %d %s rows failing validity checks", dropped, len(decoded), layout.name)
    return records


def ingest_workbook(data: bytes, layout: RecordLayout, source: str = "<bytes>") -> List[Any]:
    """Read the first sheet of a workbook and assemble records for ``layout``."""

    try:
        rows = read_workbook_rows(data, source=source)
    except WorkbookReadError as exc:
        LOGGER.error("[ERROR] %s", exc)
        raise
    records = assemble_records(rows, layout)
    LOGGER.info("Ingested %d %s records from %s", len(records), layout.name, source)
    return records


def ingest_sales(data: bytes, layout: RecordLayout = SALES_LAYOUT, source: str = "<bytes>") -> List[SaleRecord]:
    return ingest_workbook(data, layout, source=source)


def ingest_cuts(data: bytes, layout: RecordLayout = CUTS_LAYOUT, source: str = "<bytes>") -> List[CutRecord]:
    return ingest_workbook(data, layout, source=source)


def _read_file(path: str | Path) -> bytes:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Input not found: {p}")
    validate_extension(p)
    return p.read_bytes()


def ingest_sales_file(path: str | Path, layout: RecordLayout = SALES_LAYOUT) -> List[SaleRecord]:
    """Ingest a sales workbook from disk."""

    return ingest_sales(_read_file(path), layout=layout, source=str(path))


def ingest_cuts_file(path: str | Path, layout: RecordLayout = CUTS_LAYOUT) -> List[CutRecord]:
    """Ingest a cut (production) workbook from disk."""

    return ingest_cuts(_read_file(path), layout=layout, source=str(path))
