"""Cell-level normalization for loosely formatted spreadsheet exports.

Every raw cell is first classified into one of four kinds (text, number,
date, empty). The decoders below branch on that kind only, so a value the
workbook reader hands us can never fall through an unexpected path.

- ``clean_number``: Brazilian and US number strings to ``float`` (0 on failure)
- ``format_date``: typed dates, spreadsheet serials and text to ``YYYY-MM-DD``
  (empty string when no date in or after 2000 can be recovered)
"""
from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta
from enum import Enum


class CellKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    EMPTY = "empty"


MIN_YEAR = 2000
# Serial 25569 is 1970-01-01; 36526 is 2000-01-01.
UNIX_EPOCH_SERIAL = 25569
MIN_SERIAL = 36526
MS_PER_DAY = 86_400_000
_UNIX_EPOCH = datetime(1970, 1, 1)

PT_MONTHS = {
    "jan": 1, "fev": 2, "mar": 3, "abr": 4, "mai": 5, "jun": 6,
    "jul": 7, "ago": 8, "set": 9, "out": 10, "nov": 11, "dez": 12,
}

_NON_NUMERIC_RX = re.compile(r"[^\d,.\-]")
_FLOAT_PREFIX_RX = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")
_BR_DATE_RX = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})")
_MONTH_YEAR_RX = re.compile(r"^([a-z]{3})[\s\-/](\d{2,4})$")
_ISO_DATE_RX = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def classify_cell(value: object) -> CellKind:
    """Return the kind of a raw cell value."""
    if value is None:
        return CellKind.EMPTY
    if isinstance(value, (datetime, date)):
        return CellKind.DATE
    if isinstance(value, bool):
        return CellKind.TEXT
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return CellKind.EMPTY
        return CellKind.NUMBER
    if isinstance(value, str) and value == "":
        return CellKind.EMPTY
    return CellKind.TEXT


def _parse_float_prefix(text: str) -> float:
    # Leading numeric prefix only: "1.2.3" -> 1.2, "12-3" -> 12.
    match = _FLOAT_PREFIX_RX.match(text)
    if not match:
        return 0.0
    try:
        result = float(match.group(0))
    except ValueError:
        return 0.0
    return result if result != 0 else 0.0


def _clean_numeric_text(raw: str) -> float:
    clean = _NON_NUMERIC_RX.sub("", raw.strip())
    last_dot = clean.rfind(".")
    last_comma = clean.rfind(",")

    if last_dot != -1 and last_comma != -1:
        if last_comma > last_dot:
            # 1.234,56
            clean = clean.replace(".", "").replace(",", ".", 1)
        else:
            # 1,234.56
            clean = clean.replace(",", "")
    elif last_comma != -1:
        clean = clean.replace(",", ".", 1)
    elif last_dot != -1:
        # Exactly three digits after the last dot reads as thousands: 1.500 -> 1500.
        # Known ambiguity: "10.500" becomes 10500.
        parts = clean.split(".")
        if len(parts[-1]) == 3:
            clean = clean.replace(".", "")

    return _parse_float_prefix(clean)


def clean_number(value: object) -> float:
    """Decode a numeric cell, returning 0 when nothing numeric can be recovered.

    Examples
    --------
    >>> clean_number("R$ 1.500,00")
    1500.0
    >>> clean_number("1,500.00")
    1500.0
    >>> clean_number("abc")
    0.0
    """
    kind = classify_cell(value)
    if kind is CellKind.NUMBER:
        return value  # type: ignore[return-value]
    if kind is CellKind.TEXT and isinstance(value, str):
        return _clean_numeric_text(value)
    return 0.0


def _iso(year: int, month: int, day: int) -> str:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return ""


def _promote_year(year: int) -> int:
    return year + 2000 if year < 100 else year


def _date_from_serial(serial: float) -> str:
    if serial < MIN_SERIAL:
        return ""
    try:
        millis = round((serial - UNIX_EPOCH_SERIAL) * MS_PER_DAY)
        moment = _UNIX_EPOCH + timedelta(milliseconds=millis)
    except (OverflowError, ValueError):
        return ""
    if moment.year < MIN_YEAR:
        return ""
    return moment.date().isoformat()


def _date_from_text(raw: str) -> str:
    text = raw.strip()

    match = _BR_DATE_RX.match(text)
    if match:
        day, month = int(match.group(1)), int(match.group(2))
        year = _promote_year(int(match.group(3)))
        if year < MIN_YEAR:
            return ""
        return _iso(year, month, day)

    match = _MONTH_YEAR_RX.match(text.lower())
    if match and match.group(1) in PT_MONTHS:
        year = _promote_year(int(match.group(2)))
        if year < MIN_YEAR:
            return ""
        return _iso(year, PT_MONTHS[match.group(1)], 1)

    if _ISO_DATE_RX.match(text):
        year, month, day = (int(part) for part in text.split("-"))
        if year < MIN_YEAR or not _iso(year, month, day):
            return ""
        return text

    return ""


def format_date(value: object) -> str:
    """Decode a date cell to ``YYYY-MM-DD``.

    Dates before 2000 are placeholder values in the source exports and decode
    to an empty string, as does anything unrecognized.
    """
    kind = classify_cell(value)
    if kind is CellKind.DATE:
        if value.year < MIN_YEAR:  # type: ignore[union-attr]
            return ""
        return _iso(value.year, value.month, value.day)  # type: ignore[union-attr]
    if kind is CellKind.NUMBER:
        return _date_from_serial(float(value))  # type: ignore[arg-type]
    if kind is CellKind.TEXT and isinstance(value, str):
        return _date_from_text(value)
    return ""


def cell_text(value: object, default: str) -> str:
    """Render a cell as trimmed display text, substituting ``default`` for blanks.

    Numeric zero counts as blank. Integral floats drop their ``.0`` so size
    columns like ``38`` stay readable.
    """
    kind = classify_cell(value)
    if kind is CellKind.EMPTY:
        return default
    if kind is CellKind.NUMBER:
        if value == 0:
            return default
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
    return str(value).strip()
