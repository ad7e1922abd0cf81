from __future__ import annotations

from typing import Any


def _pt_br(value: float, decimals: int) -> str:
    # 1234567.891 -> "1.234.567,89"
    us = f"{abs(value):,.{decimals}f}"
    return us.replace(",", "_").replace(".", ",").replace("_", ".")


def format_currency(value: Any) -> str:
    try:
        val = float(value)
    except (TypeError, ValueError):
        return "R$ 0,00"
    text = f"R$ {_pt_br(val, 2)}"
    return f"-{text}" if val < 0 and round(abs(val), 2) != 0 else text


def format_number(value: Any) -> str:
    try:
        val = float(value)
    except (TypeError, ValueError):
        return "0"
    text = _pt_br(val, 2)
    if "," in text:
        text = text.rstrip("0").rstrip(",")
    return f"-{text}" if val < 0 and text != "0" else text


def format_percent(value: Any, decimals: int = 1) -> str:
    try:
        val = float(value)
    except (TypeError, ValueError):
        return "n/a"
    text = _pt_br(val, decimals)
    return f"-{text}%" if val < 0 and text.strip("0,.") else f"{text}%"
