"""Aggregation engine over canonical sale and cut records.

All functions are pure: they accept already-filtered record sequences and
return new lists/objects, so callers may cache results keyed on their inputs.

- ``group_by``: buckets per field value, ordered by the summed metric
- ``sort_by_size``: garment-size ordering for buckets grouped by size
- ``merge_detail``: sale/cut merge on (code, color, size) with sell-through
- ``compute_metrics``: headline KPIs
"""
from __future__ import annotations

import re
import unicodedata
from typing import Dict, Iterable, List, Sequence, Tuple

from .ingestion_utils import normalize_str
from .standards.schemas import (
    DETAIL_FIELDS,
    NO_SALE_PRODUCT,
    SALE_FIELDS,
    AggregatedBucket,
    CutRecord,
    DetailRow,
    Metrics,
    SaleRecord,
)


METRIC_FIELDS = ("total_value", "quantity")

SIZE_ORDER: Tuple[str, ...] = (
    "RN", "PP", "P", "M", "G", "GG", "XG", "XGG", "XXG", "U", "UN", "ÚNICO",
    "34", "36", "38", "40", "42", "44", "46", "48", "50", "52", "54",
)
_SIZE_RANK = {name: rank for rank, name in enumerate(SIZE_ORDER)}
_LEADING_INT_RX = re.compile(r"^\s*[-+]?\d+")
_DIGIT_RUN_RX = re.compile(r"(\d+)")


def group_by(
    records: Iterable[SaleRecord],
    field: str,
    metric: str = "total_value",
) -> List[AggregatedBucket]:
    """Sum ``metric``, quantity and stock per distinct ``field`` value.

    Buckets are sorted by value, highest first; equal values keep the order
    in which their group was first seen.
    """
    if field not in SALE_FIELDS:
        raise ValueError(f"Unknown grouping field: {field}")
    if metric not in METRIC_FIELDS:
        raise ValueError(f"Metric must be one of {METRIC_FIELDS}, got {metric!r}")

    totals: Dict[str, List[float]] = {}
    for record in records:
        group = str(getattr(record, field))
        acc = totals.setdefault(group, [0.0, 0.0, 0.0])
        acc[0] += getattr(record, metric)
        acc[1] += record.quantity
        acc[2] += record.stock_on_hand

    buckets = [
        AggregatedBucket(group_name=name, value=value, item_count=count, stock_total=stock)
        for name, (value, count, stock) in totals.items()
    ]
    buckets.sort(key=lambda b: b.value, reverse=True)
    return buckets


def collation_key(text: str) -> str:
    """Accent- and case-insensitive sort key: "É1" sorts with "e1", before "F1"."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


def _natural_key(name: str) -> Tuple:
    # Digit runs compared as numbers: "T2" < "T10".
    parts = _DIGIT_RUN_RX.split(collation_key(name))
    return tuple((0, int(p), "") if p.isdigit() else (1, 0, p) for p in parts if p != "")


def _size_sort_key(bucket: AggregatedBucket) -> Tuple:
    name = bucket.group_name.upper()
    if name in _SIZE_RANK:
        return (0, _SIZE_RANK[name], ())
    match = _LEADING_INT_RX.match(name)
    if match:
        return (1, int(match.group(0)), ())
    return (2, 0, _natural_key(bucket.group_name))


def sort_by_size(buckets: Sequence[AggregatedBucket]) -> List[AggregatedBucket]:
    """Order size buckets: canonical sizes, then other integers, then the rest."""
    return sorted(buckets, key=_size_sort_key)


def composite_key(item_code: str, color: str, size: str) -> str:
    return f"{normalize_str(item_code)}|{normalize_str(color)}|{normalize_str(size)}"


def _sell_through(sold: float, cut: float) -> float:
    return (sold / cut) * 100 if cut > 0 else 0.0


def merge_detail(
    sales: Iterable[SaleRecord],
    cuts: Iterable[CutRecord] = (),
) -> List[DetailRow]:
    """Merge sales and cuts into one row per (code, color, size).

    Display fields come from the first record seen for a key. Keys that only
    appear in the cut data get the ``Sem Venda`` product placeholder.
    """
    rows: Dict[str, dict] = {}

    for sale in sales:
        key = composite_key(sale.item_code, sale.color, sale.size)
        entry = rows.get(key)
        if entry is None:
            entry = rows[key] = {
                "composite_key": key,
                "item_code": sale.item_code,
                "product_name": sale.product_name,
                "color": sale.color,
                "size": sale.size,
                "cut_quantity": 0.0,
                "sold_quantity": 0.0,
                "revenue": 0.0,
            }
        entry["sold_quantity"] += sale.quantity
        entry["revenue"] += sale.total_value

    for cut in cuts:
        key = composite_key(cut.item_code, cut.color, cut.size)
        entry = rows.get(key)
        if entry is None:
            rows[key] = {
                "composite_key": key,
                "item_code": cut.item_code,
                "product_name": NO_SALE_PRODUCT,
                "color": cut.color,
                "size": cut.size,
                "cut_quantity": cut.quantity,
                "sold_quantity": 0.0,
                "revenue": 0.0,
            }
        else:
            entry["cut_quantity"] += cut.quantity

    detail = [
        DetailRow(**entry, sell_through_percent=_sell_through(entry["sold_quantity"], entry["cut_quantity"]))
        for entry in rows.values()
    ]
    detail.sort(key=lambda row: collation_key(row.item_code))
    return detail


def sort_detail_rows(
    rows: Sequence[DetailRow],
    key: str = "revenue",
    descending: bool = True,
) -> List[DetailRow]:
    """Sort detail rows by one column: numbers numerically, text ignoring case and accents."""
    if key not in DETAIL_FIELDS:
        raise ValueError(f"Unknown detail sort key: {key}")

    def _value(row: DetailRow):
        value = getattr(row, key)
        return collation_key(value) if isinstance(value, str) else value

    return sorted(rows, key=_value, reverse=descending)


def compute_metrics(
    sales: Sequence[SaleRecord],
    cuts: Iterable[CutRecord] = (),
) -> Metrics:
    """Headline KPIs over filtered sales and cuts.

    ``sell_through_rate`` is stock based: sold / (sold + stock) * 100. It is
    a different ratio from the cut-based ``DetailRow.sell_through_percent``.
    """
    total_revenue = sum(s.total_value for s in sales)
    total_items = sum(s.quantity for s in sales)
    total_stock = sum(s.stock_on_hand for s in sales)
    total_cut = sum(c.quantity for c in cuts)

    available = total_items + total_stock
    sell_through_rate = (total_items / available) * 100 if available > 0 else 0.0

    revenue_by_store: Dict[str, float] = {}
    for sale in sales:
        revenue_by_store[sale.store_name] = revenue_by_store.get(sale.store_name, 0.0) + sale.total_value

    top_store = "N/A"
    best = 0.0
    for store, revenue in revenue_by_store.items():
        if revenue > best:
            best = revenue
            top_store = store

    return Metrics(
        total_revenue=total_revenue,
        total_items_sold=total_items,
        average_ticket=total_revenue / len(sales) if len(sales) > 0 else 0.0,
        top_store_by_revenue=top_store,
        total_stock=total_stock,
        total_cut=total_cut,
        sell_through_rate=sell_through_rate,
    )
