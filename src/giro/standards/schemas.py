"""Canonical record types produced by ingestion and aggregation."""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Iterable, List

import pandas as pd


NO_SALE_PRODUCT = "Sem Venda"


@dataclass(frozen=True)
class SaleRecord:
    store_name: str = "Outros"
    item_code: str = ""
    category: str = "Outros"
    sub_category: str = "Outros"
    product_name: str = "Produto"
    color: str = "N/A"
    size: str = "U"
    model: str = "N/A"
    collection: str = "N/A"
    quantity: float = 0.0
    total_value: float = 0.0
    stock_on_hand: float = 0.0
    sale_date: str = ""


@dataclass(frozen=True)
class CutRecord:
    item_code: str = ""
    color: str = "N/A"
    size: str = "U"
    quantity: float = 0.0


@dataclass(frozen=True)
class AggregatedBucket:
    group_name: str
    value: float
    item_count: float
    stock_total: float


@dataclass(frozen=True)
class DetailRow:
    composite_key: str
    item_code: str
    product_name: str
    color: str
    size: str
    cut_quantity: float = 0.0
    sold_quantity: float = 0.0
    revenue: float = 0.0
    sell_through_percent: float = 0.0


@dataclass(frozen=True)
class Metrics:
    total_revenue: float
    total_items_sold: float
    average_ticket: float
    top_store_by_revenue: str
    total_stock: float
    total_cut: float
    sell_through_rate: float


SALE_FIELDS = tuple(f.name for f in fields(SaleRecord))
DETAIL_FIELDS = tuple(f.name for f in fields(DetailRow))


def records_to_frame(records: Iterable[Any]) -> pd.DataFrame:
    """Convert a sequence of record dataclasses into a DataFrame.

    Column order follows the dataclass field order. An empty input yields an
    empty frame without columns.
    """
    rows: List[Dict[str, Any]] = [asdict(r) for r in records]
    if not rows:
        return pd.DataFrame()
    return pd.DataFrame(rows, columns=list(rows[0].keys()))
