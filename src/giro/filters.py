from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .standards.schemas import CutRecord, SaleRecord


ALL = "all"


@dataclass(frozen=True)
class SalesFilter:
    store: Optional[str] = None
    category: Optional[str] = None
    collection: Optional[str] = None
    start_month: Optional[str] = None
    end_month: Optional[str] = None
    code_search: str = ""

    @property
    def search_term(self) -> str:
        return (self.code_search or "").strip().lower()


def _unrestricted(choice: Optional[str]) -> bool:
    return choice is None or choice == "" or choice == ALL


def _matches(choice: Optional[str], value: str) -> bool:
    return _unrestricted(choice) or value == choice


def filter_sales(records: Iterable[SaleRecord], flt: SalesFilter) -> List[SaleRecord]:
    """Apply store/category/collection, month range and code search to sales.

    Month bounds are inclusive: ``2024-03`` to ``2024-05`` keeps every date
    from 2024-03-01 through 2024-05-31.
    """
    term = flt.search_term
    lower = f"{flt.start_month}-01" if flt.start_month else None
    upper = f"{flt.end_month}-31" if flt.end_month else None

    out: List[SaleRecord] = []
    for record in records:
        if not _matches(flt.store, record.store_name):
            continue
        if not _matches(flt.category, record.category):
            continue
        if not _matches(flt.collection, record.collection):
            continue
        if lower and record.sale_date < lower:
            continue
        if upper and record.sale_date > upper:
            continue
        if term and term not in record.item_code.lower():
            continue
        out.append(record)
    return out


def build_product_meta(sales: Iterable[SaleRecord]) -> Dict[str, Tuple[str, str]]:
    """Map item code -> (category, collection) from the first sale of each code.

    Cut exports carry neither field, so cut filtering borrows them from sales.
    """
    meta: Dict[str, Tuple[str, str]] = {}
    for record in sales:
        meta.setdefault(record.item_code.strip(), (record.category, record.collection))
    return meta


def filter_cuts(
    cuts: Sequence[CutRecord],
    flt: SalesFilter,
    product_meta: Dict[str, Tuple[str, str]],
) -> Sequence[CutRecord]:
    """Apply the category/collection/code parts of ``flt`` to cut records.

    Store and month restrictions have no meaning for cuts and are ignored.
    """
    term = flt.search_term
    if _unrestricted(flt.category) and _unrestricted(flt.collection) and not term:
        return cuts

    out: List[CutRecord] = []
    for cut in cuts:
        code = cut.item_code.strip()
        category, collection = product_meta.get(code, ("Outros", "N/A"))
        if not _matches(flt.category, category):
            continue
        if not _matches(flt.collection, collection):
            continue
        if term and term not in code.lower():
            continue
        out.append(cut)
    return out


def month_bounds(records: Iterable[SaleRecord]) -> Tuple[str, str]:
    """Return the first and last ``YYYY-MM`` present, or ``("", "")``."""
    dates = sorted(r.sale_date for r in records if r.sale_date)
    if not dates:
        return "", ""
    return dates[0][:7], dates[-1][:7]


def filter_options(records: Iterable[SaleRecord]) -> Dict[str, List[str]]:
    """Sorted distinct stores, categories and collections for filter pickers."""
    stores, categories, collections = set(), set(), set()
    for record in records:
        stores.add(record.store_name)
        categories.add(record.category)
        collections.add(record.collection)
    return {
        "stores": sorted(stores),
        "categories": sorted(categories),
        "collections": sorted(collections),
    }
