import pytest

from giro.aggregation import (
    collation_key,
    composite_key,
    compute_metrics,
    group_by,
    merge_detail,
    sort_by_size,
    sort_detail_rows,
)
from giro.standards.schemas import AggregatedBucket, CutRecord, SaleRecord


def _sale(**kwargs) -> SaleRecord:
    defaults = {"item_code": "A1", "quantity": 1.0, "total_value": 10.0, "sale_date": "2024-03-01"}
    defaults.update(kwargs)
    return SaleRecord(**defaults)


def _bucket(name: str) -> AggregatedBucket:
    return AggregatedBucket(group_name=name, value=1.0, item_count=1.0, stock_total=0.0)


def test_group_by_partitions_and_sums():
    sales = [
        _sale(store_name="Loja A", total_value=100.0, quantity=2, stock_on_hand=5),
        _sale(store_name="Loja B", total_value=300.0, quantity=1, stock_on_hand=1),
        _sale(store_name="Loja A", total_value=50.0, quantity=3, stock_on_hand=0),
    ]
    buckets = group_by(sales, "store_name")

    assert [b.group_name for b in buckets] == ["Loja B", "Loja A"]
    loja_a = buckets[1]
    assert loja_a.value == pytest.approx(150.0)
    assert loja_a.item_count == 5
    assert loja_a.stock_total == 5
    # Every record lands in exactly one bucket.
    assert sum(b.value for b in buckets) == pytest.approx(sum(s.total_value for s in sales))


@pytest.mark.parametrize("metric", ["total_value", "quantity"])
@pytest.mark.parametrize("field", ["store_name", "color", "size"])
def test_group_by_partitions_quantity_and_stock(field, metric):
    sales = [
        _sale(store_name="Loja A", color="Azul", size="M", quantity=2, stock_on_hand=1),
        _sale(store_name="Loja B", color="Azul", size="G", quantity=5, stock_on_hand=0),
        _sale(store_name="Loja A", color="Preto", size="M", quantity=-1, stock_on_hand=4),
        _sale(store_name="Loja C", color="Verde", size="U", quantity=3.5, stock_on_hand=2),
    ]
    buckets = group_by(sales, field, metric=metric)

    assert sum(b.item_count for b in buckets) == pytest.approx(sum(s.quantity for s in sales))
    assert sum(b.stock_total for b in buckets) == pytest.approx(sum(s.stock_on_hand for s in sales))
    assert sum(b.value for b in buckets) == pytest.approx(sum(getattr(s, metric) for s in sales))
    assert len({b.group_name for b in buckets}) == len(buckets)


def test_group_by_quantity_metric():
    sales = [
        _sale(color="Azul", total_value=500.0, quantity=1),
        _sale(color="Preto", total_value=10.0, quantity=7),
    ]
    buckets = group_by(sales, "color", metric="quantity")
    assert [(b.group_name, b.value) for b in buckets] == [("Preto", 7), ("Azul", 1)]


def test_group_by_ties_keep_first_seen_order():
    sales = [_sale(category=name, total_value=10.0) for name in ("Vestidos", "Blusas", "Calças")]
    assert [b.group_name for b in group_by(sales, "category")] == ["Vestidos", "Blusas", "Calças"]


def test_group_by_empty_input():
    assert group_by([], "store_name") == []


def test_group_by_rejects_unknown_field_and_metric():
    with pytest.raises(ValueError):
        group_by([_sale()], "price")
    with pytest.raises(ValueError):
        group_by([_sale()], "store_name", metric="stock_on_hand")


def test_sort_by_size_canonical_then_numeric_then_natural():
    names = ["T10", "GG", "P", "38", "M", "120", "T2", "34", "u", "Kids"]
    ordered = [b.group_name for b in sort_by_size([_bucket(n) for n in names])]
    assert ordered == ["P", "M", "GG", "u", "34", "38", "120", "Kids", "T2", "T10"]


def test_sort_by_size_is_stable_for_equal_keys():
    buckets = [AggregatedBucket("m", 1.0, 1.0, 0.0), AggregatedBucket("M", 2.0, 1.0, 0.0)]
    assert [b.value for b in sort_by_size(buckets)] == [1.0, 2.0]


def test_composite_key_is_case_and_space_insensitive():
    assert composite_key(" A1 ", "Azul", "m") == composite_key("a1", "AZUL", "M") == "a1|azul|m"


def test_merge_detail_sell_through():
    sales = [
        _sale(item_code="A1", color="Azul", size="M", quantity=3, total_value=90.0),
        _sale(item_code="a1", color="AZUL", size="m", quantity=2, total_value=60.0),
    ]
    cuts = [CutRecord(item_code="A1", color="Azul", size="M", quantity=10)]
    detail = merge_detail(sales, cuts)

    assert len(detail) == 1
    row = detail[0]
    assert row.composite_key == "a1|azul|m"
    assert row.item_code == "A1"
    assert row.sold_quantity == 5
    assert row.cut_quantity == 10
    assert row.revenue == pytest.approx(150.0)
    assert row.sell_through_percent == pytest.approx(50.0)


def test_merge_detail_cut_only_key():
    cuts = [CutRecord(item_code="Z9", color="Verde", size="G", quantity=4)]
    (row,) = merge_detail([], cuts)
    assert row.product_name == "Sem Venda"
    assert row.sold_quantity == 0
    assert row.revenue == 0
    assert row.sell_through_percent == 0


def test_merge_detail_without_cut_has_zero_percent():
    (row,) = merge_detail([_sale(quantity=4)])
    assert row.cut_quantity == 0
    assert row.sell_through_percent == 0


def test_merge_detail_allows_over_hundred_percent():
    sales = [_sale(item_code="B2", color="N/A", size="U", quantity=15)]
    cuts = [CutRecord(item_code="B2", quantity=10)]
    (row,) = merge_detail(sales, cuts)
    assert row.sell_through_percent == pytest.approx(150.0)


def test_merge_detail_covers_every_key_once_sorted_by_code():
    sales = [_sale(item_code="c3"), _sale(item_code="A1", size="G"), _sale(item_code="A1", size="P")]
    cuts = [CutRecord(item_code="b2", quantity=1), CutRecord(item_code="A1", size="G", quantity=2)]
    detail = merge_detail(sales, cuts)

    keys = [row.composite_key for row in detail]
    assert len(keys) == len(set(keys)) == 4
    assert [row.item_code for row in detail] == ["A1", "A1", "b2", "c3"]


def test_sort_detail_rows_numeric_and_text():
    sales = [
        _sale(item_code="B", total_value=5.0),
        _sale(item_code="a", total_value=50.0),
        _sale(item_code="C", total_value=20.0),
    ]
    detail = merge_detail(sales)

    assert [r.item_code for r in sort_detail_rows(detail)] == ["a", "C", "B"]
    assert [r.item_code for r in sort_detail_rows(detail, key="item_code", descending=False)] == ["a", "B", "C"]
    with pytest.raises(ValueError):
        sort_detail_rows(detail, key="margin")


def test_compute_metrics():
    sales = [
        _sale(store_name="Loja A", total_value=100.0, quantity=2, stock_on_hand=3),
        _sale(store_name="Loja B", total_value=250.0, quantity=1, stock_on_hand=4),
        _sale(store_name="Loja A", total_value=200.0, quantity=1, stock_on_hand=0),
    ]
    cuts = [CutRecord(item_code="A1", quantity=10), CutRecord(item_code="B2", quantity=5)]
    metrics = compute_metrics(sales, cuts)

    assert metrics.total_revenue == pytest.approx(550.0)
    assert metrics.total_items_sold == 4
    assert metrics.average_ticket == pytest.approx(550.0 / 3)
    assert metrics.top_store_by_revenue == "Loja A"
    assert metrics.total_stock == 7
    assert metrics.total_cut == 15
    assert metrics.sell_through_rate == pytest.approx(4 / 11 * 100)


def test_compute_metrics_empty():
    metrics = compute_metrics([])
    assert metrics.total_revenue == 0
    assert metrics.average_ticket == 0
    assert metrics.sell_through_rate == 0
    assert metrics.top_store_by_revenue == "N/A"


def test_top_store_first_seen_wins_ties_and_needs_positive_revenue():
    tied = [_sale(store_name="Loja B", total_value=10.0), _sale(store_name="Loja A", total_value=10.0)]
    assert compute_metrics(tied).top_store_by_revenue == "Loja B"

    quantity_only = [_sale(store_name="Loja A", total_value=0.0, quantity=3)]
    assert compute_metrics(quantity_only).top_store_by_revenue == "N/A"


def test_detail_order_ignores_accents_and_case():
    sales = [_sale(item_code=code) for code in ("F1", "É1", "e0", "Ação-2", "azul-1")]
    assert [row.item_code for row in merge_detail(sales)] == ["Ação-2", "azul-1", "e0", "É1", "F1"]

    detail = merge_detail(sales)
    ordered = sort_detail_rows(detail, key="item_code", descending=False)
    assert [row.item_code for row in ordered] == ["Ação-2", "azul-1", "e0", "É1", "F1"]


def test_collation_key():
    assert collation_key("Único") == collation_key("unico") == "unico"
    assert collation_key("É1") < collation_key("F1")


def test_size_natural_order_ignores_accents():
    ordered = [b.group_name for b in sort_by_size([_bucket(n) for n in ("Zíper", "Ébano", "Faixa")])]
    assert ordered == ["Ébano", "Faixa", "Zíper"]
