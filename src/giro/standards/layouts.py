"""Layout descriptors for the two workbook flavours (sales and cuts).

A ``RecordLayout`` carries everything the shared ingestion pipeline needs to
know about one record type: the header keywords used to find the header row,
how each field is located and decoded, how rows become records, which records
are kept and whether the result is re-ordered.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from .schemas import CutRecord, SaleRecord


TEXT = "text"
NUMBER = "number"
DATE = "date"


@dataclass(frozen=True)
class FieldRule:
    """How one semantic field is found in a sheet and decoded.

    ``keywords`` is a tuple of tiers; each tier is tried in order against the
    header cells (substring match), then ``exact`` names, then ``fallback``.
    """

    name: str
    keywords: Tuple[Tuple[str, ...], ...] = ()
    exact: Tuple[str, ...] = ()
    fallback: Optional[int] = None
    kind: str = TEXT
    default: Any = ""


@dataclass(frozen=True)
class RecordLayout:
    name: str
    header_keywords: Tuple[str, ...]
    fields: Tuple[FieldRule, ...]
    build: Callable[[Dict[str, Any]], Any]
    is_valid: Callable[[Any], bool]
    sort_key: Optional[Callable[[Any], Any]] = None
    header_scan_rows: int = 10
    min_keyword_matches: int = 2

    def field(self, name: str) -> FieldRule:
        for rule in self.fields:
            if rule.name == name:
                return rule
        raise KeyError(f"Layout '{self.name}' has no field '{name}'")

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(rule.name for rule in self.fields)


CODE_KEYWORDS = ("código", "codigo", "referência", "referencia", "ref")


def _sale_is_valid(record: SaleRecord) -> bool:
    return record.sale_date != "" and (record.total_value > 0 or record.quantity > 0)


def _cut_is_valid(record: CutRecord) -> bool:
    return record.item_code != "" and record.quantity > 0


SALES_LAYOUT = RecordLayout(
    name="sales",
    header_keywords=(
        "loja", "filial", "categoria", "produto", "cor", "tamanho",
        "valor", "total", "qtd", "quant", "código", "codigo",
    ),
    fields=(
        FieldRule("store_name", keywords=(("loja", "filial"),), default="Outros"),
        FieldRule("item_code", keywords=(CODE_KEYWORDS,), fallback=2, default=""),
        FieldRule("category", keywords=(("categoria",),), default="Outros"),
        FieldRule("sub_category", keywords=(("sub", "grupo"),), default="Outros"),
        FieldRule("product_name", keywords=(("produto", "descricao", "descrição"),), fallback=3, default="Produto"),
        FieldRule("color", keywords=(("cor",),), fallback=4, default="N/A"),
        FieldRule("size", keywords=(("tamanho", "tam"),), fallback=5, default="U"),
        FieldRule("model", keywords=(("modelo",),), fallback=8, default="N/A"),
        FieldRule("collection", keywords=(("coleção", "colecao"),), fallback=6, default="N/A"),
        FieldRule(
            "quantity",
            keywords=(("quant", "qtde", "qtd", "peças", "pecas"),),
            exact=("total",),
            fallback=10,
            kind=NUMBER,
            default=0.0,
        ),
        FieldRule(
            "total_value",
            keywords=(
                ("líquido", "liquido", "venda líquida", "total líquido"),
                ("valor total", "venda"),
                ("valor",),
            ),
            fallback=14,
            kind=NUMBER,
            default=0.0,
        ),
        FieldRule(
            "stock_on_hand",
            keywords=(("estoque", "saldo", "disponivel", "disponível", "atual"),),
            kind=NUMBER,
            default=0.0,
        ),
        FieldRule(
            "sale_date",
            keywords=(("data", "emissao", "venda", "periodo", "mês"),),
            fallback=0,
            kind=DATE,
            default="",
        ),
    ),
    build=lambda values: SaleRecord(**values),
    is_valid=_sale_is_valid,
    sort_key=lambda record: record.sale_date,
)

CUTS_LAYOUT = RecordLayout(
    name="cuts",
    header_keywords=("produto", "referência", "codigo", "cor", "tamanho", "qtd", "cortada"),
    fields=(
        # No "produto" keyword: it matches the description column.
        FieldRule("item_code", keywords=(CODE_KEYWORDS,), fallback=0, default=""),
        FieldRule("color", keywords=(("cor",),), fallback=2, default="N/A"),
        FieldRule("size", keywords=(("tamanho", "tam"),), fallback=3, default="U"),
        FieldRule(
            "quantity",
            keywords=(("qtd", "quantidade", "total", "cortado", "corte"),),
            fallback=4,
            kind=NUMBER,
            default=0.0,
        ),
    ),
    build=lambda values: CutRecord(**values),
    is_valid=_cut_is_valid,
)
