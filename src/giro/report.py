"""Sell-through report: ingest sales/cut workbooks and write a summary workbook.

Sheets written (in order):
  Resumo         headline metrics
  Lojas ...      one sheet per grouping (store, category, sub-category,
                 color, collection, model)
  Tamanhos       size grouping in garment-size order
  Detalhe        sale/cut merge per (code, color, size)
"""
from __future__ import annotations

import argparse
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from .aggregation import compute_metrics, group_by, merge_detail, sort_by_size, sort_detail_rows
from .common.config_validator import FormattingConfig, GiroConfig, build_layouts, load_and_validate_config
from .filters import SalesFilter, build_product_meta, filter_cuts, filter_options, filter_sales, month_bounds
from .formatters import format_currency, format_number, format_percent
from .ingestion import ingest_cuts_file, ingest_sales_file
from .ingestion_utils import WorkbookReadError, ensure_directory, load_config
from .logging_utils import end_phase_timer, get_logger, log_error, log_system_event, log_warning, start_phase_timer
from .standards.schemas import AggregatedBucket, CutRecord, Metrics, SaleRecord, records_to_frame


LOGGER_NAME = "giro"

GROUP_SHEETS = (
    ("Lojas", "store_name"),
    ("Categorias", "category"),
    ("Subcategorias", "sub_category"),
    ("Cores", "color"),
    ("Colecoes", "collection"),
    ("Modelos", "model"),
)

BUCKET_COLUMNS = {
    "group_name": "Grupo",
    "value": "Valor",
    "item_count": "Qtd. Vendida",
    "stock_total": "Estoque",
}

DETAIL_COLUMNS = {
    "item_code": "Código",
    "product_name": "Descrição",
    "color": "Cor",
    "size": "Tamanho",
    "cut_quantity": "Qtd. Cortada",
    "sold_quantity": "Qtd. Vendida",
    "revenue": "Faturado (R$)",
    "sell_through_percent": "% Giro (Venda/Corte)",
}


def buckets_to_frame(buckets: Sequence[AggregatedBucket], top_n: Optional[int] = None) -> pd.DataFrame:
    selected = list(buckets)[:top_n] if top_n else list(buckets)
    df = records_to_frame(selected)
    if df.empty:
        return df
    return df.rename(columns=BUCKET_COLUMNS)


def metrics_to_frame(metrics: Metrics) -> pd.DataFrame:
    """Two-column (Indicador, Valor) view of the headline metrics, pt-BR formatted."""
    rows = [
        ("Faturamento total", format_currency(metrics.total_revenue)),
        ("Itens vendidos", format_number(metrics.total_items_sold)),
        ("Ticket médio", format_currency(metrics.average_ticket)),
        ("Loja destaque", metrics.top_store_by_revenue),
        ("Estoque total", format_number(metrics.total_stock)),
        ("Total cortado", format_number(metrics.total_cut)),
        ("Sell-through (estoque)", format_percent(metrics.sell_through_rate)),
    ]
    return pd.DataFrame(rows, columns=["Indicador", "Valor"])


def build_report_frames(
    sales: Sequence[SaleRecord],
    cuts: Sequence[CutRecord],
    config: GiroConfig,
) -> Dict[str, pd.DataFrame]:
    """Compute every report sheet as a DataFrame, keyed by sheet name."""
    report_cfg = config.report
    frames: Dict[str, pd.DataFrame] = {"Resumo": metrics_to_frame(compute_metrics(sales, cuts))}

    for sheet, field in GROUP_SHEETS:
        frames[sheet] = buckets_to_frame(group_by(sales, field, report_cfg.metric), report_cfg.top_n)

    # Sizes keep every bucket so the size curve stays complete.
    frames["Tamanhos"] = buckets_to_frame(sort_by_size(group_by(sales, "size", report_cfg.metric)))

    detail = sort_detail_rows(merge_detail(sales, cuts), key=report_cfg.sort_key, descending=report_cfg.descending)
    detail_df = pd.DataFrame([asdict(row) for row in detail], columns=list(DETAIL_COLUMNS))
    frames["Detalhe"] = detail_df.rename(columns=DETAIL_COLUMNS)
    return frames


def _style_sheet(ws, formatting: FormattingConfig) -> None:
    header_fill = PatternFill(start_color=formatting.header_fill, end_color=formatting.header_fill, fill_type="solid")
    header_font = Font(bold=True, color=formatting.header_font_color)
    for cell in ws[1]:
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

    num_format = f"0.{'0' * formatting.precision}" if formatting.precision > 0 else "0"
    for row in ws.iter_rows(min_row=2):
        for cell in row:
            if isinstance(cell.value, (int, float)) and not isinstance(cell.value, bool):
                cell.number_format = num_format

    for col_idx, column in enumerate(ws.iter_cols(), start=1):
        width = max((len(str(c.value)) for c in column if c.value is not None), default=8)
        ws.column_dimensions[get_column_letter(col_idx)].width = min(width + 2, formatting.max_column_width)

    if ws.max_row >= 2:
        table_name = "".join(ch if ch.isalnum() else "_" for ch in ws.title) + "_Table"
        table = Table(displayName=table_name, ref=f"A1:{get_column_letter(ws.max_column)}{ws.max_row}")
        table.tableStyleInfo = TableStyleInfo(
            name=formatting.table_style,
            showFirstColumn=False,
            showLastColumn=False,
            showRowStripes=True,
            showColumnStripes=False,
        )
        ws.add_table(table)


def write_report(frames: Dict[str, pd.DataFrame], output_path: str | Path, formatting: FormattingConfig) -> Path:
    """Write report frames to an xlsx workbook, one styled sheet per frame."""
    out = Path(output_path)
    ensure_directory(out.parent)
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        for sheet, df in frames.items():
            if df.empty:
                pd.DataFrame({"Aviso": ["Sem dados"]}).to_excel(writer, sheet_name=sheet, index=False)
            else:
                df.to_excel(writer, sheet_name=sheet, index=False)
            _style_sheet(writer.sheets[sheet], formatting)
    return out


def build_arg_parser() -> argparse.ArgumentParser:
    """Create an argument parser for the report CLI."""

    parser = argparse.ArgumentParser(description="Sell-through report from sales and cut workbooks")
    parser.add_argument("--sales", required=True, help="Sales workbook (.xlsx, .xlsm or .xls)")
    parser.add_argument("--cuts", help="Optional cut/production workbook (.xlsx, .xlsm or .xls)")
    parser.add_argument("--config", help="Path to YAML configuration file")
    parser.add_argument("--output", help="Output workbook path (overrides paths.output)")
    parser.add_argument("--metric", choices=["total_value", "quantity"], help="Metric summed in group sheets")
    parser.add_argument("--store", help="Only this store")
    parser.add_argument("--category", help="Only this category")
    parser.add_argument("--collection", help="Only this collection")
    parser.add_argument("--start-month", help="First month (YYYY-MM), inclusive")
    parser.add_argument("--end-month", help="Last month (YYYY-MM), inclusive")
    parser.add_argument("--code", default="", help="Case-insensitive item code search")
    parser.add_argument("--sort-key", choices=list(DETAIL_COLUMNS), help="Detail sheet sort column")
    parser.add_argument("--ascending", action="store_true", help="Sort the detail sheet ascending")
    return parser


def _effective_config(args: argparse.Namespace) -> GiroConfig:
    raw = load_config(args.config) if args.config else {}
    config = load_and_validate_config(raw)
    report_updates = {}
    if args.metric:
        report_updates["metric"] = args.metric
    if args.sort_key:
        report_updates["sort_key"] = args.sort_key
    if args.ascending:
        report_updates["descending"] = False
    if report_updates:
        config = config.model_copy(update={"report": config.report.model_copy(update=report_updates)})
    return config


def run_report(args: argparse.Namespace) -> int:
    """Execute the report for parsed CLI arguments and return an exit code."""

    config = _effective_config(args)
    logger = get_logger(LOGGER_NAME, config.model_dump())
    sales_layout, cuts_layout = build_layouts(config)
    timings: Dict[str, float] = {}

    started = start_phase_timer("Ingestion")
    try:
        sales: List[SaleRecord] = ingest_sales_file(args.sales, layout=sales_layout)
        cuts: List[CutRecord] = ingest_cuts_file(args.cuts, layout=cuts_layout) if args.cuts else []
    except (WorkbookReadError, FileNotFoundError) as exc:
        log_error(logger, f"Ingestion failed: {exc}")
        return 2
    end_phase_timer("Ingestion", started, timings, logger)

    if not sales:
        log_warning(logger, f"No usable sales rows in {args.sales}")
        return 1

    first, last = month_bounds(sales)
    log_system_event(logger, f"Sales cover {first} to {last} ({len(sales)} records, {len(cuts)} cut records)")
    options = filter_options(sales)
    log_system_event(
        logger,
        f"Available filters: stores [{', '.join(options['stores'])}]; "
        f"categories [{', '.join(options['categories'])}]; "
        f"collections [{', '.join(options['collections'])}]",
    )

    flt = SalesFilter(
        store=args.store,
        category=args.category,
        collection=args.collection,
        start_month=args.start_month,
        end_month=args.end_month,
        code_search=args.code or "",
    )
    filtered_sales = filter_sales(sales, flt)
    filtered_cuts = list(filter_cuts(cuts, flt, build_product_meta(sales)))
    if not filtered_sales:
        log_warning(logger, "Filters removed every sales record; the report will only hold cut data")

    started = start_phase_timer("Aggregation")
    frames = build_report_frames(filtered_sales, filtered_cuts, config)
    end_phase_timer("Aggregation", started, timings, logger)

    output = write_report(frames, args.output or config.paths.output, config.report.formatting)
    log_system_event(logger, f"Report written to {output}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point for ``giro-report``."""

    parser = build_arg_parser()
    args = parser.parse_args(argv)
    return run_report(args)


if __name__ == "__main__":  # pragma: no cover - CLI guard
    sys.exit(main())
