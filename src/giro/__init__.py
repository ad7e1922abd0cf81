"""
Giro: sell-through ingestion and aggregation for retail spreadsheet exports.

Sales and production-cut workbooks with loosely defined headers are decoded
into typed records, then grouped, merged on (code, color, size) and summarized
into the metrics used by the sell-through report.
"""

from .aggregation import compute_metrics, group_by, merge_detail, sort_by_size, sort_detail_rows
from .ingestion import assemble_records, ingest_cuts, ingest_cuts_file, ingest_sales, ingest_sales_file
from .ingestion_utils import WorkbookReadError

__all__ = [
    "assemble_records",
    "compute_metrics",
    "group_by",
    "ingest_cuts",
    "ingest_cuts_file",
    "ingest_sales",
    "ingest_sales_file",
    "merge_detail",
    "sort_by_size",
    "sort_detail_rows",
    "WorkbookReadError",
]
