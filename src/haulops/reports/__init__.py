"""Reporting: profit reports, CSV export and the financial ops summary."""

from .profit import ProfitReport, build_profit_report, margin_pct
from .csv_export import escape_csv_value, profit_report_csv, profit_report_filename, to_csv
from .financial import aging_bucket, summarize_invoices

__all__ = [
    "ProfitReport",
    "build_profit_report",
    "margin_pct",
    "escape_csv_value",
    "profit_report_csv",
    "profit_report_filename",
    "to_csv",
    "aging_bucket",
    "summarize_invoices",
]
