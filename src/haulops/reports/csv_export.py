"""CSV export for report downloads."""

import re
from typing import Any, Iterable, Sequence

from ..models.enums import GroupBy
from .profit import ProfitReport

_NEEDS_QUOTING = re.compile(r'[",\n]')

GROUP_HEADER = ["group", "count", "bill", "pay", "profit", "margin_pct"]
ITEM_HEADER = [
    "date",
    "partner",
    "material",
    "unit",
    "qty",
    "pay_rate",
    "bill_rate",
    "total_pay",
    "total_bill",
    "total_profit",
    "margin_pct",
]


def escape_csv_value(value: Any) -> str:
    """Quote a value only when it holds a quote, comma or newline."""
    text = "" if value is None else str(value)
    if _NEEDS_QUOTING.search(text):
        return '"' + text.replace('"', '""') + '"'
    return text


def to_csv(rows: Iterable[Sequence[Any]]) -> str:
    """Join rows into CSV text (newline separated, no trailing newline)."""
    return "\n".join(",".join(escape_csv_value(v) for v in row) for row in rows)


def _money(value: float) -> str:
    return f"{value:.2f}"


def _quantity(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def profit_report_rows(report: ProfitReport) -> list[list[Any]]:
    """Header plus data rows for a profit report."""
    if report.groups is not None:
        rows: list[list[Any]] = [GROUP_HEADER]
        for g in report.groups:
            rows.append([
                g.key,
                g.count,
                _money(g.bill),
                _money(g.pay),
                _money(g.profit),
                _money(g.margin_pct),
            ])
        return rows

    rows = [ITEM_HEADER]
    for it in report.items:
        rows.append([
            it.date,
            it.partner_name or "",
            it.material or "",
            it.unit_type or "",
            _quantity(it.quantity),
            _money(it.pay_rate),
            _money(it.bill_rate),
            _money(it.total_pay),
            _money(it.total_bill),
            _money(it.total_profit),
            _money(it.margin_pct),
        ])
    return rows


def profit_report_csv(report: ProfitReport) -> str:
    """Render a profit report as CSV text."""
    return to_csv(profit_report_rows(report))


def profit_report_filename(group_by: str) -> str:
    """profit-report.csv, or profit-report-<group>.csv when grouped."""
    if not group_by or group_by == GroupBy.NONE.value:
        return "profit-report.csv"
    return f"profit-report-{group_by}.csv"
