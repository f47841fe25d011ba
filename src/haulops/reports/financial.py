"""
Financial Ops Summary

Receivables numbers for the finance dashboard: invoiced vs collected,
outstanding and overdue balances, AR aging and revenue by month.
"""

from collections import defaultdict
from datetime import date, datetime
from typing import Iterable, Optional

from ..models.enums import InvoiceStatus
from ..models.invoice import Invoice

AGING_BUCKETS = ["current", "1-30", "31-60", "61-90", "90+"]


def aging_bucket(days_past_due: int) -> str:
    """AR aging bucket for a number of days past due."""
    if days_past_due <= 0:
        return "current"
    if days_past_due <= 30:
        return "1-30"
    if days_past_due <= 60:
        return "31-60"
    if days_past_due <= 90:
        return "61-90"
    return "90+"


def summarize_invoices(invoices: Iterable[Invoice], today: Optional[date] = None) -> dict:
    """
    Build the financial ops summary.

    Quote documents and voided invoices are excluded from revenue.
    """
    today = today or datetime.utcnow().date()

    invoiced = 0.0
    collected = 0.0
    outstanding = 0.0
    overdue_amount = 0.0
    overdue_count = 0
    invoice_count = 0
    aging = {bucket: 0.0 for bucket in AGING_BUCKETS}
    by_month: dict[str, float] = defaultdict(float)

    for invoice in invoices:
        if invoice.invoice_type == "Quote" or invoice.status == InvoiceStatus.VOID:
            continue

        invoice_count += 1
        invoiced += invoice.total
        by_month[invoice.issued_date.strftime("%Y-%m")] += invoice.total

        if invoice.status == InvoiceStatus.PAID:
            collected += invoice.total
            continue

        outstanding += invoice.total
        days_late = invoice.days_past_due(today)
        aging[aging_bucket(days_late)] += invoice.total
        if days_late > 0:
            overdue_count += 1
            overdue_amount += invoice.total

    return {
        "invoice_count": invoice_count,
        "invoiced": round(invoiced, 2),
        "collected": round(collected, 2),
        "outstanding": round(outstanding, 2),
        "overdue_count": overdue_count,
        "overdue_amount": round(overdue_amount, 2),
        "collection_rate": round(collected / invoiced * 100, 2) if invoiced else 0.0,
        "aging": {bucket: round(amount, 2) for bucket, amount in aging.items()},
        "revenue_by_month": [
            {"month": month, "revenue": round(by_month[month], 2)}
            for month in sorted(by_month)
        ],
    }
