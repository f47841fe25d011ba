"""
Financial Ops Tests

Receivables summary: collected vs outstanding, overdue and aging.
"""

from datetime import date, timedelta

from haulops.models import Invoice
from haulops.reports import aging_bucket, summarize_invoices

TODAY = date(2024, 7, 1)


def make_invoice(total: float, status: str = "Sent", due_in: int = 30, **overrides) -> Invoice:
    data = {
        "company": "Granite Paving",
        "total": total,
        "status": status,
        "issued_date": TODAY - timedelta(days=10),
        "due_date": TODAY + timedelta(days=due_in),
    }
    data.update(overrides)
    return Invoice(**data)


class TestAgingBuckets:
    def test_bucket_edges(self):
        assert aging_bucket(0) == "current"
        assert aging_bucket(1) == "1-30"
        assert aging_bucket(30) == "1-30"
        assert aging_bucket(31) == "31-60"
        assert aging_bucket(90) == "61-90"
        assert aging_bucket(91) == "90+"


class TestSummary:
    """summarize_invoices"""

    def test_collected_outstanding_and_overdue(self):
        invoices = [
            make_invoice(1000, status="Paid"),
            make_invoice(500),
            make_invoice(250, due_in=-45),
        ]
        summary = summarize_invoices(invoices, today=TODAY)

        assert summary["invoice_count"] == 3
        assert summary["invoiced"] == 1750.0
        assert summary["collected"] == 1000.0
        assert summary["outstanding"] == 750.0
        assert summary["overdue_count"] == 1
        assert summary["overdue_amount"] == 250.0
        assert summary["collection_rate"] == round(1000 / 1750 * 100, 2)
        assert summary["aging"]["current"] == 500.0
        assert summary["aging"]["31-60"] == 250.0

    def test_quotes_and_void_invoices_are_ignored(self):
        invoices = [
            make_invoice(900, invoice_type="Quote"),
            make_invoice(300, status="Void"),
            make_invoice(100),
        ]
        summary = summarize_invoices(invoices, today=TODAY)

        assert summary["invoice_count"] == 1
        assert summary["invoiced"] == 100.0

    def test_revenue_by_month_is_sorted(self):
        invoices = [
            make_invoice(200, issued_date=date(2024, 6, 3)),
            make_invoice(100, issued_date=date(2024, 5, 20)),
            make_invoice(50, issued_date=date(2024, 6, 28)),
        ]
        summary = summarize_invoices(invoices, today=TODAY)

        assert summary["revenue_by_month"] == [
            {"month": "2024-05", "revenue": 100.0},
            {"month": "2024-06", "revenue": 250.0},
        ]

    def test_empty(self):
        summary = summarize_invoices([], today=TODAY)
        assert summary["collection_rate"] == 0.0
        assert summary["revenue_by_month"] == []
