"""
Profit Report Tests

Per-ticket profit lines, grouping keys, filters and totals.
"""

from datetime import date

from haulops.models import Ticket
from haulops.models.enums import GroupBy
from haulops.reports import build_profit_report, margin_pct
from haulops.reports.profit import ReportItem, UNASSIGNED_PARTNER, UNSPECIFIED_MATERIAL


def make_ticket(**overrides) -> Ticket:
    data = {
        "ticket_date": date(2024, 3, 4),
        "partner_id": "p-1",
        "partner_name": "Rocky Hauling",
        "material": "Gravel",
        "unit_type": "Load",
        "quantity": 1,
        "pay_rate": 100.0,
        "bill_rate": 150.0,
    }
    data.update(overrides)
    return Ticket(**data)


class TestReportItem:
    """Profit math for a single ticket"""

    def test_single_ticket_profit_and_margin(self):
        item = ReportItem.from_ticket(make_ticket())

        assert item.total_bill == 150.0
        assert item.total_pay == 100.0
        assert item.total_profit == 50.0
        assert item.margin_pct == 33.33, f"Expected 33.33% margin, got {item.margin_pct}"

    def test_quantity_multiplies_both_rates(self):
        item = ReportItem.from_ticket(make_ticket(quantity=2.5, pay_rate=20, bill_rate=30))

        assert item.total_bill == 75.0
        assert item.total_pay == 50.0
        assert item.total_profit == 25.0

    def test_margin_is_zero_when_nothing_billed(self):
        assert margin_pct(0, 0) == 0.0
        item = ReportItem.from_ticket(make_ticket(bill_rate=0, pay_rate=40))
        assert item.margin_pct == 0.0
        assert item.total_profit == -40.0


class TestGrouping:
    """Group keys, fallbacks and ordering"""

    def test_no_grouping_returns_items_only(self):
        report = build_profit_report([make_ticket()])

        assert report.groups is None
        assert len(report.items) == 1
        assert report.to_dict()["summary"]["groups"] is None

    def test_group_by_partner_uses_unassigned_fallback(self):
        tickets = [
            make_ticket(partner_name="Zeta Trucking"),
            make_ticket(partner_name=None, partner_id=None),
            make_ticket(partner_name="Zeta Trucking"),
        ]
        report = build_profit_report(tickets, group_by=GroupBy.PARTNER)

        keys = [g.key for g in report.groups]
        assert keys == sorted(keys), "Groups must be sorted by key"
        assert UNASSIGNED_PARTNER in keys

        zeta = next(g for g in report.groups if g.key == "Zeta Trucking")
        assert zeta.count == 2
        assert zeta.bill == 300.0
        assert zeta.profit == 100.0

    def test_group_by_material_uses_unspecified_fallback(self):
        report = build_profit_report(
            [make_ticket(material=None), make_ticket(material="Sand")],
            group_by="material",
        )
        assert [g.key for g in report.groups] == ["Sand", UNSPECIFIED_MATERIAL]

    def test_group_by_day(self):
        tickets = [
            make_ticket(ticket_date=date(2024, 3, 5)),
            make_ticket(ticket_date=date(2024, 3, 4)),
            make_ticket(ticket_date=date(2024, 3, 5)),
        ]
        report = build_profit_report(tickets, group_by=GroupBy.DAY)

        assert [(g.key, g.count) for g in report.groups] == [("2024-03-04", 1), ("2024-03-05", 2)]

    def test_totals_sum_all_items(self):
        tickets = [make_ticket(), make_ticket(quantity=3, pay_rate=10, bill_rate=20)]
        report = build_profit_report(tickets, group_by=GroupBy.PARTNER)

        assert report.totals.bill == 210.0
        assert report.totals.pay == 130.0
        assert report.totals.profit == 80.0
        assert report.totals.margin_pct == round(80 / 210 * 100, 2)


class TestFilters:
    """Date, partner, material and voided filters"""

    def test_date_bounds_are_inclusive(self):
        tickets = [
            make_ticket(ticket_date=date(2024, 3, 1)),
            make_ticket(ticket_date=date(2024, 3, 15)),
            make_ticket(ticket_date=date(2024, 3, 31)),
            make_ticket(ticket_date=date(2024, 4, 1)),
        ]
        report = build_profit_report(tickets, date_from=date(2024, 3, 1), date_to=date(2024, 3, 31))

        assert [it.date for it in report.items] == ["2024-03-01", "2024-03-15", "2024-03-31"]

    def test_material_match_is_case_insensitive(self):
        tickets = [make_ticket(material="Gravel"), make_ticket(material="Sand")]
        report = build_profit_report(tickets, material="gRAVEL")

        assert len(report.items) == 1
        assert report.items[0].material == "Gravel"

    def test_partner_filter(self):
        tickets = [make_ticket(partner_id="p-1"), make_ticket(partner_id="p-2")]
        report = build_profit_report(tickets, partner_id="p-2")
        assert len(report.items) == 1

    def test_voided_excluded_unless_requested(self):
        tickets = [make_ticket(), make_ticket(voided=True)]

        assert len(build_profit_report(tickets).items) == 1
        assert len(build_profit_report(tickets, include_voided=True).items) == 2
