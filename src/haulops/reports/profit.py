"""
Profit Report

Turns haul tickets into per-ticket profit lines, optional groups
(partner, material, day) and overall totals.
"""

from collections import OrderedDict
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Iterable, Optional

from ..models.enums import GroupBy
from ..models.ticket import Ticket

UNASSIGNED_PARTNER = "Unassigned"
UNSPECIFIED_MATERIAL = "Unspecified"


def margin_pct(profit: float, bill: float) -> float:
    """Profit as a percentage of bill, 0 when nothing was billed."""
    if not bill:
        return 0.0
    return round(profit / bill * 100, 2)


@dataclass
class ReportItem:
    """Profit line for a single ticket."""

    id: str
    date: str
    partner_name: Optional[str]
    material: Optional[str]
    unit_type: Optional[str]
    quantity: float
    pay_rate: float
    bill_rate: float
    total_pay: float
    total_bill: float
    total_profit: float
    margin_pct: float
    voided: bool
    status: Optional[str]

    @classmethod
    def from_ticket(cls, ticket: Ticket) -> "ReportItem":
        total_bill = round(ticket.quantity * ticket.bill_rate, 2)
        total_pay = round(ticket.quantity * ticket.pay_rate, 2)
        total_profit = round(total_bill - total_pay, 2)
        return cls(
            id=ticket.id,
            date=ticket.ticket_date.isoformat(),
            partner_name=ticket.partner_name,
            material=ticket.material,
            unit_type=ticket.unit_type,
            quantity=ticket.quantity,
            pay_rate=ticket.pay_rate,
            bill_rate=ticket.bill_rate,
            total_pay=total_pay,
            total_bill=total_bill,
            total_profit=total_profit,
            margin_pct=margin_pct(total_profit, total_bill),
            voided=ticket.voided,
            status=ticket.status,
        )


@dataclass
class GroupRow:
    """Aggregated profit for one group key."""

    key: str
    count: int = 0
    bill: float = 0.0
    pay: float = 0.0
    profit: float = 0.0
    margin_pct: float = 0.0

    def add(self, item: ReportItem) -> None:
        self.count += 1
        self.bill += item.total_bill
        self.pay += item.total_pay
        self.profit += item.total_profit

    def finalize(self) -> "GroupRow":
        self.bill = round(self.bill, 2)
        self.pay = round(self.pay, 2)
        self.profit = round(self.profit, 2)
        self.margin_pct = margin_pct(self.profit, self.bill)
        return self


@dataclass
class Totals:
    """Report-wide totals."""

    bill: float = 0.0
    pay: float = 0.0
    profit: float = 0.0
    margin_pct: float = 0.0


@dataclass
class ProfitReport:
    """Result of running a profit report."""

    items: list[ReportItem] = field(default_factory=list)
    groups: Optional[list[GroupRow]] = None
    totals: Totals = field(default_factory=Totals)
    group_by: str = GroupBy.NONE.value

    def to_dict(self) -> dict:
        """Convert to the API response shape."""
        return {
            "items": [asdict(item) for item in self.items],
            "summary": {
                "totals": asdict(self.totals),
                "groups": [asdict(g) for g in self.groups] if self.groups is not None else None,
            },
            "group_by": self.group_by,
        }


def group_key(item: ReportItem, group_by: GroupBy) -> str:
    """Key an item belongs to for the given grouping."""
    if group_by == GroupBy.PARTNER:
        return item.partner_name or UNASSIGNED_PARTNER
    if group_by == GroupBy.MATERIAL:
        return item.material or UNSPECIFIED_MATERIAL
    return item.date


def filter_tickets(
    tickets: Iterable[Ticket],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    partner_id: Optional[str] = None,
    material: Optional[str] = None,
    include_voided: bool = False,
) -> list[Ticket]:
    """Apply report filters. Date bounds are inclusive."""
    wanted_material = material.strip().lower() if material else None

    selected = []
    for ticket in tickets:
        if ticket.voided and not include_voided:
            continue
        if date_from and ticket.ticket_date < date_from:
            continue
        if date_to and ticket.ticket_date > date_to:
            continue
        if partner_id and ticket.partner_id != partner_id:
            continue
        if wanted_material and (ticket.material or "").strip().lower() != wanted_material:
            continue
        selected.append(ticket)
    return selected


def build_profit_report(
    tickets: Iterable[Ticket],
    group_by: GroupBy = GroupBy.NONE,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    partner_id: Optional[str] = None,
    material: Optional[str] = None,
    include_voided: bool = False,
) -> ProfitReport:
    """
    Build a profit report.

    Args:
        tickets: Tickets to report on
        group_by: none, partner, material or day
        date_from: Earliest ticket date (inclusive)
        date_to: Latest ticket date (inclusive)
        partner_id: Only tickets hauled by this partner
        material: Only this material (case-insensitive)
        include_voided: Include voided tickets

    Returns:
        ProfitReport with items sorted by date, groups sorted by key
    """
    group_by = GroupBy(group_by)
    selected = filter_tickets(
        tickets,
        date_from=date_from,
        date_to=date_to,
        partner_id=partner_id,
        material=material,
        include_voided=include_voided,
    )
    items = sorted(
        (ReportItem.from_ticket(t) for t in selected),
        key=lambda it: (it.date, it.partner_name or "", it.id),
    )

    totals = Totals()
    for item in items:
        totals.bill += item.total_bill
        totals.pay += item.total_pay
        totals.profit += item.total_profit
    totals.bill = round(totals.bill, 2)
    totals.pay = round(totals.pay, 2)
    totals.profit = round(totals.profit, 2)
    totals.margin_pct = margin_pct(totals.profit, totals.bill)

    groups = None
    if group_by != GroupBy.NONE:
        buckets: "OrderedDict[str, GroupRow]" = OrderedDict()
        for item in items:
            key = group_key(item, group_by)
            buckets.setdefault(key, GroupRow(key=key)).add(item)
        groups = [buckets[key].finalize() for key in sorted(buckets)]

    return ProfitReport(items=items, groups=groups, totals=totals, group_by=group_by.value)
