"""
Invoice Engine

Totals for manually entered invoices, and invoice generation from
delivered haul tickets using the project's rate sheet.
"""

from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from ..config import PAYMENT_TERMS_DAYS, settings
from ..errors import InvalidRequestError
from ..models.enums import InvoiceStatus
from ..models.invoice import Invoice, LineItem
from ..models.ticket import Project, Ticket


def _cents(value: float) -> float:
    return round(value, 2)


# =============================================================================
# Line-item invoices
# =============================================================================

def calculate_line_item_totals(line_items: list[LineItem], tax_rate: float = 0.0) -> dict[str, float]:
    """
    Subtotal, tax and total for line items.

    tax_amount and total are rounded to cents; subtotal is the plain sum.
    """
    subtotal = sum(item.line_total for item in line_items)
    tax_amount = _cents(subtotal * (tax_rate or 0.0))
    total = _cents(subtotal + tax_amount)
    return {"subtotal": subtotal, "tax_amount": tax_amount, "total": total}


def apply_totals(invoice: Invoice) -> Invoice:
    """
    Recompute amounts on an invoice from its line items.

    Ticket invoices keep their fuel surcharge, waiting charges and
    retainage; total and net_payable are re-derived around them.
    """
    totals = calculate_line_item_totals(invoice.line_items, invoice.tax_rate)
    invoice.subtotal = totals["subtotal"]
    invoice.tax_amount = totals["tax_amount"]

    if invoice.ticket_ids or invoice.project_id:
        invoice.total = _cents(totals["total"] + invoice.fuel_surcharge + invoice.waiting_charges)
        invoice.net_payable = _cents(invoice.total - invoice.retainage_amount)
    else:
        invoice.total = totals["total"]
    return invoice


def format_invoice_number(prefix: str, sequence: int) -> str:
    """INV-000042 style numbers."""
    return f"{prefix}-{sequence:06d}"


def invoice_prefix(invoice_type: str) -> str:
    """QUO for quote documents, INV otherwise."""
    return "QUO" if invoice_type == "Quote" else "INV"


# =============================================================================
# Ticket invoices
# =============================================================================

@dataclass
class TicketTotals:
    """Breakdown of a ticket-based invoice."""

    subtotal: float
    fuel_surcharge: float
    waiting_charges: float
    retainage: float
    total_amount: float
    net_payable: float

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_due_date(payment_terms: Optional[str], issued: Optional[date] = None) -> date:
    """Due date from payment terms; unknown terms use the default."""
    issued = issued or datetime.utcnow().date()
    days = PAYMENT_TERMS_DAYS.get(payment_terms or "", settings.DEFAULT_PAYMENT_TERMS_DAYS)
    return issued + timedelta(days=days)


def calculate_fuel_surcharge(
    base_amount: float,
    base_price: Optional[float] = None,
    current_price: Optional[float] = None,
) -> float:
    """Surcharge proportional to the fuel price increase over base."""
    base_price = settings.FUEL_BASE_PRICE if base_price is None else base_price
    current_price = settings.FUEL_CURRENT_PRICE if current_price is None else current_price
    if current_price <= base_price:
        return 0.0
    surcharge_percent = (current_price - base_price) / base_price
    return _cents(base_amount * surcharge_percent)


def ticket_charge(ticket: Ticket, project: Project) -> float:
    """Haul charge for one ticket: per load, else per ton, else per yard."""
    if project.rate_per_load:
        return project.rate_per_load
    if project.rate_per_ton and ticket.load_weight:
        return project.rate_per_ton * ticket.load_weight
    if project.rate_per_cy and ticket.cubic_yards:
        return project.rate_per_cy * ticket.cubic_yards
    if ticket.load_count:
        return ticket.load_count
    return 0.0


def calculate_ticket_totals(tickets: list[Ticket], project: Project) -> TicketTotals:
    """
    Invoice totals for a batch of tickets on one project.

    The minimum daily rate tops up the haul subtotal so that haul plus
    waiting charges reach it. Retainage is withheld from the total.
    """
    subtotal = 0.0
    waiting_charges = 0.0

    for ticket in tickets:
        subtotal += ticket_charge(ticket, project)
        if ticket.waiting_minutes and project.waiting_rate_per_minute:
            waiting_charges += ticket.waiting_minutes * project.waiting_rate_per_minute

    if project.min_daily_rate and subtotal + waiting_charges < project.min_daily_rate:
        subtotal = project.min_daily_rate - waiting_charges

    fuel_surcharge = calculate_fuel_surcharge(subtotal) if project.fuel_surcharge_applicable else 0.0
    total_amount = subtotal + fuel_surcharge + waiting_charges
    retainage = total_amount * project.retainage_percent / 100 if project.retainage_percent else 0.0
    net_payable = total_amount - retainage

    return TicketTotals(
        subtotal=_cents(subtotal),
        fuel_surcharge=_cents(fuel_surcharge),
        waiting_charges=_cents(waiting_charges),
        retainage=_cents(retainage),
        total_amount=_cents(total_amount),
        net_payable=_cents(net_payable),
    )


def build_invoice_from_tickets(
    tickets: list[Ticket],
    project: Project,
    invoice_number: str,
    issued: Optional[date] = None,
) -> Invoice:
    """
    Build (but do not save) an invoice for a batch of tickets.

    Raises:
        InvalidRequestError: No tickets, or tickets span projects/customers
    """
    if not tickets:
        raise InvalidRequestError("No tickets found for invoice generation")

    project_ids = {t.project_id for t in tickets}
    customer_ids = {t.customer_id for t in tickets}
    if None in project_ids or None in customer_ids:
        raise InvalidRequestError("Tickets must include project_id and customer_id")
    if len(project_ids) > 1 or len(customer_ids) > 1:
        raise InvalidRequestError("Tickets must belong to a single project and customer")
    if project.id not in project_ids:
        raise InvalidRequestError("Tickets do not belong to the given project")

    issued = issued or datetime.utcnow().date()
    totals = calculate_ticket_totals(tickets, project)

    line_items = [
        LineItem(
            description=f"Ticket {t.ticket_number or t.id} {t.material or ''}".strip(),
            quantity=1,
            unit_price=_cents(ticket_charge(t, project)),
        )
        for t in tickets
    ]

    haul_total = _cents(sum(item.line_total for item in line_items))
    if totals.subtotal > haul_total:
        line_items.append(LineItem(
            description="Minimum daily rate adjustment",
            quantity=1,
            unit_price=_cents(totals.subtotal - haul_total),
        ))

    return Invoice(
        invoice_number=invoice_number,
        company=project.customer_name,
        customer_id=project.customer_id,
        project_id=project.id,
        ticket_ids=[t.id for t in tickets],
        line_items=line_items,
        subtotal=totals.subtotal,
        fuel_surcharge=totals.fuel_surcharge,
        waiting_charges=totals.waiting_charges,
        retainage_amount=totals.retainage,
        total=totals.total_amount,
        net_payable=totals.net_payable,
        issued_date=issued,
        due_date=calculate_due_date(project.payment_terms, issued),
        terms=project.payment_terms,
        status=InvoiceStatus.SENT,
    )
