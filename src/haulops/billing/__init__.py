"""Invoice totals, numbering and ticket-based invoice generation."""

from .invoice_engine import (
    TicketTotals,
    apply_totals,
    build_invoice_from_tickets,
    calculate_due_date,
    calculate_fuel_surcharge,
    calculate_line_item_totals,
    calculate_ticket_totals,
    format_invoice_number,
    invoice_prefix,
)

__all__ = [
    "TicketTotals",
    "apply_totals",
    "build_invoice_from_tickets",
    "calculate_due_date",
    "calculate_fuel_surcharge",
    "calculate_line_item_totals",
    "calculate_ticket_totals",
    "format_invoice_number",
    "invoice_prefix",
]
