"""
Billing Service - Quotes, invoices and the money reports.

Wraps the pure billing/report functions with repository lookups,
foreign-key checks and invoice numbering.
"""

from datetime import date
from typing import Any, Optional

from ..billing import (
    apply_totals,
    build_invoice_from_tickets,
    calculate_due_date,
    invoice_prefix,
)
from ..config import PAYMENT_TERMS_DAYS
from ..db import Repository, apply_updates
from ..errors import InvalidRequestError, NotFoundError
from ..log import get_logger
from ..models.enums import GroupBy, InvoiceStatus
from ..models.invoice import Invoice
from ..models.quote import Quote
from ..reports import ProfitReport, build_profit_report, summarize_invoices

logger = get_logger(__name__)


class BillingService:
    """Quote, invoice and report operations on top of the repository."""

    def __init__(self, repository: Repository):
        self.repository = repository

    # =========================================================================
    # Quotes
    # =========================================================================

    def _material_rate(self, rate_id: str):
        rate = self.repository.get_material_rate(rate_id)
        if rate is None:
            raise InvalidRequestError(f"Material rate not found: {rate_id}")
        return rate

    def create_quote(self, quote: Quote) -> Quote:
        """
        Save a new quote.

        Raises:
            InvalidRequestError: material_rate_id points nowhere
        """
        if quote.material_rate_id:
            rate = self._material_rate(quote.material_rate_id)
            if not quote.material:
                quote.material = rate.material_name
        quote.recalculate_profit()
        self.repository.save_quote(quote)
        logger.info("quote_created", quote_id=quote.id, company=quote.company, rate=quote.rate)
        return quote

    def update_quote(self, quote_id: str, changes: dict[str, Any]) -> Quote:
        """
        Patch a quote and keep total_profit in sync.

        Choosing a different material rate refills material, billing type
        and both rates before the rest of the patch is applied.
        """
        quote = self.repository.require_quote(quote_id)

        new_rate_id = changes.get("material_rate_id")
        if new_rate_id and new_rate_id != quote.material_rate_id:
            quote.apply_material_rate(self._material_rate(new_rate_id))
            changes = {k: v for k, v in changes.items() if k != "material_rate_id"}

        quote = apply_updates(quote, changes)
        quote.recalculate_profit()
        self.repository.save_quote(quote)
        logger.info("quote_updated", quote_id=quote.id, fields=sorted(changes))
        return quote

    def quote_email_draft(self, quote_id: str, sender_name: str = "Dispatch") -> dict[str, str]:
        """Email draft for a saved quote."""
        return self.repository.require_quote(quote_id).to_email_draft(sender_name=sender_name)

    # =========================================================================
    # Invoices
    # =========================================================================

    def _check_references(self, invoice: Invoice) -> None:
        if invoice.factoring_company_id and not self.repository.get_factoring_company(invoice.factoring_company_id):
            raise InvalidRequestError(f"Factoring company not found: {invoice.factoring_company_id}")
        if invoice.quote_id and not self.repository.get_quote(invoice.quote_id):
            raise InvalidRequestError(f"Quote not found: {invoice.quote_id}")

    def create_invoice(self, invoice: Invoice) -> Invoice:
        """
        Number, total and save a manually entered invoice or quote document.

        Raises:
            InvalidRequestError: Unknown factoring company or quote
        """
        self._check_references(invoice)

        if not invoice.invoice_number:
            invoice.invoice_number = self.repository.next_invoice_number(invoice_prefix(invoice.invoice_type))
        apply_totals(invoice)

        if invoice.due_date is None and invoice.terms in PAYMENT_TERMS_DAYS:
            invoice.due_date = calculate_due_date(invoice.terms, invoice.issued_date)

        self.repository.save_invoice(invoice)
        logger.info(
            "invoice_created",
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            total=invoice.total,
        )
        return invoice

    def update_invoice(self, invoice_id: str, changes: dict[str, Any]) -> Invoice:
        """Patch an invoice, recomputing totals when lines or tax change."""
        invoice = self.repository.require_invoice(invoice_id)
        was_paid = invoice.status == InvoiceStatus.PAID

        invoice = apply_updates(invoice, changes)
        self._check_references(invoice)

        if "line_items" in changes or "tax_rate" in changes:
            apply_totals(invoice)
        if invoice.status == InvoiceStatus.PAID and not was_paid:
            invoice.mark_paid()

        self.repository.save_invoice(invoice)
        logger.info("invoice_updated", invoice_id=invoice.id, fields=sorted(changes))
        return invoice

    def invoice_from_tickets(self, ticket_ids: list[str], issued: Optional[date] = None) -> Invoice:
        """
        Generate an invoice for delivered tickets and mark them invoiced.

        Raises:
            InvalidRequestError: Tickets missing, already invoiced, or mixed projects
            NotFoundError: The tickets' project does not exist
        """
        if not ticket_ids:
            raise InvalidRequestError("ticket_ids is required")

        tickets = self.repository.get_tickets(ticket_ids)
        missing = set(ticket_ids) - {t.id for t in tickets}
        if missing:
            raise InvalidRequestError(f"Tickets not found: {', '.join(sorted(missing))}")

        invoiced = [t.id for t in tickets if t.invoice_number]
        if invoiced:
            raise InvalidRequestError(f"Tickets already invoiced: {', '.join(sorted(invoiced))}")

        project_ids = {t.project_id for t in tickets if t.project_id}
        if len(project_ids) != 1:
            raise InvalidRequestError("Tickets must belong to a single project and customer")
        project = self.repository.require_project(project_ids.pop())

        invoice_number = self.repository.next_invoice_number("INV")
        invoice = build_invoice_from_tickets(tickets, project, invoice_number, issued=issued)
        self.repository.save_ticket_invoice(invoice, tickets)

        logger.info(
            "ticket_invoice_created",
            invoice_number=invoice.invoice_number,
            project_id=project.id,
            ticket_count=len(tickets),
            total=invoice.total,
        )
        return invoice

    def pay_invoice(self, invoice_id: str, customer_id: str) -> Invoice:
        """
        Mark an invoice paid from the customer portal.

        Raises:
            NotFoundError: No such invoice for this customer
            InvalidRequestError: Invoice is void
        """
        invoice = self.repository.require_invoice(invoice_id)
        if invoice.customer_id != customer_id:
            raise NotFoundError("Invoice", invoice_id)
        if invoice.status == InvoiceStatus.VOID:
            raise InvalidRequestError("Void invoices cannot be paid")

        if invoice.status != InvoiceStatus.PAID:
            invoice.mark_paid()
            self.repository.save_invoice(invoice)
            logger.info("invoice_paid", invoice_id=invoice.id, total=invoice.total)
        return invoice

    # =========================================================================
    # Reports
    # =========================================================================

    def profit_report(
        self,
        group_by: GroupBy = GroupBy.NONE,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        partner_id: Optional[str] = None,
        material: Optional[str] = None,
        include_voided: bool = False,
    ) -> ProfitReport:
        """Profit report over stored tickets."""
        tickets = self.repository.list_tickets(
            date_from=date_from,
            date_to=date_to,
            partner_id=partner_id,
            include_voided=include_voided,
        )
        return build_profit_report(
            tickets,
            group_by=group_by,
            date_from=date_from,
            date_to=date_to,
            partner_id=partner_id,
            material=material,
            include_voided=include_voided,
        )

    def financial_summary(self, today: Optional[date] = None) -> dict:
        """Receivables summary for the financial ops dashboard."""
        return summarize_invoices(self.repository.list_invoices(), today=today)
