"""Invoice model."""

from datetime import date, datetime
from typing import Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .enums import InvoiceStatus, InvoiceType


class LineItem(BaseModel):
    """Invoice line. amount wins over quantity * unit_price when given."""

    description: str = ""
    quantity: float = 0.0
    unit_price: float = 0.0
    amount: Optional[float] = None

    @property
    def line_total(self) -> float:
        if self.amount is not None:
            return float(self.amount)
        return float(self.quantity) * float(self.unit_price)


class Invoice(BaseModel):
    """
    Customer invoice (or quote document) with AR tracking.

    Ticket-generated invoices also carry the fuel surcharge, waiting
    charges and retainage breakdown.
    """

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    invoice_number: str = ""
    invoice_type: InvoiceType = InvoiceType.INVOICE
    quote_id: Optional[str] = None

    # Bill-to
    company: str = Field(..., min_length=1)
    customer_id: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    billing_address: Optional[str] = None

    # Amounts
    line_items: list[LineItem] = Field(default_factory=list)
    subtotal: float = 0.0
    tax_rate: float = Field(default=0.0, ge=0)
    tax_amount: float = 0.0
    total: float = 0.0

    # Ticket billing breakdown
    project_id: Optional[str] = None
    ticket_ids: list[str] = Field(default_factory=list)
    fuel_surcharge: float = 0.0
    waiting_charges: float = 0.0
    retainage_amount: float = 0.0
    net_payable: Optional[float] = None

    # Terms
    notes: Optional[str] = None
    terms: Optional[str] = None
    issued_date: date = Field(default_factory=lambda: datetime.utcnow().date())
    due_date: Optional[date] = None

    # Status
    status: InvoiceStatus = InvoiceStatus.DRAFT
    ar_status: str = "Open"
    factoring_company_id: Optional[str] = None
    paid_date: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @computed_field
    @property
    def is_open(self) -> bool:
        """Still collectible (not paid and not voided)."""
        return self.status not in (InvoiceStatus.PAID, InvoiceStatus.VOID)

    def days_past_due(self, today: Optional[date] = None) -> int:
        """Days past the due date; 0 when not yet due or no due date."""
        if not self.due_date:
            return 0
        today = today or datetime.utcnow().date()
        return max((today - self.due_date).days, 0)

    def mark_paid(self) -> None:
        """Record payment in full."""
        self.status = InvoiceStatus.PAID.value
        self.ar_status = "Closed"
        self.paid_date = datetime.utcnow()
        self.updated_at = datetime.utcnow()
