"""Haul ticket and project models used for profit reports and billing."""

from datetime import date, datetime
from typing import Optional
import uuid

from pydantic import BaseModel, Field, computed_field


class Ticket(BaseModel):
    """
    A delivered haul ticket.

    quantity is in unit_type units (loads, tons, yards, hours); pay and
    bill rates are per unit.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    ticket_number: Optional[str] = None
    ticket_date: date

    # Who hauled it
    partner_id: Optional[str] = None
    partner_name: Optional[str] = None
    driver_name: Optional[str] = None
    truck_number: Optional[str] = None

    # What was hauled
    material: Optional[str] = None
    unit_type: Optional[str] = None
    quantity: float = Field(default=0.0, ge=0)
    pay_rate: float = Field(default=0.0, ge=0)
    bill_rate: float = Field(default=0.0, ge=0)

    # Billing inputs
    project_id: Optional[str] = None
    customer_id: Optional[str] = None
    load_weight: Optional[float] = None  # tons
    cubic_yards: Optional[float] = None
    load_count: Optional[float] = None
    waiting_minutes: Optional[float] = None

    voided: bool = False
    status: Optional[str] = "open"
    invoice_number: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @computed_field
    @property
    def total_bill(self) -> float:
        return round(self.quantity * self.bill_rate, 2)

    @computed_field
    @property
    def total_pay(self) -> float:
        return round(self.quantity * self.pay_rate, 2)


class Project(BaseModel):
    """A customer job with its billing rates."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(..., min_length=1)
    customer_id: str = Field(..., min_length=1)
    customer_name: str = Field(..., min_length=1)
    payment_terms: Optional[str] = "net_30"

    # Rates, first non-empty wins: per load, per ton, per cubic yard
    rate_per_load: Optional[float] = None
    rate_per_ton: Optional[float] = None
    rate_per_cy: Optional[float] = None
    min_daily_rate: Optional[float] = None
    waiting_rate_per_minute: Optional[float] = None
    fuel_surcharge_applicable: bool = False
    retainage_percent: Optional[float] = Field(default=None, ge=0, le=100)

    created_at: datetime = Field(default_factory=datetime.utcnow)
