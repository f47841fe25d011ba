"""Factoring company model."""

from datetime import datetime
from typing import Optional
import uuid

from pydantic import BaseModel, Field


class FactoringCompany(BaseModel):
    """A factoring partner invoices can be assigned to."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(..., min_length=1)
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None

    # Terms (fractions, e.g. 0.95 advance, 0.03 fee)
    advance_rate: Optional[float] = Field(default=None, ge=0, le=1)
    fee_rate: Optional[float] = Field(default=None, ge=0, le=1)
    reserve_rate: Optional[float] = Field(default=None, ge=0, le=1)
    standard_days: Optional[int] = Field(default=None, ge=0)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def advance_on(self, invoice_total: float) -> float:
        """Cash advanced against an invoice, net of the factoring fee."""
        advance = invoice_total * (self.advance_rate or 0.0)
        fee = invoice_total * (self.fee_rate or 0.0)
        return round(advance - fee, 2)
