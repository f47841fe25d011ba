"""Quoting models: material rate card and customer quotes."""

from datetime import datetime
from typing import Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from .enums import QuoteStatus


class MaterialRate(BaseModel):
    """Default bill/pay rates for a hauled material."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    material_name: str = Field(..., min_length=1)
    unit_type: str = "Load"  # Load, Ton, Yard, Hour
    default_bill_rate: float = Field(default=0.0, ge=0)
    default_pay_rate: float = Field(default=0.0, ge=0)
    active: bool = True

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @computed_field
    @property
    def default_margin(self) -> float:
        """Bill minus pay at the default rates."""
        return round(self.default_bill_rate - self.default_pay_rate, 2)


class Quote(BaseModel):
    """
    A customer quote.

    total_profit is rate minus pay_rate and is kept in sync whenever
    either rate changes.
    """

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    company: str = Field(..., min_length=1)
    contact_name: Optional[str] = None
    contact_email: str = Field(..., min_length=3)
    billing_type: str = Field(..., min_length=1)  # Load, Ton, Yard, Hour
    rate: float
    pay_rate: float = 0.0
    material: Optional[str] = None
    material_rate_id: Optional[str] = None
    notes: Optional[str] = None
    status: QuoteStatus = QuoteStatus.DRAFT
    total_profit: float = 0.0

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("rate", "pay_rate", mode="before")
    @classmethod
    def missing_rate_is_zero(cls, v: Optional[float]) -> float:
        return 0.0 if v is None else v

    def recalculate_profit(self) -> float:
        """Refresh total_profit from the current rates."""
        self.total_profit = round((self.rate or 0.0) - (self.pay_rate or 0.0), 2)
        return self.total_profit

    def apply_material_rate(self, material_rate: MaterialRate) -> None:
        """Fill material, billing type and rates from the rate card."""
        self.material_rate_id = material_rate.id
        self.material = material_rate.material_name
        self.billing_type = material_rate.unit_type
        self.rate = material_rate.default_bill_rate
        self.pay_rate = material_rate.default_pay_rate
        self.recalculate_profit()

    def to_email_draft(self, sender_name: str = "Dispatch") -> dict[str, str]:
        """Plain-text email draft for sending the quote."""
        greeting = f"Hi {self.contact_name}," if self.contact_name else "Hello,"
        lines = [
            greeting,
            "",
            f"Thank you for the opportunity to quote hauling for {self.company}.",
            "",
            f"Material: {self.material or 'As discussed'}",
            f"Rate: ${self.rate:,.2f} per {self.billing_type.lower()}",
        ]
        if self.notes:
            lines.append(f"Notes: {self.notes}")
        lines += [
            "",
            "Reply to this email to approve or with any questions.",
            "",
            "Thanks,",
            sender_name,
        ]
        return {
            "to": self.contact_email,
            "subject": f"Hauling quote for {self.company}",
            "body": "\n".join(lines),
        }
