"""Compliance item model (permits, certificates, inspections)."""

from datetime import date, datetime
from typing import Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from ..config import COMPLIANCE_ITEM_TYPES


class ComplianceItem(BaseModel):
    """A dated compliance obligation tracked for alerts."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    item_type: str = Field(default="UCR", min_length=1)
    entity: Optional[str] = None  # Company, truck or driver the item covers
    identifier: Optional[str] = None  # Policy / permit / license number
    effective_date: Optional[date] = None
    expiration_date: Optional[date] = None
    status: Optional[str] = None
    document_url: Optional[str] = None
    notes: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("item_type")
    @classmethod
    def validate_item_type(cls, v: str) -> str:
        if v not in COMPLIANCE_ITEM_TYPES:
            raise ValueError(f"item_type must be one of: {', '.join(COMPLIANCE_ITEM_TYPES)}")
        return v

    @computed_field
    @property
    def days_left(self) -> Optional[int]:
        """Days until expiration (negative once expired)."""
        from ..analysis.expiry import days_until

        return days_until(self.expiration_date)

    @computed_field
    @property
    def badge(self) -> Optional[str]:
        """OK / Expiring / Expired, or None without an expiration date."""
        from ..analysis.expiry import expiry_badge

        badge = expiry_badge(self.expiration_date)
        return badge.value if badge else None
