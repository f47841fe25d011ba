"""Customer portal load request model."""

from datetime import date, datetime
from typing import Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .enums import LoadRequestStatus


class Address(BaseModel):
    """Pickup or delivery address."""

    address: str = ""
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=2, max_length=2)
    zip_code: str = ""

    def __str__(self) -> str:
        return f"{self.city}, {self.state}"


class LoadRequest(BaseModel):
    """A shipment requested by a customer through the portal."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    customer_id: str = Field(..., min_length=1)
    origin: Address
    destination: Address
    pickup_date: date
    delivery_date: Optional[date] = None
    commodity: str = Field(..., min_length=1)
    weight: float = Field(default=0, ge=0)  # lbs
    equipment: str = Field(..., min_length=1)
    special_requirements: Optional[str] = None
    status: LoadRequestStatus = LoadRequestStatus.PENDING
    quoted_rate: Optional[float] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @computed_field
    @property
    def lane(self) -> str:
        """Lane string (e.g. 'TX-OK')."""
        return f"{self.origin.state.upper()}-{self.destination.state.upper()}"
