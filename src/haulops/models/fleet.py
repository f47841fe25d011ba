"""Fleet models: vehicles, service history and maintenance requests."""

from datetime import date, datetime
from typing import Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .enums import MaintenancePriority, MaintenanceStatus, VehicleStatus


class Vehicle(BaseModel):
    """A power unit in the fleet."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    truck_number: str = Field(..., min_length=1)
    vin: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(default=None, ge=1900, le=2100)
    license_plate: Optional[str] = None
    status: VehicleStatus = VehicleStatus.ACTIVE
    mileage: int = Field(default=0, ge=0)
    next_service_date: Optional[date] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @computed_field
    @property
    def display_name(self) -> str:
        """Truck number with year/make/model when known."""
        details = " ".join(str(p) for p in (self.year, self.make, self.model) if p)
        return f"{self.truck_number} ({details})" if details else self.truck_number


class MaintenanceRecord(BaseModel):
    """Completed service on a vehicle."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    vehicle_id: str
    service_type: str = Field(..., min_length=1)  # oil change, PM-A, brakes...
    service_date: date
    mileage: Optional[int] = Field(default=None, ge=0)
    cost: float = Field(default=0.0, ge=0)
    vendor: Optional[str] = None
    notes: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)


class MaintenanceRequest(BaseModel):
    """
    A repair request raised by a driver or generated from a DVIR defect.
    """

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    truck_number: str = Field(..., min_length=1)
    driver_name: str = ""
    driver_phone: Optional[str] = None
    issue_type: str = "General"
    priority: MaintenancePriority = MaintenancePriority.MEDIUM
    description: str = ""
    can_drive_safely: bool = True
    status: MaintenanceStatus = MaintenanceStatus.PENDING
    dvir_id: Optional[str] = None
    location: Optional[str] = None
    mileage: Optional[int] = None
    photos: list[str] = Field(default_factory=list)

    # Timestamps
    submitted_at: datetime = Field(default_factory=datetime.utcnow)
    acknowledged_at: Optional[datetime] = None
    scheduled_date: Optional[date] = None
    completed_at: Optional[datetime] = None

    @computed_field
    @property
    def hours_pending(self) -> float:
        """Hours since submission, frozen at completion."""
        end = self.completed_at or datetime.utcnow()
        return round((end - self.submitted_at).total_seconds() / 3600, 1)

    def update_status(self, status: MaintenanceStatus, scheduled_date: Optional[date] = None) -> None:
        """Move the request along and stamp the timestamps."""
        self.status = MaintenanceStatus(status).value
        self.acknowledged_at = datetime.utcnow()
        if scheduled_date:
            self.scheduled_date = scheduled_date
        if self.status == MaintenanceStatus.COMPLETED:
            self.completed_at = datetime.utcnow()
