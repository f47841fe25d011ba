"""Driver Vehicle Inspection Report models."""

from datetime import datetime
from typing import Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .enums import DVIRStatus, DefectSeverity, InspectionItemStatus, InspectionType


class InspectionItem(BaseModel):
    """One line of the inspection checklist."""

    model_config = ConfigDict(use_enum_values=True)

    category: str  # e.g. "Brakes", "Lights"
    item: str
    status: InspectionItemStatus = InspectionItemStatus.SATISFACTORY
    notes: Optional[str] = None
    photo_url: Optional[str] = None

    @property
    def is_defective(self) -> bool:
        return self.status == InspectionItemStatus.DEFECTIVE


class DVIRInspection(BaseModel):
    """
    A pre- or post-trip inspection submitted by a driver.
    """

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    driver_name: str = Field(..., min_length=1)
    truck_number: str = Field(..., min_length=1)
    odometer_reading: int = Field(default=0, ge=0)
    inspection_type: InspectionType
    location: str = ""
    inspection_items: list[InspectionItem] = Field(default_factory=list)
    overall_status: DVIRStatus = DVIRStatus.SATISFACTORY

    # Mechanic sign-off
    defects_corrected: bool = False
    mechanic_signature: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @computed_field
    @property
    def defect_count(self) -> int:
        """Number of items marked defective."""
        return len(self.defective_items())

    def defective_items(self) -> list[InspectionItem]:
        return [item for item in self.inspection_items if item.is_defective]


class DVIRDefect(BaseModel):
    """A defect recorded from a DVIR, tracked until corrected."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    dvir_id: str
    category: str
    item_description: str
    defect_notes: str = ""
    severity: DefectSeverity = DefectSeverity.MEDIUM
    photo_urls: list[str] = Field(default_factory=list)

    # Correction
    is_corrected: bool = False
    corrected_at: Optional[datetime] = None
    corrected_by: Optional[str] = None
    correction_notes: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)

    def mark_corrected(self, corrected_by: str, notes: str) -> None:
        """Record the mechanic's correction."""
        self.is_corrected = True
        self.corrected_at = datetime.utcnow()
        self.corrected_by = corrected_by
        self.correction_notes = notes
