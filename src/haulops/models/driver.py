"""Driver HR models: profiles, onboarding and onboarding documents."""

from datetime import date, datetime
from typing import Any, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .enums import DocumentStatus, DriverStatus, OnboardingStatus


class DriverProfile(BaseModel):
    """
    Driver personnel file.

    Tracks CDL and medical card expirations alongside contact and
    performance data.
    """

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(..., min_length=1)
    employee_id: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    # Address
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None  # 2-letter abbreviation
    zip: Optional[str] = None

    # Employment
    hire_date: Optional[date] = None
    status: DriverStatus = DriverStatus.ACTIVE
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None

    # Licensing
    cdl_number: Optional[str] = None
    cdl_class: Optional[str] = None  # A, B, C
    cdl_expiration: Optional[date] = None
    driver_license_state: Optional[str] = None
    medical_cert_expiration: Optional[date] = None
    endorsements: list[str] = Field(default_factory=list)  # H, N, T, X...

    # Performance
    safety_score: float = Field(default=100.0, ge=0, le=100)
    total_miles: int = Field(default=0, ge=0)
    years_experience: float = Field(default=0.0, ge=0)
    last_violation_date: Optional[date] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @computed_field
    @property
    def cdl_badge(self) -> Optional[str]:
        """Expiry badge for the CDL."""
        from ..analysis.expiry import expiry_badge

        badge = expiry_badge(self.cdl_expiration)
        return badge.value if badge else None

    @computed_field
    @property
    def medical_badge(self) -> Optional[str]:
        """Expiry badge for the DOT medical certificate."""
        from ..analysis.expiry import expiry_badge

        badge = expiry_badge(self.medical_cert_expiration)
        return badge.value if badge else None


class OnboardingRecord(BaseModel):
    """A driver's progress through the onboarding wizard."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    driver_email: str = Field(..., min_length=3)
    current_step: int = Field(default=1, ge=1)
    status: OnboardingStatus = OnboardingStatus.IN_PROGRESS
    personal_info: dict[str, Any] = Field(default_factory=dict)
    employment_info: dict[str, Any] = Field(default_factory=dict)

    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    def complete(self) -> None:
        self.status = OnboardingStatus.COMPLETED.value
        self.completed_at = datetime.utcnow()


class OnboardingDocument(BaseModel):
    """A document uploaded during onboarding, pending HR review."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    driver_email: str = Field(..., min_length=3)
    document_type: str = Field(..., min_length=1)  # cdl, medical_card, w4...
    file_url: str = Field(..., min_length=1)
    file_name: Optional[str] = None
    expiration_date: Optional[date] = None
    status: DocumentStatus = DocumentStatus.UPLOADED

    # Review
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    uploaded_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def approve(self, approved_by: str) -> None:
        """Approve the document."""
        self.status = DocumentStatus.APPROVED.value
        self.approved_by = approved_by
        self.approved_at = datetime.utcnow()
        self.rejection_reason = None
        self.updated_at = datetime.utcnow()

    def reject(self, reason: Optional[str]) -> None:
        """Reject the document with a reason."""
        self.status = DocumentStatus.REJECTED.value
        self.rejection_reason = reason
        self.updated_at = datetime.utcnow()
