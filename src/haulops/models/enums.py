"""Enumerations for the HaulOps TMS."""

from enum import Enum


class ExpiryBadge(str, Enum):
    """Expiry bucket shown next to dated documents."""

    OK = "OK"
    EXPIRING = "Expiring"
    EXPIRED = "Expired"


class InspectionType(str, Enum):
    """When a DVIR was performed."""

    PRE_TRIP = "pre_trip"
    POST_TRIP = "post_trip"


class InspectionItemStatus(str, Enum):
    """Result for a single DVIR checklist item."""

    SATISFACTORY = "satisfactory"
    DEFECTIVE = "defective"


class DVIRStatus(str, Enum):
    """Overall DVIR outcome."""

    SATISFACTORY = "satisfactory"
    DEFECTS_NOTED = "defects_noted"
    DEFECTS_CORRECTED = "defects_corrected"


class DefectSeverity(str, Enum):
    """Severity derived from the defective item."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"


class MaintenancePriority(str, Enum):
    """Priority of a maintenance request."""

    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class MaintenanceStatus(str, Enum):
    """Lifecycle of a maintenance request."""

    PENDING = "Pending"
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


class VehicleStatus(str, Enum):
    """Fleet vehicle availability."""

    ACTIVE = "active"
    IN_SHOP = "in_shop"
    OUT_OF_SERVICE = "out_of_service"
    RETIRED = "retired"


class DriverStatus(str, Enum):
    """Employment status of a driver."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"
    ON_LEAVE = "On Leave"
    TERMINATED = "Terminated"


class OnboardingStatus(str, Enum):
    """Driver onboarding progress."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REJECTED = "rejected"


class DocumentStatus(str, Enum):
    """Review state of an onboarding document."""

    UPLOADED = "uploaded"
    APPROVED = "approved"
    REJECTED = "rejected"


class QuoteStatus(str, Enum):
    """Quote approval workflow."""

    DRAFT = "Draft"
    SENT = "Sent"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    EXPIRED = "Expired"


class LoadRequestStatus(str, Enum):
    """Customer load request lifecycle."""

    PENDING = "pending"
    QUOTED = "quoted"
    BOOKED = "booked"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    INVOICED = "invoiced"


class InvoiceType(str, Enum):
    """Invoice document kind."""

    INVOICE = "Invoice"
    QUOTE = "Quote"


class InvoiceStatus(str, Enum):
    """Invoice billing status."""

    DRAFT = "Draft"
    SENT = "Sent"
    PAID = "Paid"
    OVERDUE = "Overdue"
    VOID = "Void"


class GroupBy(str, Enum):
    """Profit report grouping."""

    NONE = "none"
    PARTNER = "partner"
    MATERIAL = "material"
    DAY = "day"


class DateRange(str, Enum):
    """Relative date filters for listings."""

    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    ALL = "all"
