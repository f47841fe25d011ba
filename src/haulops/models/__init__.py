"""Data models for the HaulOps TMS."""

from .enums import (
    DateRange,
    DefectSeverity,
    DocumentStatus,
    DriverStatus,
    DVIRStatus,
    ExpiryBadge,
    GroupBy,
    InspectionItemStatus,
    InspectionType,
    InvoiceStatus,
    InvoiceType,
    LoadRequestStatus,
    MaintenancePriority,
    MaintenanceStatus,
    OnboardingStatus,
    QuoteStatus,
    VehicleStatus,
)
from .compliance import ComplianceItem
from .dvir import DVIRInspection, DVIRDefect, InspectionItem
from .fleet import Vehicle, MaintenanceRecord, MaintenanceRequest
from .driver import DriverProfile, OnboardingRecord, OnboardingDocument
from .quote import MaterialRate, Quote
from .factoring import FactoringCompany
from .load_request import Address, LoadRequest
from .invoice import Invoice, LineItem
from .ticket import Ticket, Project

__all__ = [
    # Enums
    "DateRange",
    "DefectSeverity",
    "DocumentStatus",
    "DriverStatus",
    "DVIRStatus",
    "ExpiryBadge",
    "GroupBy",
    "InspectionItemStatus",
    "InspectionType",
    "InvoiceStatus",
    "InvoiceType",
    "LoadRequestStatus",
    "MaintenancePriority",
    "MaintenanceStatus",
    "OnboardingStatus",
    "QuoteStatus",
    "VehicleStatus",
    # Compliance
    "ComplianceItem",
    # DVIR
    "DVIRInspection",
    "DVIRDefect",
    "InspectionItem",
    # Fleet
    "Vehicle",
    "MaintenanceRecord",
    "MaintenanceRequest",
    # Drivers
    "DriverProfile",
    "OnboardingRecord",
    "OnboardingDocument",
    # Quoting
    "MaterialRate",
    "Quote",
    "FactoringCompany",
    # Customer portal
    "Address",
    "LoadRequest",
    # Billing
    "Invoice",
    "LineItem",
    "Ticket",
    "Project",
]
