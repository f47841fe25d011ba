"""
DVIR Defect Triage

Classifies defective inspection items and turns them into defect records
and maintenance requests.
"""

from typing import Optional

from ..config import CRITICAL_DEFECT_KEYWORDS, HIGH_DEFECT_KEYWORDS
from ..models.dvir import DVIRDefect, DVIRInspection, InspectionItem
from ..models.enums import DefectSeverity, MaintenancePriority
from ..models.fleet import MaintenanceRequest


def determine_severity(category: str, item: str) -> DefectSeverity:
    """
    Severity from the item text.

    Brakes, steering, tires, wheels and suspension are critical; lights,
    signals, mirrors, horn and windshield are high; anything else medium.
    """
    text = f"{category} {item}".lower()

    if any(keyword in text for keyword in CRITICAL_DEFECT_KEYWORDS):
        return DefectSeverity.CRITICAL
    if any(keyword in text for keyword in HIGH_DEFECT_KEYWORDS):
        return DefectSeverity.HIGH
    return DefectSeverity.MEDIUM


def determine_priority(category: str, item: str) -> MaintenancePriority:
    """Maintenance priority matching the defect severity."""
    severity = determine_severity(category, item)
    if severity == DefectSeverity.CRITICAL:
        return MaintenancePriority.CRITICAL
    if severity == DefectSeverity.HIGH:
        return MaintenancePriority.HIGH
    return MaintenancePriority.MEDIUM


def is_critical_defect(category: str, item: str) -> bool:
    """Truck must not be driven with this defect."""
    return determine_severity(category, item) == DefectSeverity.CRITICAL


def build_defect(dvir: DVIRInspection, item: InspectionItem) -> DVIRDefect:
    """Defect record for one defective checklist item."""
    return DVIRDefect(
        dvir_id=dvir.id,
        category=item.category,
        item_description=item.item,
        defect_notes=item.notes or "",
        severity=determine_severity(item.category, item.item),
        photo_urls=[item.photo_url] if item.photo_url else [],
    )


def build_maintenance_request(
    dvir: DVIRInspection,
    item: InspectionItem,
    driver_phone: Optional[str] = None,
) -> MaintenanceRequest:
    """Maintenance request raised for one defective checklist item."""
    description = f"DVIR Defect - {item.category}: {item.item}"
    if item.notes:
        description += f"\nNotes: {item.notes}"

    return MaintenanceRequest(
        truck_number=dvir.truck_number,
        driver_name=dvir.driver_name,
        driver_phone=driver_phone,
        issue_type="DVIR Defect",
        priority=determine_priority(item.category, item.item),
        description=description,
        can_drive_safely=not is_critical_defect(item.category, item.item),
        dvir_id=dvir.id,
        location=dvir.location or None,
        mileage=dvir.odometer_reading or None,
        photos=[item.photo_url] if item.photo_url else [],
    )
