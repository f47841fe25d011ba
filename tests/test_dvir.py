"""
DVIR Tests

Defect severity rules and the submit / correct workflow.
"""

import pytest

from haulops.analysis import determine_priority, determine_severity, is_critical_defect
from haulops.errors import NotFoundError
from haulops.models import DVIRInspection, InspectionItem
from haulops.models.enums import DefectSeverity, DVIRStatus, MaintenancePriority
from haulops.services import FleetService


def make_dvir(*items: InspectionItem, **overrides) -> DVIRInspection:
    data = {
        "driver_name": "Sam Rivera",
        "truck_number": "T-101",
        "odometer_reading": 152000,
        "inspection_type": "pre_trip",
        "location": "Yard 2",
        "inspection_items": list(items),
    }
    data.update(overrides)
    return DVIRInspection(**data)


class TestSeverity:
    """Severity and priority derived from the item text"""

    @pytest.mark.parametrize("category,item", [
        ("Brakes", "Air brake adjustment"),
        ("Steering", "Play in wheel"),
        ("Tires", "Tread depth"),
        ("Suspension", "Broken leaf spring"),
    ])
    def test_critical_items(self, category, item):
        assert determine_severity(category, item) == DefectSeverity.CRITICAL
        assert determine_priority(category, item) == MaintenancePriority.CRITICAL
        assert is_critical_defect(category, item)

    @pytest.mark.parametrize("category,item", [
        ("Lights", "Left marker out"),
        ("Cab", "Cracked windshield"),
        ("Cab", "Horn"),
        ("Exterior", "Mirror bracket loose"),
    ])
    def test_high_items(self, category, item):
        assert determine_severity(category, item) == DefectSeverity.HIGH
        assert not is_critical_defect(category, item)

    def test_everything_else_is_medium(self):
        assert determine_severity("Cab", "Seat belt frayed") == DefectSeverity.MEDIUM
        assert determine_priority("Body", "Dent in fender") == MaintenancePriority.MEDIUM

    def test_matching_is_case_insensitive(self):
        assert determine_severity("BRAKES", "PADS") == DefectSeverity.CRITICAL


class TestSubmitDVIR:
    """Submitting a DVIR fans out into defects and maintenance requests"""

    def test_clean_inspection_creates_nothing(self, repo):
        dvir = FleetService(repo).submit_dvir(make_dvir(InspectionItem(category="Lights", item="Headlights")))

        assert dvir.overall_status == DVIRStatus.SATISFACTORY
        assert repo.list_defects(dvir.id) == []
        assert repo.list_maintenance_requests(dvir_id=dvir.id) == []

    def test_defects_create_requests(self, repo):
        dvir = make_dvir(
            InspectionItem(category="Brakes", item="Pads", status="defective", notes="Grinding"),
            InspectionItem(category="Lights", item="Turn signal", status="defective"),
            InspectionItem(category="Cab", item="Wipers"),
        )
        FleetService(repo).submit_dvir(dvir, driver_phone="555-0100")

        saved = repo.require_dvir(dvir.id)
        assert saved.overall_status == DVIRStatus.DEFECTS_NOTED, "Defects should flip the status"
        assert saved.defect_count == 2

        defects = repo.list_defects(dvir.id)
        assert {d.severity for d in defects} == {"critical", "high"}

        requests = repo.list_maintenance_requests(dvir_id=dvir.id)
        assert len(requests) == 2
        brake = next(r for r in requests if "Brakes" in r.description)
        assert brake.priority == MaintenancePriority.CRITICAL
        assert brake.can_drive_safely is False, "Critical defects make the truck unsafe"
        assert brake.driver_phone == "555-0100"
        assert brake.mileage == 152000
        assert "Notes: Grinding" in brake.description
        assert brake.issue_type == "DVIR Defect"

    def test_explicit_status_is_kept(self, repo):
        dvir = make_dvir(
            InspectionItem(category="Body", item="Dent", status="defective"),
            overall_status="satisfactory",
        )
        FleetService(repo).submit_dvir(dvir)

        assert repo.require_dvir(dvir.id).overall_status == DVIRStatus.SATISFACTORY


class TestCorrectDVIR:
    """Mechanic sign-off"""

    def test_marking_corrected_closes_defects(self, repo):
        service = FleetService(repo)
        dvir = service.submit_dvir(make_dvir(
            InspectionItem(category="Tires", item="Flat", status="defective"),
        ))

        updated = service.update_dvir(dvir.id, defects_corrected=True, mechanic_signature="J. Wrench")

        assert updated.overall_status == DVIRStatus.DEFECTS_CORRECTED
        assert updated.mechanic_signature == "J. Wrench"
        for defect in repo.list_defects(dvir.id):
            assert defect.is_corrected
            assert defect.corrected_by == "J. Wrench"
            assert defect.corrected_at is not None

    def test_default_correction_attribution(self, repo):
        service = FleetService(repo)
        dvir = service.submit_dvir(make_dvir(
            InspectionItem(category="Lights", item="Brake light", status="defective"),
        ))
        service.update_dvir(dvir.id, defects_corrected=True)

        defect = repo.list_defects(dvir.id)[0]
        assert defect.corrected_by == "System"
        assert defect.correction_notes == "Marked as corrected via DVIR dashboard"

    def test_unknown_dvir(self, repo):
        with pytest.raises(NotFoundError):
            FleetService(repo).update_dvir("missing", defects_corrected=True)
