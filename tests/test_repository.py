"""
Repository Tests

Persistence behaviour that the API and services rely on.
"""

from datetime import date, datetime, timedelta

import pytest
from pydantic import ValidationError

from haulops.db import apply_updates, date_range_start
from haulops.errors import NotFoundError
from haulops.models import (
    ComplianceItem,
    MaintenanceRecord,
    MaintenanceRequest,
    OnboardingDocument,
    OnboardingRecord,
    Project,
    Ticket,
    Vehicle,
)


class TestComplianceQueries:
    """Alert window listing"""

    def test_upcoming_window_includes_expired_and_sorts(self, repo):
        today = date(2024, 6, 1)
        for name, offset in [("later", 90), ("soon", 20), ("expired", -5), ("edge", 60)]:
            repo.save_compliance_item(ComplianceItem(entity=name, expiration_date=today + timedelta(days=offset)))
        repo.save_compliance_item(ComplianceItem(entity="undated"))

        items = repo.list_compliance_items(upcoming_days=60, today=today)

        assert [i.entity for i in items] == ["expired", "soon", "edge"], "Window is inclusive and soonest first"

    def test_without_window_returns_everything(self, repo):
        repo.save_compliance_item(ComplianceItem(entity="a"))
        repo.save_compliance_item(ComplianceItem(entity="b", expiration_date=date(2030, 1, 1)))
        assert len(repo.list_compliance_items()) == 2

    def test_type_filter(self, repo):
        repo.save_compliance_item(ComplianceItem(item_type="UCR"))
        repo.save_compliance_item(ComplianceItem(item_type="DOT Inspection"))
        assert [i.item_type for i in repo.list_compliance_items(item_type="UCR")] == ["UCR"]

    def test_require_missing_raises(self, repo):
        with pytest.raises(NotFoundError, match="Compliance item not found"):
            repo.require_compliance_item("nope")


class TestMaintenanceQueries:
    """Maintenance request filters and ordering"""

    def test_filters(self, repo):
        repo.save_maintenance_request(MaintenanceRequest(truck_number="T1", priority="Critical", can_drive_safely=False))
        repo.save_maintenance_request(MaintenanceRequest(truck_number="T2", priority="Low", status="Completed"))
        repo.save_maintenance_request(MaintenanceRequest(truck_number="T3"))

        assert [r.truck_number for r in repo.list_maintenance_requests("critical")] == ["T1"]
        assert [r.truck_number for r in repo.list_maintenance_requests("unsafe")] == ["T1"]
        assert {r.truck_number for r in repo.list_maintenance_requests("pending")} == {"T1", "T3"}

        stats = repo.get_maintenance_stats()
        assert stats == {"total": 3, "critical": 1, "unsafe": 1, "pending": 2}

    def test_longest_pending_first(self, repo):
        now = datetime.utcnow()
        repo.save_maintenance_request(MaintenanceRequest(truck_number="new", submitted_at=now - timedelta(hours=1)))
        repo.save_maintenance_request(MaintenanceRequest(truck_number="old", submitted_at=now - timedelta(hours=30)))

        assert [r.truck_number for r in repo.list_maintenance_requests()] == ["old", "new"]


class TestVehicles:
    def test_delete_removes_service_history(self, repo):
        vehicle = repo.save_vehicle(Vehicle(truck_number="101"))
        repo.save_maintenance_record(MaintenanceRecord(vehicle_id=vehicle.id, service_type="PM-A", service_date=date(2024, 1, 5)))

        assert repo.get_vehicle_by_truck_number("101").id == vehicle.id
        assert repo.delete_vehicle(vehicle.id)
        assert repo.list_maintenance_records(vehicle.id) == []
        assert not repo.delete_vehicle(vehicle.id), "Second delete finds nothing"


class TestOnboardingDocuments:
    def test_reupload_replaces_same_type(self, repo):
        first = repo.save_onboarding_document(OnboardingDocument(
            driver_email="pat@example.com", document_type="cdl", file_url="s3://a.pdf",
        ))
        second = repo.save_onboarding_document(OnboardingDocument(
            driver_email="pat@example.com", document_type="cdl", file_url="s3://b.pdf",
        ))

        documents = repo.list_onboarding_documents(driver_email="pat@example.com")
        assert second.id == first.id
        assert len(documents) == 1
        assert documents[0].file_url == "s3://b.pdf"

    def test_stats(self, repo):
        today = date(2024, 6, 1)
        repo.save_onboarding(OnboardingRecord(driver_email="a@example.com"))
        done = OnboardingRecord(driver_email="b@example.com")
        done.complete()
        repo.save_onboarding(done)
        repo.save_onboarding_document(OnboardingDocument(
            driver_email="a@example.com", document_type="medical_card", file_url="x",
            expiration_date=today - timedelta(days=1),
        ))

        stats = repo.get_onboarding_stats(today=datetime.utcnow().date())

        assert stats["in_progress"] == 1
        assert stats["completed_last_30_days"] == 1
        assert stats["pending_documents"] == 1
        assert stats["expired_documents"] == 1


class TestInvoiceNumbering:
    def test_sequences_are_per_prefix(self, repo):
        assert repo.next_invoice_number("INV") == "INV-000001"
        assert repo.next_invoice_number("INV") == "INV-000002"
        assert repo.next_invoice_number("QUO") == "QUO-000001"


class TestTickets:
    def test_list_filters_and_partners(self, repo):
        repo.save_tickets([
            Ticket(ticket_date=date(2024, 3, 2), partner_id="p2", partner_name="Zed Haul"),
            Ticket(ticket_date=date(2024, 3, 1), partner_id="p1", partner_name="Able Trucking"),
            Ticket(ticket_date=date(2024, 3, 3), partner_id="p1", partner_name="Able Trucking", voided=True),
        ])

        assert [t.ticket_date.day for t in repo.list_tickets()] == [1, 2, 3]
        assert len(repo.list_tickets(include_voided=False)) == 2
        assert len(repo.list_tickets(partner_id="p1")) == 2
        assert len(repo.list_tickets(date_from=date(2024, 3, 2), date_to=date(2024, 3, 2))) == 1
        assert repo.list_partners() == [
            {"id": "p1", "name": "Able Trucking"},
            {"id": "p2", "name": "Zed Haul"},
        ]

    def test_project_lookup(self, repo):
        project = repo.save_project(Project(name="Dam", customer_id="c1", customer_name="County"))
        assert repo.require_project(project.id).name == "Dam"
        assert [p.id for p in repo.list_projects(customer_id="c1")] == [project.id]
        assert repo.list_projects(customer_id="c2") == []


class TestHelpers:
    def test_apply_updates_protects_id_and_revalidates(self):
        vehicle = Vehicle(truck_number="9")
        updated = apply_updates(vehicle, {"id": "hijack", "mileage": 1200})

        assert updated.id == vehicle.id
        assert updated.mileage == 1200
        with pytest.raises(ValidationError):
            apply_updates(vehicle, {"mileage": -5})

    def test_date_range_start(self):
        now = datetime(2024, 6, 15, 13, 30)
        assert date_range_start("today", now) == datetime(2024, 6, 15)
        assert date_range_start("week", now) == now - timedelta(days=7)
        assert date_range_start("month", now) == now - timedelta(days=30)
        assert date_range_start("all", now) is None
        assert date_range_start(None, now) is None
