"""
API Tests

Exercises the FastAPI app against a throwaway SQLite database.
"""

from datetime import date, timedelta

from haulops.config import settings


def create(client, auth, path: str, payload: dict) -> dict:
    response = client.post(path, json=payload, headers=auth)
    assert response.status_code == 201, f"POST {path} failed: {response.status_code} {response.text}"
    return response.json()


class TestSystem:
    """Health, auth and stats"""

    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["database_connected"] is True

    def test_admin_requires_token(self, client):
        assert client.get("/v1/admin/quotes").status_code == 401
        wrong = client.get("/v1/admin/quotes", headers={"Authorization": "Bearer nope"})
        assert wrong.status_code == 401

    def test_unset_admin_token_rejects_everything(self, client, auth, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_TOKEN", "")
        assert client.get("/v1/admin/quotes", headers=auth).status_code == 401

    def test_stats(self, client, auth):
        response = client.get("/v1/stats", headers=auth)
        assert response.status_code == 200
        assert response.json()["quotes"] == 0


class TestCompliance:
    def test_crud_and_upcoming_filter(self, client, auth):
        today = date.today()
        soon = create(client, auth, "/v1/admin/compliance", {
            "item_type": "Insurance Certificate",
            "entity": "Fleet",
            "expiration_date": (today + timedelta(days=10)).isoformat(),
        })
        create(client, auth, "/v1/admin/compliance", {
            "item_type": "UCR",
            "expiration_date": (today + timedelta(days=200)).isoformat(),
        })

        assert soon["badge"] == "Expiring"

        upcoming = client.get("/v1/admin/compliance", params={"upcoming_days": 30}, headers=auth).json()
        assert upcoming["total"] == 1
        assert upcoming["items"][0]["id"] == soon["id"]

        patched = client.patch(f"/v1/admin/compliance/{soon['id']}", json={"identifier": "POL-9"}, headers=auth)
        assert patched.json()["identifier"] == "POL-9"
        assert patched.json()["item_type"] == "Insurance Certificate", "Unset fields are untouched"

        assert client.delete(f"/v1/admin/compliance/{soon['id']}", headers=auth).json() == {"success": True, "id": soon["id"]}
        assert client.delete(f"/v1/admin/compliance/{soon['id']}", headers=auth).status_code == 404

    def test_unknown_item_type_rejected(self, client, auth):
        response = client.post("/v1/admin/compliance", json={"item_type": "Hazmat Permit"}, headers=auth)
        assert response.status_code == 400

        item = create(client, auth, "/v1/admin/compliance", {"item_type": "DOT Inspection"})
        bad = client.patch(f"/v1/admin/compliance/{item['id']}", json={"item_type": "Hazmat Permit"}, headers=auth)
        assert bad.status_code == 400


class TestDVIR:
    """Driver-facing DVIR endpoints"""

    def payload(self, **overrides):
        data = {
            "driver_name": "Sam Rivera",
            "truck_number": "T-101",
            "inspection_type": "pre_trip",
            "odometer_reading": 1200,
            "inspection_items": [
                {"category": "Brakes", "item": "Service brakes", "status": "defective", "notes": "Soft pedal"},
                {"category": "Lights", "item": "Headlights", "status": "satisfactory"},
            ],
        }
        data.update(overrides)
        return data

    def test_submit_and_correct(self, client, auth):
        response = client.post("/v1/dvir", json=self.payload())
        assert response.status_code == 201, "DVIR intake does not need the admin token"
        dvir = response.json()
        assert dvir["overall_status"] == "defects_noted"

        detail = client.get(f"/v1/dvir/{dvir['id']}").json()
        assert len(detail["defects"]) == 1
        assert detail["defects"][0]["severity"] == "critical"

        unsafe = client.get("/v1/admin/maintenance/requests", params={"filter": "unsafe"}, headers=auth).json()
        assert unsafe["total"] == 1
        assert unsafe["requests"][0]["dvir_id"] == dvir["id"]

        patched = client.patch(f"/v1/dvir/{dvir['id']}", json={"defects_corrected": True, "mechanic_signature": "Kim"})
        assert patched.json()["overall_status"] == "defects_corrected"
        defects = client.get(f"/v1/dvir/{dvir['id']}").json()["defects"]
        assert all(d["is_corrected"] for d in defects)

    def test_missing_fields_rejected(self, client):
        response = client.post("/v1/dvir", json={"driver_name": "Sam"})
        assert response.status_code == 422

    def test_list_filters(self, client):
        client.post("/v1/dvir", json=self.payload())
        client.post("/v1/dvir", json=self.payload(truck_number="T-202", inspection_items=[]))

        clean = client.get("/v1/dvir", params={"status": "satisfactory"}).json()
        assert [d["truck_number"] for d in clean["dvirs"]] == ["T-202"]
        assert client.get("/v1/dvir", params={"truck": "101", "date_range": "today"}).json()["total"] == 1

    def test_unknown_dvir(self, client):
        assert client.get("/v1/dvir/missing").status_code == 404


class TestMaintenance:
    def test_status_workflow(self, client, auth):
        request = create(client, auth, "/v1/admin/maintenance/requests", {
            "truck_number": "T-5", "issue_type": "Engine", "priority": "High",
        })
        scheduled = client.patch(
            f"/v1/admin/maintenance/requests/{request['id']}/status",
            json={"status": "Scheduled", "scheduled_date": "2024-07-01"},
            headers=auth,
        ).json()
        assert scheduled["status"] == "Scheduled"
        assert scheduled["acknowledged_at"] is not None

        done = client.patch(
            f"/v1/admin/maintenance/requests/{request['id']}/status",
            json={"status": "Completed"},
            headers=auth,
        ).json()
        assert done["completed_at"] is not None

        stats = client.get("/v1/admin/maintenance/stats", headers=auth).json()
        assert stats["pending"] == 0

    def test_bad_filter(self, client, auth):
        assert client.get("/v1/admin/maintenance/requests", params={"filter": "everything"}, headers=auth).status_code == 422


class TestVehicles:
    def test_vehicle_lifecycle(self, client, auth):
        vehicle = create(client, auth, "/v1/admin/vehicles", {"truck_number": "40", "make": "Mack", "mileage": 1000})

        duplicate = client.post("/v1/admin/vehicles", json={"truck_number": "40"}, headers=auth)
        assert duplicate.status_code == 400

        create(client, auth, f"/v1/admin/vehicles/{vehicle['id']}/maintenance", {
            "service_type": "PM-A", "service_date": "2024-04-01", "mileage": 5000, "cost": 310.5,
        })
        assert client.get(f"/v1/admin/vehicles/{vehicle['id']}", headers=auth).json()["mileage"] == 5000

        history = client.get(f"/v1/admin/vehicles/{vehicle['id']}/maintenance", headers=auth).json()
        assert history["total"] == 1

        patched = client.patch(f"/v1/admin/vehicles/{vehicle['id']}", json={"status": "in_shop"}, headers=auth)
        assert patched.json()["status"] == "in_shop"
        bad = client.patch(f"/v1/admin/vehicles/{vehicle['id']}", json={"status": "sunk"}, headers=auth)
        assert bad.status_code == 400

        assert client.delete(f"/v1/admin/vehicles/{vehicle['id']}", headers=auth).status_code == 200
        assert client.get(f"/v1/admin/vehicles/{vehicle['id']}", headers=auth).status_code == 404

    def test_maintenance_for_unknown_vehicle(self, client, auth):
        response = client.post(
            "/v1/admin/vehicles/missing/maintenance",
            json={"service_type": "Oil", "service_date": "2024-04-01"},
            headers=auth,
        )
        assert response.status_code == 404


class TestDriversAndOnboarding:
    def test_driver_search(self, client, auth):
        create(client, auth, "/v1/admin/drivers", {"name": "Maria Lopez", "email": "maria@example.com"})
        create(client, auth, "/v1/admin/drivers", {"name": "Tom Reed", "status": "Inactive"})

        assert client.get("/v1/admin/drivers", params={"search": "lopez"}, headers=auth).json()["total"] == 1
        assert client.get("/v1/admin/drivers", params={"status": "Inactive"}, headers=auth).json()["total"] == 1

    def test_onboarding_flow(self, client, auth):
        record = create(client, auth, "/v1/admin/onboarding", {"driver_email": "new@example.com"})
        document = create(client, auth, "/v1/admin/onboarding/documents", {
            "driver_email": "new@example.com", "document_type": "cdl", "file_url": "s3://cdl.pdf",
        })

        reviewed = client.patch(
            f"/v1/admin/onboarding/documents/{document['id']}",
            json={"status": "approved"},
            headers=auth,
        ).json()
        assert reviewed["status"] == "approved"
        assert reviewed["approved_by"] == "HR"

        invalid = client.patch(
            f"/v1/admin/onboarding/documents/{document['id']}",
            json={"status": "uploaded"},
            headers=auth,
        )
        assert invalid.status_code == 400

        done = client.patch(f"/v1/admin/onboarding/{record['id']}", json={"status": "completed"}, headers=auth).json()
        assert done["completed_at"] is not None

        stats = client.get("/v1/admin/onboarding/stats", headers=auth).json()
        assert stats["completed_last_30_days"] == 1
        assert stats["in_progress"] == 0


class TestQuotes:
    def test_profit_follows_rates(self, client, auth):
        quote = create(client, auth, "/v1/admin/quotes", {
            "company": "Granite Paving",
            "contact_email": "buyer@granite.test",
            "billing_type": "Ton",
            "rate": 14.0,
            "pay_rate": 10.5,
        })
        assert quote["total_profit"] == 3.5

        patched = client.patch(f"/v1/admin/quotes/{quote['id']}", json={"pay_rate": 9.0}, headers=auth).json()
        assert patched["total_profit"] == 5.0

    def test_null_rates_count_as_zero(self, client, auth):
        quote = create(client, auth, "/v1/admin/quotes", {
            "company": "Granite Paving",
            "contact_email": "buyer@granite.test",
            "billing_type": "Load",
            "rate": 120.0,
            "pay_rate": 90.0,
        })

        response = client.patch(f"/v1/admin/quotes/{quote['id']}", json={"pay_rate": None}, headers=auth)
        assert response.status_code == 200
        assert response.json()["pay_rate"] == 0.0
        assert response.json()["total_profit"] == 120.0

        cleared = client.patch(f"/v1/admin/quotes/{quote['id']}", json={"rate": None}, headers=auth).json()
        assert cleared["rate"] == 0.0
        assert cleared["total_profit"] == 0.0

    def test_material_rate_fills_quote(self, client, auth):
        rate = create(client, auth, "/v1/admin/material-rates", {
            "material_name": "Rip rap", "unit_type": "Ton", "default_bill_rate": 22, "default_pay_rate": 16,
        })
        assert rate["default_margin"] == 6.0

        quote = create(client, auth, "/v1/admin/quotes", {
            "company": "County", "contact_email": "roads@county.test", "billing_type": "Load", "rate": 100,
        })
        patched = client.patch(
            f"/v1/admin/quotes/{quote['id']}",
            json={"material_rate_id": rate["id"]},
            headers=auth,
        ).json()

        assert patched["material"] == "Rip rap"
        assert patched["billing_type"] == "Ton"
        assert patched["total_profit"] == 6.0

    def test_unknown_material_rate(self, client, auth):
        response = client.post("/v1/admin/quotes", json={
            "company": "County", "contact_email": "x@y.z", "billing_type": "Load", "rate": 1,
            "material_rate_id": "missing",
        }, headers=auth)
        assert response.status_code == 400

    def test_missing_required_fields(self, client, auth):
        response = client.post("/v1/admin/quotes", json={"company": "County"}, headers=auth)
        assert response.status_code == 422

    def test_email_draft(self, client, auth):
        quote = create(client, auth, "/v1/admin/quotes", {
            "company": "County", "contact_name": "Lee", "contact_email": "lee@county.test",
            "billing_type": "Load", "rate": 425,
        })
        draft = client.post(f"/v1/admin/quotes/{quote['id']}/email-draft", json={"sender_name": "Jo"}, headers=auth).json()

        assert draft["to"] == "lee@county.test"
        assert "Rate: $425.00 per load" in draft["body"]
        assert draft["body"].endswith("Jo")


class TestInvoices:
    def test_numbering_and_totals(self, client, auth):
        first = create(client, auth, "/v1/admin/invoices", {
            "company": "Granite Paving",
            "line_items": [{"description": "Hauling", "quantity": 4, "unit_price": 250}],
            "tax_rate": 0.05,
            "terms": "net_15",
            "issued_date": "2024-05-01",
        })
        second = create(client, auth, "/v1/admin/invoices", {"company": "Granite Paving"})
        quote_doc = create(client, auth, "/v1/admin/invoices", {"company": "Granite Paving", "invoice_type": "Quote"})

        assert first["invoice_number"] == "INV-000001"
        assert second["invoice_number"] == "INV-000002"
        assert quote_doc["invoice_number"] == "QUO-000001"
        assert first["total"] == 1050.0
        assert first["due_date"] == "2024-05-16"

    def test_unknown_factoring_company(self, client, auth):
        response = client.post("/v1/admin/invoices", json={
            "company": "Acme", "factoring_company_id": "missing",
        }, headers=auth)
        assert response.status_code == 400

    def test_mark_paid_via_patch(self, client, auth):
        invoice = create(client, auth, "/v1/admin/invoices", {"company": "Acme"})
        paid = client.patch(f"/v1/admin/invoices/{invoice['id']}", json={"status": "Paid"}, headers=auth).json()

        assert paid["paid_date"] is not None
        assert paid["ar_status"] == "Closed"

    def test_from_tickets(self, client, auth):
        project = create(client, auth, "/v1/admin/projects", {
            "name": "Quarry Road", "customer_id": "cust-9", "customer_name": "Quarry Co", "rate_per_load": 300,
        })
        tickets = [
            create(client, auth, "/v1/admin/tickets", {
                "ticket_date": "2024-05-02", "project_id": project["id"], "customer_id": "cust-9", "ticket_number": n,
            })
            for n in ("A1", "A2")
        ]
        ids = [t["id"] for t in tickets]

        invoice = create(client, auth, "/v1/admin/invoices/from-tickets", {"ticket_ids": ids})
        assert invoice["total"] == 600.0
        assert invoice["status"] == "Sent"

        listed = client.get("/v1/admin/tickets", params={"project_id": project["id"]}, headers=auth).json()
        assert {t["invoice_number"] for t in listed["tickets"]} == {invoice["invoice_number"]}

        again = client.post("/v1/admin/invoices/from-tickets", json={"ticket_ids": ids}, headers=auth)
        assert again.status_code == 400, "Tickets cannot be invoiced twice"

    def test_tax_edit_keeps_ticket_charges(self, client, auth):
        project = create(client, auth, "/v1/admin/projects", {
            "name": "Levee Fill", "customer_id": "cust-4", "customer_name": "Levee Co", "rate_per_load": 100,
            "fuel_surcharge_applicable": True, "waiting_rate_per_minute": 1, "retainage_percent": 10,
        })
        ticket = create(client, auth, "/v1/admin/tickets", {
            "ticket_date": "2024-05-02", "project_id": project["id"], "customer_id": "cust-4",
            "ticket_number": "L1", "waiting_minutes": 20,
        })
        invoice = create(client, auth, "/v1/admin/invoices/from-tickets", {"ticket_ids": [ticket["id"]]})
        assert invoice["waiting_charges"] == 20.0

        patched = client.patch(f"/v1/admin/invoices/{invoice['id']}", json={"tax_rate": 0.0}, headers=auth).json()
        assert patched["total"] == invoice["total"], "Fuel and waiting charges stay in the total"
        assert patched["net_payable"] == invoice["net_payable"]

        taxed = client.patch(f"/v1/admin/invoices/{invoice['id']}", json={"tax_rate": 0.1}, headers=auth).json()
        assert taxed["tax_amount"] == 10.0
        assert taxed["total"] == round(invoice["total"] + 10.0, 2)
        assert taxed["net_payable"] == round(taxed["total"] - invoice["retainage_amount"], 2)

    def test_from_missing_tickets(self, client, auth):
        response = client.post("/v1/admin/invoices/from-tickets", json={"ticket_ids": ["nope"]}, headers=auth)
        assert response.status_code == 400


class TestFactoring:
    def test_crud(self, client, auth):
        company = create(client, auth, "/v1/admin/factoring", {"name": "Triumph", "advance_rate": 0.95, "fee_rate": 0.03})
        assert client.get("/v1/admin/factoring", headers=auth).json()["total"] == 1

        patched = client.patch(f"/v1/admin/factoring/{company['id']}", json={"standard_days": 30}, headers=auth).json()
        assert patched["standard_days"] == 30

        assert client.delete(f"/v1/admin/factoring/{company['id']}", headers=auth).status_code == 200


class TestReports:
    def seed(self, client, auth):
        for partner, material, qty in [("Rocky", "Gravel", 1), ("Rocky", "Sand", 2), ("Blue", "Gravel", 1)]:
            create(client, auth, "/v1/admin/tickets", {
                "ticket_date": "2024-03-04", "partner_id": partner.lower(), "partner_name": partner,
                "material": material, "quantity": qty, "pay_rate": 100, "bill_rate": 150,
            })

    def test_json_report(self, client, auth):
        self.seed(client, auth)
        report = client.get("/v1/admin/profit-reports", params={"group_by": "partner"}, headers=auth).json()

        assert report["summary"]["totals"]["profit"] == 200.0
        assert [g["key"] for g in report["summary"]["groups"]] == ["Blue", "Rocky"]

    def test_csv_download(self, client, auth):
        self.seed(client, auth)
        response = client.get(
            "/v1/admin/profit-reports",
            params={"group_by": "material", "format": "csv", "from": "2024-03-01", "to": "2024-03-31"},
            headers=auth,
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"] == 'attachment; filename="profit-report-material.csv"'
        assert response.text.splitlines()[0] == "group,count,bill,pay,profit,margin_pct"

    def test_partners(self, client, auth):
        self.seed(client, auth)
        partners = client.get("/v1/admin/partners", headers=auth).json()["partners"]
        assert [p["name"] for p in partners] == ["Blue", "Rocky"]

    def test_financial_ops(self, client, auth):
        create(client, auth, "/v1/admin/invoices", {
            "company": "Acme", "line_items": [{"amount": 400}], "status": "Sent",
        })
        summary = client.get("/v1/admin/financial-ops", headers=auth).json()

        assert summary["invoiced"] == 400.0
        assert summary["outstanding"] == 400.0


class TestCustomerPortal:
    def test_load_requests(self, client):
        response = client.post("/v1/customer/load-requests", json={
            "customer_id": "cust-1",
            "origin": {"city": "Dallas", "state": "TX"},
            "destination": {"city": "Tulsa", "state": "OK"},
            "pickup_date": "2024-08-01",
            "commodity": "Crushed stone",
            "equipment": "End dump",
        })
        assert response.status_code == 201
        assert response.json()["lane"] == "TX-OK"
        assert response.json()["status"] == "pending"

        listed = client.get("/v1/customer/load-requests", params={"customer_id": "cust-1"}).json()
        assert listed["total"] == 1
        assert client.get("/v1/customer/load-requests").status_code == 422

    def test_pay_invoice(self, client, auth):
        invoice = create(client, auth, "/v1/admin/invoices", {"company": "Acme", "customer_id": "cust-1", "status": "Sent"})
        create(client, auth, "/v1/admin/invoices", {"company": "Acme", "customer_id": "cust-1", "invoice_type": "Quote"})

        listed = client.get("/v1/customer/invoices", params={"customer_id": "cust-1"}).json()
        assert listed["total"] == 1, "Quote documents are not shown to customers"

        other = client.post(f"/v1/customer/invoices/{invoice['id']}/pay", params={"customer_id": "cust-2"})
        assert other.status_code == 404

        anonymous = client.post(f"/v1/customer/invoices/{invoice['id']}/pay")
        assert anonymous.status_code == 422, "customer_id is required to pay"
        unpaid = client.get("/v1/customer/invoices", params={"customer_id": "cust-1"}).json()
        assert unpaid["invoices"][0]["status"] == "Sent"

        paid = client.post(f"/v1/customer/invoices/{invoice['id']}/pay", params={"customer_id": "cust-1"}).json()
        assert paid["status"] == "Paid"
        assert paid["paid_date"] is not None

    def test_void_invoice_cannot_be_paid(self, client, auth):
        invoice = create(client, auth, "/v1/admin/invoices", {"company": "Acme", "customer_id": "cust-1", "status": "Void"})
        response = client.post(f"/v1/customer/invoices/{invoice['id']}/pay", params={"customer_id": "cust-1"})
        assert response.status_code == 400


class TestELDEndpoints:
    def test_ping_requires_admin(self, client, auth):
        assert client.get("/v1/integrations/eld/ping").status_code == 401
        providers = client.get("/v1/integrations/eld/ping", headers=auth).json()["providers"]
        assert set(providers) == {"samsara", "motive", "geotab"}

    def test_unknown_provider_and_endpoint(self, client, auth):
        assert client.get("/v1/integrations/eld/omnitracs/hos", headers=auth).status_code == 404
        assert client.get("/v1/integrations/eld/samsara/fuel", headers=auth).status_code == 400
