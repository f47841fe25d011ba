"""
HaulOps FastAPI Server

REST API behind the back-office dashboards: compliance, DVIR, fleet
maintenance, driver HR, quoting, invoicing, profit reports and the
customer portal.

USAGE:
    Local: haulops serve (runs on http://localhost:8000)
    Docs: http://localhost:8000/docs (Swagger UI)

Admin endpoints expect `Authorization: Bearer <ADMIN_TOKEN>`.
"""

import secrets
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query
from fastapi.responses import Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field, ValidationError

from .config import settings
from .db import Repository, apply_updates, get_repository
from .errors import InvalidRequestError, NotFoundError
from .integrations import get_provider, ping_providers
from .log import configure_logging, get_logger
from .models import (
    Address,
    ComplianceItem,
    DriverProfile,
    DVIRInspection,
    FactoringCompany,
    InspectionItem,
    Invoice,
    LineItem,
    LoadRequest,
    MaintenanceRecord,
    MaintenanceRequest,
    MaterialRate,
    OnboardingDocument,
    OnboardingRecord,
    Project,
    Quote,
    Ticket,
    Vehicle,
)
from .models.enums import (
    DateRange,
    DocumentStatus,
    DVIRStatus,
    GroupBy,
    InspectionType,
    InvoiceStatus,
    InvoiceType,
    MaintenancePriority,
    MaintenanceStatus,
    QuoteStatus,
)
from .reports import profit_report_csv, profit_report_filename
from .services import BillingService, FleetService, OnboardingService

logger = get_logger(__name__)


# =============================================================================
# API Models (Request/Response Schemas)
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    timestamp: str
    database_connected: bool


class ComplianceIn(BaseModel):
    """Compliance item fields (all optional on PATCH)"""
    item_type: str = Field(default="UCR", min_length=1)
    entity: Optional[str] = None
    identifier: Optional[str] = None
    effective_date: Optional[date] = None
    expiration_date: Optional[date] = None
    status: Optional[str] = None
    document_url: Optional[str] = None
    notes: Optional[str] = None


class DVIRCreate(BaseModel):
    """Driver-submitted inspection"""
    driver_name: str = Field(..., min_length=1)
    truck_number: str = Field(..., min_length=1)
    inspection_type: InspectionType
    odometer_reading: int = Field(default=0, ge=0)
    location: str = ""
    inspection_items: list[InspectionItem] = Field(default_factory=list)
    overall_status: Optional[DVIRStatus] = None
    driver_phone: Optional[str] = None


class DVIRUpdate(BaseModel):
    """Mechanic sign-off"""
    defects_corrected: Optional[bool] = None
    mechanic_signature: Optional[str] = None
    correction_notes: Optional[str] = None


class MaintenanceRequestCreate(BaseModel):
    """Driver-reported repair need"""
    truck_number: str = Field(..., min_length=1)
    driver_name: str = ""
    driver_phone: Optional[str] = None
    issue_type: str = "General"
    priority: MaintenancePriority = MaintenancePriority.MEDIUM
    description: str = ""
    can_drive_safely: bool = True
    location: Optional[str] = None
    mileage: Optional[int] = None
    photos: list[str] = Field(default_factory=list)


class MaintenanceStatusUpdate(BaseModel):
    status: MaintenanceStatus
    scheduled_date: Optional[date] = None


class VehicleCreate(BaseModel):
    truck_number: str = Field(..., min_length=1)
    vin: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    license_plate: Optional[str] = None
    status: Optional[str] = None
    mileage: int = 0
    next_service_date: Optional[date] = None


class MaintenanceRecordCreate(BaseModel):
    service_type: str = Field(..., min_length=1)
    service_date: date
    mileage: Optional[int] = None
    cost: float = 0.0
    vendor: Optional[str] = None
    notes: Optional[str] = None


class DriverCreate(BaseModel):
    name: str = Field(..., min_length=1)
    employee_id: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    hire_date: Optional[date] = None
    status: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    cdl_number: Optional[str] = None
    cdl_class: Optional[str] = None
    cdl_expiration: Optional[date] = None
    driver_license_state: Optional[str] = None
    medical_cert_expiration: Optional[date] = None
    endorsements: list[str] = Field(default_factory=list)


class OnboardingCreate(BaseModel):
    driver_email: str = Field(..., min_length=3)
    current_step: int = 1
    personal_info: dict[str, Any] = Field(default_factory=dict)
    employment_info: dict[str, Any] = Field(default_factory=dict)


class DocumentUpload(BaseModel):
    driver_email: str = Field(..., min_length=3)
    document_type: str = Field(..., min_length=1)
    file_url: str = Field(..., min_length=1)
    file_name: Optional[str] = None
    expiration_date: Optional[date] = None


class DocumentReview(BaseModel):
    status: DocumentStatus
    reviewed_by: Optional[str] = None
    rejection_reason: Optional[str] = None


class MaterialRateCreate(BaseModel):
    material_name: str = Field(..., min_length=1)
    unit_type: str = "Load"
    default_bill_rate: float = Field(default=0.0, ge=0)
    default_pay_rate: float = Field(default=0.0, ge=0)
    active: bool = True


class QuoteCreate(BaseModel):
    """New quote; company, contact_email, billing_type and rate are required"""
    company: str = Field(..., min_length=1)
    contact_name: Optional[str] = None
    contact_email: str = Field(..., min_length=3)
    billing_type: str = Field(..., min_length=1)
    rate: float
    pay_rate: Optional[float] = 0.0
    material: Optional[str] = None
    material_rate_id: Optional[str] = None
    notes: Optional[str] = None
    status: QuoteStatus = QuoteStatus.DRAFT


class EmailDraftRequest(BaseModel):
    sender_name: str = "Dispatch"


class FactoringCreate(BaseModel):
    name: str = Field(..., min_length=1)
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    advance_rate: Optional[float] = Field(default=None, ge=0, le=1)
    fee_rate: Optional[float] = Field(default=None, ge=0, le=1)
    reserve_rate: Optional[float] = Field(default=None, ge=0, le=1)
    standard_days: Optional[int] = Field(default=None, ge=0)


class InvoiceCreate(BaseModel):
    """Manually entered invoice or quote document"""
    company: str = Field(..., min_length=1)
    invoice_type: InvoiceType = InvoiceType.INVOICE
    invoice_number: Optional[str] = None
    quote_id: Optional[str] = None
    customer_id: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    billing_address: Optional[str] = None
    line_items: list[LineItem] = Field(default_factory=list)
    tax_rate: float = Field(default=0.0, ge=0)
    notes: Optional[str] = None
    terms: Optional[str] = None
    issued_date: Optional[date] = None
    due_date: Optional[date] = None
    status: InvoiceStatus = InvoiceStatus.DRAFT
    factoring_company_id: Optional[str] = None


class TicketInvoiceRequest(BaseModel):
    ticket_ids: list[str] = Field(..., min_length=1)
    issued_date: Optional[date] = None


class TicketCreate(BaseModel):
    ticket_number: Optional[str] = None
    ticket_date: date
    partner_id: Optional[str] = None
    partner_name: Optional[str] = None
    driver_name: Optional[str] = None
    truck_number: Optional[str] = None
    material: Optional[str] = None
    unit_type: Optional[str] = None
    quantity: float = Field(default=0.0, ge=0)
    pay_rate: float = Field(default=0.0, ge=0)
    bill_rate: float = Field(default=0.0, ge=0)
    project_id: Optional[str] = None
    customer_id: Optional[str] = None
    load_weight: Optional[float] = None
    cubic_yards: Optional[float] = None
    load_count: Optional[float] = None
    waiting_minutes: Optional[float] = None
    voided: bool = False


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1)
    customer_id: str = Field(..., min_length=1)
    customer_name: str = Field(..., min_length=1)
    payment_terms: Optional[str] = "net_30"
    rate_per_load: Optional[float] = None
    rate_per_ton: Optional[float] = None
    rate_per_cy: Optional[float] = None
    min_daily_rate: Optional[float] = None
    waiting_rate_per_minute: Optional[float] = None
    fuel_surcharge_applicable: bool = False
    retainage_percent: Optional[float] = None


class LoadRequestCreate(BaseModel):
    """Customer portal load request"""
    customer_id: str = Field(..., min_length=1)
    origin: Address
    destination: Address
    pickup_date: date
    delivery_date: Optional[date] = None
    commodity: str = Field(..., min_length=1)
    weight: float = Field(default=0, ge=0)
    equipment: str = Field(..., min_length=1)
    special_requirements: Optional[str] = None


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="HaulOps API",
    description=(
        "Back office API for an aggregate hauling TMS\n\n"
        "- Compliance items and expiry alerts\n"
        "- DVIR intake and maintenance dashboard\n"
        "- Driver HR and onboarding\n"
        "- Quotes, invoices, factoring and profit reports\n"
        "- Customer portal load requests and payments"
    ),
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

bearer_scheme = HTTPBearer(auto_error=False)


def get_repo() -> Repository:
    """Repository dependency (overridden in tests)."""
    return get_repository()


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> None:
    """Reject requests without the admin bearer token."""
    expected = settings.ADMIN_TOKEN
    if (
        not expected
        or credentials is None
        or not secrets.compare_digest(credentials.credentials, expected)
    ):
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


admin = [Depends(require_admin)]


@contextmanager
def api_errors(operation: str):
    """Map domain errors to HTTP responses."""
    try:
        yield
    except HTTPException:
        raise
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (InvalidRequestError, ValidationError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error("request_failed", operation=operation, error=str(e))
        raise HTTPException(status_code=500, detail=f"{operation} failed: {str(e)}")


def not_found(entity: str, record_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{entity} not found: {record_id}")


# =============================================================================
# Health & Status Endpoints
# =============================================================================

@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(repo: Repository = Depends(get_repo)):
    """
    Health check endpoint for monitoring and load balancers.

    Returns system status, version, and database connectivity.
    """
    try:
        repo.get_stats()
        db_connected = True
    except Exception as e:
        logger.warning("health_check_database_unavailable", error=str(e))
        db_connected = False

    return HealthResponse(
        status="healthy" if db_connected else "degraded",
        version=settings.APP_VERSION,
        timestamp=datetime.utcnow().isoformat(),
        database_connected=db_connected,
    )


@app.get("/", tags=["System"])
async def root():
    """Root endpoint with API information"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "openapi": "/openapi.json",
        "endpoints": {
            "compliance": "GET /v1/admin/compliance",
            "dvir": "POST /v1/dvir",
            "maintenance": "GET /v1/admin/maintenance/requests",
            "quotes": "GET /v1/admin/quotes",
            "invoices": "GET /v1/admin/invoices",
            "profit_reports": "GET /v1/admin/profit-reports",
            "load_requests": "POST /v1/customer/load-requests",
        },
    }


@app.get("/v1/stats", tags=["System"], dependencies=admin)
async def get_stats(repo: Repository = Depends(get_repo)):
    """Record counts across the back office."""
    with api_errors("Fetch stats"):
        return {"success": True, **repo.get_stats()}


# =============================================================================
# Compliance Endpoints
# =============================================================================

@app.get("/v1/admin/compliance", tags=["Compliance"], dependencies=admin)
async def list_compliance(
    upcoming_days: Optional[int] = Query(default=None, ge=0, description="Only items expiring within N days"),
    item_type: Optional[str] = None,
    repo: Repository = Depends(get_repo),
):
    """
    List compliance items with days left and badge.

    With upcoming_days, returns items expiring within the window
    (already-expired items included), soonest first.
    """
    with api_errors("Fetch compliance items"):
        items = repo.list_compliance_items(upcoming_days=upcoming_days, item_type=item_type)
        return {"total": len(items), "items": items}


@app.post("/v1/admin/compliance", tags=["Compliance"], status_code=201, dependencies=admin)
async def create_compliance(request: ComplianceIn, repo: Repository = Depends(get_repo)):
    with api_errors("Create compliance item"):
        item = ComplianceItem(**request.model_dump())
        repo.save_compliance_item(item)
        logger.info("compliance_item_created", item_id=item.id, item_type=item.item_type)
        return item


@app.patch("/v1/admin/compliance/{item_id}", tags=["Compliance"], dependencies=admin)
async def update_compliance(item_id: str, request: ComplianceIn, repo: Repository = Depends(get_repo)):
    with api_errors("Update compliance item"):
        item = apply_updates(repo.require_compliance_item(item_id), request.model_dump(exclude_unset=True))
        return repo.save_compliance_item(item)


@app.delete("/v1/admin/compliance/{item_id}", tags=["Compliance"], dependencies=admin)
async def delete_compliance(item_id: str, repo: Repository = Depends(get_repo)):
    with api_errors("Delete compliance item"):
        if not repo.delete_compliance_item(item_id):
            raise not_found("Compliance item", item_id)
        return {"success": True, "id": item_id}


# =============================================================================
# DVIR Endpoints
# =============================================================================

@app.get("/v1/dvir", tags=["DVIR"])
async def list_dvirs(
    status: Optional[str] = Query(default=None, description="overall_status or 'all'"),
    truck: Optional[str] = Query(default=None, description="Truck number contains"),
    date_range: DateRange = DateRange.ALL,
    limit: int = Query(default=50, ge=1, le=500),
    repo: Repository = Depends(get_repo),
):
    """List inspections, newest first."""
    with api_errors("Fetch DVIRs"):
        dvirs = repo.list_dvirs(status=status, truck=truck, date_range=date_range.value, limit=limit)
        return {"total": len(dvirs), "dvirs": dvirs}


@app.post("/v1/dvir", tags=["DVIR"], status_code=201)
async def create_dvir(request: DVIRCreate, repo: Repository = Depends(get_repo)):
    """
    Submit a DVIR.

    Each defective item creates a defect record and a maintenance
    request. Critical defects (brakes, steering, tires, wheels,
    suspension) flag the truck as unsafe to drive.
    """
    with api_errors("Create DVIR"):
        fields = request.model_dump(exclude_unset=True, exclude_none=True, exclude={"driver_phone"})
        dvir = DVIRInspection(**fields)
        FleetService(repo).submit_dvir(dvir, driver_phone=request.driver_phone)
        return dvir


@app.get("/v1/dvir/{dvir_id}", tags=["DVIR"])
async def get_dvir(dvir_id: str, repo: Repository = Depends(get_repo)):
    with api_errors("Fetch DVIR"):
        dvir = repo.require_dvir(dvir_id)
        return {"dvir": dvir, "defects": repo.list_defects(dvir_id)}


@app.patch("/v1/dvir/{dvir_id}", tags=["DVIR"])
async def update_dvir(dvir_id: str, request: DVIRUpdate, repo: Repository = Depends(get_repo)):
    """Mechanic sign-off; defects_corrected closes every defect on the DVIR."""
    with api_errors("Update DVIR"):
        return FleetService(repo).update_dvir(
            dvir_id,
            defects_corrected=request.defects_corrected,
            mechanic_signature=request.mechanic_signature,
            correction_notes=request.correction_notes,
        )


# =============================================================================
# Maintenance Endpoints
# =============================================================================

@app.get("/v1/admin/maintenance/requests", tags=["Maintenance"], dependencies=admin)
async def list_maintenance_requests(
    filter: str = Query(default="all", pattern="^(all|critical|unsafe|pending)$"),
    repo: Repository = Depends(get_repo),
):
    """Maintenance requests, longest pending first."""
    with api_errors("Fetch maintenance requests"):
        requests = repo.list_maintenance_requests(filter_by=filter)
        return {"total": len(requests), "requests": requests}


@app.post("/v1/admin/maintenance/requests", tags=["Maintenance"], status_code=201, dependencies=admin)
async def create_maintenance_request(request: MaintenanceRequestCreate, repo: Repository = Depends(get_repo)):
    with api_errors("Create maintenance request"):
        maintenance_request = MaintenanceRequest(**request.model_dump())
        repo.save_maintenance_request(maintenance_request)
        logger.info(
            "maintenance_request_created",
            request_id=maintenance_request.id,
            truck_number=maintenance_request.truck_number,
            priority=maintenance_request.priority,
        )
        return maintenance_request


@app.patch("/v1/admin/maintenance/requests/{request_id}/status", tags=["Maintenance"], dependencies=admin)
async def update_maintenance_status(
    request_id: str,
    request: MaintenanceStatusUpdate,
    repo: Repository = Depends(get_repo),
):
    with api_errors("Update maintenance status"):
        return FleetService(repo).update_request_status(request_id, request.status, request.scheduled_date)


@app.get("/v1/admin/maintenance/stats", tags=["Maintenance"], dependencies=admin)
async def maintenance_stats(repo: Repository = Depends(get_repo)):
    with api_errors("Fetch maintenance stats"):
        return repo.get_maintenance_stats()


# =============================================================================
# Vehicle Endpoints
# =============================================================================

@app.get("/v1/admin/vehicles", tags=["Fleet"], dependencies=admin)
async def list_vehicles(status: Optional[str] = None, repo: Repository = Depends(get_repo)):
    with api_errors("Fetch vehicles"):
        vehicles = repo.list_vehicles(status=status)
        return {"total": len(vehicles), "vehicles": vehicles}


@app.post("/v1/admin/vehicles", tags=["Fleet"], status_code=201, dependencies=admin)
async def create_vehicle(request: VehicleCreate, repo: Repository = Depends(get_repo)):
    with api_errors("Create vehicle"):
        if repo.get_vehicle_by_truck_number(request.truck_number):
            raise InvalidRequestError(f"Truck number already exists: {request.truck_number}")
        vehicle = Vehicle(**request.model_dump(exclude_none=True))
        return repo.save_vehicle(vehicle)


@app.get("/v1/admin/vehicles/{vehicle_id}", tags=["Fleet"], dependencies=admin)
async def get_vehicle(vehicle_id: str, repo: Repository = Depends(get_repo)):
    with api_errors("Fetch vehicle"):
        return repo.require_vehicle(vehicle_id)


@app.patch("/v1/admin/vehicles/{vehicle_id}", tags=["Fleet"], dependencies=admin)
async def update_vehicle(
    vehicle_id: str,
    changes: dict[str, Any] = Body(...),
    repo: Repository = Depends(get_repo),
):
    with api_errors("Update vehicle"):
        vehicle = apply_updates(repo.require_vehicle(vehicle_id), changes)
        return repo.save_vehicle(vehicle)


@app.delete("/v1/admin/vehicles/{vehicle_id}", tags=["Fleet"], dependencies=admin)
async def delete_vehicle(vehicle_id: str, repo: Repository = Depends(get_repo)):
    with api_errors("Delete vehicle"):
        if not repo.delete_vehicle(vehicle_id):
            raise not_found("Vehicle", vehicle_id)
        return {"success": True, "id": vehicle_id}


@app.get("/v1/admin/vehicles/{vehicle_id}/maintenance", tags=["Fleet"], dependencies=admin)
async def list_vehicle_maintenance(vehicle_id: str, repo: Repository = Depends(get_repo)):
    with api_errors("Fetch maintenance history"):
        repo.require_vehicle(vehicle_id)
        records = repo.list_maintenance_records(vehicle_id)
        return {"total": len(records), "records": records}


@app.post("/v1/admin/vehicles/{vehicle_id}/maintenance", tags=["Fleet"], status_code=201, dependencies=admin)
async def log_vehicle_maintenance(
    vehicle_id: str,
    request: MaintenanceRecordCreate,
    repo: Repository = Depends(get_repo),
):
    with api_errors("Log maintenance"):
        record = MaintenanceRecord(vehicle_id=vehicle_id, **request.model_dump())
        return FleetService(repo).log_service(record)


# =============================================================================
# Driver Endpoints
# =============================================================================

@app.get("/v1/admin/drivers", tags=["Drivers"], dependencies=admin)
async def list_drivers(
    status: Optional[str] = None,
    search: Optional[str] = Query(default=None, description="Name, email or employee ID contains"),
    repo: Repository = Depends(get_repo),
):
    with api_errors("Fetch drivers"):
        drivers = repo.list_drivers(status=status, search=search)
        return {"total": len(drivers), "drivers": drivers}


@app.post("/v1/admin/drivers", tags=["Drivers"], status_code=201, dependencies=admin)
async def create_driver(request: DriverCreate, repo: Repository = Depends(get_repo)):
    with api_errors("Create driver"):
        driver = DriverProfile(**request.model_dump(exclude_none=True))
        repo.save_driver(driver)
        logger.info("driver_created", driver_id=driver.id)
        return driver


@app.get("/v1/admin/drivers/{driver_id}", tags=["Drivers"], dependencies=admin)
async def get_driver(driver_id: str, repo: Repository = Depends(get_repo)):
    with api_errors("Fetch driver"):
        return repo.require_driver(driver_id)


@app.patch("/v1/admin/drivers/{driver_id}", tags=["Drivers"], dependencies=admin)
async def update_driver(
    driver_id: str,
    changes: dict[str, Any] = Body(...),
    repo: Repository = Depends(get_repo),
):
    with api_errors("Update driver"):
        driver = apply_updates(repo.require_driver(driver_id), changes)
        return repo.save_driver(driver)


@app.delete("/v1/admin/drivers/{driver_id}", tags=["Drivers"], dependencies=admin)
async def delete_driver(driver_id: str, repo: Repository = Depends(get_repo)):
    with api_errors("Delete driver"):
        if not repo.delete_driver(driver_id):
            raise not_found("Driver", driver_id)
        return {"success": True, "id": driver_id}


# =============================================================================
# Onboarding Endpoints
# =============================================================================

@app.get("/v1/admin/onboarding", tags=["Onboarding"], dependencies=admin)
async def list_onboarding(status: Optional[str] = None, repo: Repository = Depends(get_repo)):
    with api_errors("Fetch onboarding"):
        records = repo.list_onboarding(status=status)
        return {"total": len(records), "records": records}


@app.post("/v1/admin/onboarding", tags=["Onboarding"], status_code=201, dependencies=admin)
async def start_onboarding(request: OnboardingCreate, repo: Repository = Depends(get_repo)):
    with api_errors("Start onboarding"):
        return OnboardingService(repo).start(OnboardingRecord(**request.model_dump()))


@app.get("/v1/admin/onboarding/stats", tags=["Onboarding"], dependencies=admin)
async def onboarding_stats(repo: Repository = Depends(get_repo)):
    with api_errors("Fetch onboarding stats"):
        return OnboardingService(repo).stats()


@app.patch("/v1/admin/onboarding/{record_id}", tags=["Onboarding"], dependencies=admin)
async def update_onboarding(
    record_id: str,
    changes: dict[str, Any] = Body(...),
    repo: Repository = Depends(get_repo),
):
    with api_errors("Update onboarding"):
        return OnboardingService(repo).update(record_id, changes)


@app.get("/v1/admin/onboarding/documents", tags=["Onboarding"], dependencies=admin)
async def list_onboarding_documents(
    driver_email: Optional[str] = None,
    status: Optional[str] = None,
    repo: Repository = Depends(get_repo),
):
    with api_errors("Fetch onboarding documents"):
        documents = repo.list_onboarding_documents(driver_email=driver_email, status=status)
        return {"total": len(documents), "documents": documents}


@app.post("/v1/admin/onboarding/documents", tags=["Onboarding"], status_code=201, dependencies=admin)
async def upload_onboarding_document(request: DocumentUpload, repo: Repository = Depends(get_repo)):
    """Upload a document; a second upload of the same type replaces the first."""
    with api_errors("Upload onboarding document"):
        return OnboardingService(repo).upload_document(OnboardingDocument(**request.model_dump()))


@app.patch("/v1/admin/onboarding/documents/{document_id}", tags=["Onboarding"], dependencies=admin)
async def review_onboarding_document(
    document_id: str,
    request: DocumentReview,
    repo: Repository = Depends(get_repo),
):
    with api_errors("Review onboarding document"):
        return OnboardingService(repo).review_document(
            document_id,
            request.status,
            reviewed_by=request.reviewed_by,
            rejection_reason=request.rejection_reason,
        )


# =============================================================================
# Material Rate & Quote Endpoints
# =============================================================================

@app.get("/v1/admin/material-rates", tags=["Quotes"], dependencies=admin)
async def list_material_rates(active: Optional[bool] = None, repo: Repository = Depends(get_repo)):
    with api_errors("Fetch material rates"):
        rates = repo.list_material_rates(active=active)
        return {"total": len(rates), "material_rates": rates}


@app.post("/v1/admin/material-rates", tags=["Quotes"], status_code=201, dependencies=admin)
async def create_material_rate(request: MaterialRateCreate, repo: Repository = Depends(get_repo)):
    with api_errors("Create material rate"):
        return repo.save_material_rate(MaterialRate(**request.model_dump()))


@app.patch("/v1/admin/material-rates/{rate_id}", tags=["Quotes"], dependencies=admin)
async def update_material_rate(
    rate_id: str,
    changes: dict[str, Any] = Body(...),
    repo: Repository = Depends(get_repo),
):
    with api_errors("Update material rate"):
        rate = apply_updates(repo.require_material_rate(rate_id), changes)
        return repo.save_material_rate(rate)


@app.delete("/v1/admin/material-rates/{rate_id}", tags=["Quotes"], dependencies=admin)
async def delete_material_rate(rate_id: str, repo: Repository = Depends(get_repo)):
    with api_errors("Delete material rate"):
        if not repo.delete_material_rate(rate_id):
            raise not_found("Material rate", rate_id)
        return {"success": True, "id": rate_id}


@app.get("/v1/admin/quotes", tags=["Quotes"], dependencies=admin)
async def list_quotes(status: Optional[str] = None, repo: Repository = Depends(get_repo)):
    with api_errors("Fetch quotes"):
        quotes = repo.list_quotes(status=status)
        return {"total": len(quotes), "quotes": quotes}


@app.post("/v1/admin/quotes", tags=["Quotes"], status_code=201, dependencies=admin)
async def create_quote(request: QuoteCreate, repo: Repository = Depends(get_repo)):
    """Create a quote; total_profit is rate minus pay_rate."""
    with api_errors("Create quote"):
        return BillingService(repo).create_quote(Quote(**request.model_dump()))


@app.get("/v1/admin/quotes/{quote_id}", tags=["Quotes"], dependencies=admin)
async def get_quote(quote_id: str, repo: Repository = Depends(get_repo)):
    with api_errors("Fetch quote"):
        return repo.require_quote(quote_id)


@app.patch("/v1/admin/quotes/{quote_id}", tags=["Quotes"], dependencies=admin)
async def update_quote(
    quote_id: str,
    changes: dict[str, Any] = Body(...),
    repo: Repository = Depends(get_repo),
):
    with api_errors("Update quote"):
        return BillingService(repo).update_quote(quote_id, changes)


@app.delete("/v1/admin/quotes/{quote_id}", tags=["Quotes"], dependencies=admin)
async def delete_quote(quote_id: str, repo: Repository = Depends(get_repo)):
    with api_errors("Delete quote"):
        if not repo.delete_quote(quote_id):
            raise not_found("Quote", quote_id)
        return {"success": True, "id": quote_id}


@app.post("/v1/admin/quotes/{quote_id}/email-draft", tags=["Quotes"], dependencies=admin)
async def quote_email_draft(
    quote_id: str,
    request: Optional[EmailDraftRequest] = None,
    repo: Repository = Depends(get_repo),
):
    with api_errors("Build email draft"):
        sender = request.sender_name if request else "Dispatch"
        return BillingService(repo).quote_email_draft(quote_id, sender_name=sender)


# =============================================================================
# Factoring Endpoints
# =============================================================================

@app.get("/v1/admin/factoring", tags=["Billing"], dependencies=admin)
async def list_factoring(repo: Repository = Depends(get_repo)):
    with api_errors("Fetch factoring companies"):
        companies = repo.list_factoring_companies()
        return {"total": len(companies), "factoring_companies": companies}


@app.post("/v1/admin/factoring", tags=["Billing"], status_code=201, dependencies=admin)
async def create_factoring(request: FactoringCreate, repo: Repository = Depends(get_repo)):
    with api_errors("Create factoring company"):
        return repo.save_factoring_company(FactoringCompany(**request.model_dump()))


@app.get("/v1/admin/factoring/{company_id}", tags=["Billing"], dependencies=admin)
async def get_factoring(company_id: str, repo: Repository = Depends(get_repo)):
    with api_errors("Fetch factoring company"):
        return repo.require_factoring_company(company_id)


@app.patch("/v1/admin/factoring/{company_id}", tags=["Billing"], dependencies=admin)
async def update_factoring(
    company_id: str,
    changes: dict[str, Any] = Body(...),
    repo: Repository = Depends(get_repo),
):
    with api_errors("Update factoring company"):
        company = apply_updates(repo.require_factoring_company(company_id), changes)
        return repo.save_factoring_company(company)


@app.delete("/v1/admin/factoring/{company_id}", tags=["Billing"], dependencies=admin)
async def delete_factoring(company_id: str, repo: Repository = Depends(get_repo)):
    with api_errors("Delete factoring company"):
        if not repo.delete_factoring_company(company_id):
            raise not_found("Factoring company", company_id)
        return {"success": True, "id": company_id}


# =============================================================================
# Invoice Endpoints
# =============================================================================

@app.get("/v1/admin/invoices", tags=["Billing"], dependencies=admin)
async def list_invoices(
    status: Optional[str] = None,
    customer_id: Optional[str] = None,
    repo: Repository = Depends(get_repo),
):
    with api_errors("Fetch invoices"):
        invoices = repo.list_invoices(status=status, customer_id=customer_id)
        return {"total": len(invoices), "invoices": invoices}


@app.post("/v1/admin/invoices", tags=["Billing"], status_code=201, dependencies=admin)
async def create_invoice(request: InvoiceCreate, repo: Repository = Depends(get_repo)):
    """
    Create an invoice (or quote document).

    Numbers are assigned per prefix (INV-000001, QUO-000001) when not
    supplied; totals are computed from the line items.
    """
    with api_errors("Create invoice"):
        invoice = Invoice(**request.model_dump(exclude_none=True))
        return BillingService(repo).create_invoice(invoice)


@app.post("/v1/admin/invoices/from-tickets", tags=["Billing"], status_code=201, dependencies=admin)
async def create_invoice_from_tickets(request: TicketInvoiceRequest, repo: Repository = Depends(get_repo)):
    """Invoice a batch of tickets from one project using its rate sheet."""
    with api_errors("Generate invoice"):
        return BillingService(repo).invoice_from_tickets(request.ticket_ids, issued=request.issued_date)


@app.get("/v1/admin/invoices/{invoice_id}", tags=["Billing"], dependencies=admin)
async def get_invoice(invoice_id: str, repo: Repository = Depends(get_repo)):
    with api_errors("Fetch invoice"):
        return repo.require_invoice(invoice_id)


@app.patch("/v1/admin/invoices/{invoice_id}", tags=["Billing"], dependencies=admin)
async def update_invoice(
    invoice_id: str,
    changes: dict[str, Any] = Body(...),
    repo: Repository = Depends(get_repo),
):
    with api_errors("Update invoice"):
        return BillingService(repo).update_invoice(invoice_id, changes)


@app.delete("/v1/admin/invoices/{invoice_id}", tags=["Billing"], dependencies=admin)
async def delete_invoice(invoice_id: str, repo: Repository = Depends(get_repo)):
    with api_errors("Delete invoice"):
        if not repo.delete_invoice(invoice_id):
            raise not_found("Invoice", invoice_id)
        return {"success": True, "id": invoice_id}


# =============================================================================
# Ticket, Partner & Project Endpoints
# =============================================================================

@app.get("/v1/admin/tickets", tags=["Tickets"], dependencies=admin)
async def list_tickets(
    date_from: Optional[date] = Query(default=None, alias="from"),
    date_to: Optional[date] = Query(default=None, alias="to"),
    partner_id: Optional[str] = None,
    project_id: Optional[str] = None,
    include_voided: bool = True,
    repo: Repository = Depends(get_repo),
):
    with api_errors("Fetch tickets"):
        tickets = repo.list_tickets(
            date_from=date_from,
            date_to=date_to,
            partner_id=partner_id,
            project_id=project_id,
            include_voided=include_voided,
        )
        return {"total": len(tickets), "tickets": tickets}


@app.post("/v1/admin/tickets", tags=["Tickets"], status_code=201, dependencies=admin)
async def create_ticket(request: TicketCreate, repo: Repository = Depends(get_repo)):
    with api_errors("Create ticket"):
        return repo.save_ticket(Ticket(**request.model_dump()))


@app.get("/v1/admin/partners", tags=["Tickets"], dependencies=admin)
async def list_partners(repo: Repository = Depends(get_repo)):
    with api_errors("Fetch partners"):
        return {"partners": repo.list_partners()}


@app.get("/v1/admin/projects", tags=["Tickets"], dependencies=admin)
async def list_projects(customer_id: Optional[str] = None, repo: Repository = Depends(get_repo)):
    with api_errors("Fetch projects"):
        projects = repo.list_projects(customer_id=customer_id)
        return {"total": len(projects), "projects": projects}


@app.post("/v1/admin/projects", tags=["Tickets"], status_code=201, dependencies=admin)
async def create_project(request: ProjectCreate, repo: Repository = Depends(get_repo)):
    with api_errors("Create project"):
        return repo.save_project(Project(**request.model_dump()))


# =============================================================================
# Report Endpoints
# =============================================================================

@app.get("/v1/admin/profit-reports", tags=["Reports"], dependencies=admin)
async def profit_report(
    date_from: Optional[date] = Query(default=None, alias="from"),
    date_to: Optional[date] = Query(default=None, alias="to"),
    partner_id: Optional[str] = None,
    material: Optional[str] = None,
    include_voided: bool = False,
    group_by: GroupBy = GroupBy.NONE,
    output_format: Optional[str] = Query(default=None, alias="format", pattern="^(json|csv)$"),
    repo: Repository = Depends(get_repo),
):
    """
    Profit per ticket with totals and optional grouping.

    format=csv downloads the grouped rows (or items when ungrouped).
    """
    with api_errors("Profit report"):
        report = BillingService(repo).profit_report(
            group_by=group_by,
            date_from=date_from,
            date_to=date_to,
            partner_id=partner_id,
            material=material,
            include_voided=include_voided,
        )

        if output_format == "csv":
            filename = profit_report_filename(group_by.value)
            return Response(
                content=profit_report_csv(report),
                media_type="text/csv",
                headers={"Content-Disposition": f'attachment; filename="{filename}"'},
            )
        return report.to_dict()


@app.get("/v1/admin/financial-ops", tags=["Reports"], dependencies=admin)
async def financial_ops(repo: Repository = Depends(get_repo)):
    """Invoiced vs collected, overdue balances, AR aging and monthly revenue."""
    with api_errors("Financial ops summary"):
        return BillingService(repo).financial_summary()


# =============================================================================
# Customer Portal Endpoints
# =============================================================================

@app.get("/v1/customer/load-requests", tags=["Customer"])
async def list_load_requests(customer_id: str = Query(..., min_length=1), repo: Repository = Depends(get_repo)):
    with api_errors("Fetch load requests"):
        requests = repo.list_load_requests(customer_id=customer_id)
        return {"total": len(requests), "load_requests": requests}


@app.post("/v1/customer/load-requests", tags=["Customer"], status_code=201)
async def create_load_request(request: LoadRequestCreate, repo: Repository = Depends(get_repo)):
    with api_errors("Create load request"):
        load_request = LoadRequest(**request.model_dump())
        repo.save_load_request(load_request)
        logger.info("load_request_created", request_id=load_request.id, lane=load_request.lane)
        return load_request


@app.get("/v1/customer/invoices", tags=["Customer"])
async def list_customer_invoices(customer_id: str = Query(..., min_length=1), repo: Repository = Depends(get_repo)):
    with api_errors("Fetch invoices"):
        invoices = [
            inv for inv in repo.list_invoices(customer_id=customer_id)
            if inv.invoice_type == InvoiceType.INVOICE
        ]
        return {"total": len(invoices), "invoices": invoices}


@app.post("/v1/customer/invoices/{invoice_id}/pay", tags=["Customer"])
async def pay_invoice(
    invoice_id: str,
    customer_id: str = Query(..., min_length=1),
    repo: Repository = Depends(get_repo),
):
    """Mark an invoice paid (status Paid, paid_date now)."""
    with api_errors("Pay invoice"):
        return BillingService(repo).pay_invoice(invoice_id, customer_id=customer_id)


# =============================================================================
# ELD Integration Endpoints
# =============================================================================

@app.get("/v1/integrations/eld/ping", tags=["ELD"], dependencies=admin)
async def eld_ping():
    """Which ELD providers have credentials configured."""
    return {"providers": ping_providers(), "timestamp": datetime.utcnow().isoformat()}


@app.get("/v1/integrations/eld/{provider}/{endpoint}", tags=["ELD"], dependencies=admin)
async def eld_fetch(provider: str, endpoint: str):
    """
    Normalized data from an ELD provider.

    endpoint: driver-locations, truck-status or hos. Provider failures
    come back as an empty list.
    """
    with api_errors("ELD fetch"):
        eld = get_provider(provider)
        rows = await eld.fetch(endpoint)
        return {"provider": eld.key, "endpoint": endpoint, "data": rows}


# =============================================================================
# Server Lifecycle
# =============================================================================

@app.on_event("startup")
async def startup_event():
    """Initialize services on startup"""
    configure_logging()
    if not settings.validate_admin_token():
        logger.warning("admin_token_missing", detail="admin endpoints will reject every request")
    logger.info("server_starting", app=settings.APP_NAME, version=settings.APP_VERSION)


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("server_stopping")


# =============================================================================
# Main Entry Point (for direct execution)
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "haulops.server:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
