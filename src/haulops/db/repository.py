"""SQL repository for persistent storage."""

from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Optional, Type, TypeVar
from functools import lru_cache

from pydantic import BaseModel
from sqlalchemy import (
    create_engine,
    Column,
    String,
    Integer,
    Boolean,
    Date,
    DateTime,
    Text,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from ..config import settings
from ..errors import NotFoundError
from ..log import get_logger
from ..models import (
    ComplianceItem,
    DVIRDefect,
    DVIRInspection,
    DriverProfile,
    FactoringCompany,
    Invoice,
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
from ..models.enums import DateRange, MaintenancePriority, MaintenanceStatus

Base = declarative_base()
ModelT = TypeVar("ModelT", bound=BaseModel)

logger = get_logger(__name__)


# =============================================================================
# SQLAlchemy Models (Database Tables)
# =============================================================================
# Each table keeps the columns we filter/sort on plus the full model as JSON.

class ComplianceItemRecord(Base):
    """SQLAlchemy model for compliance_items table."""

    __tablename__ = "compliance_items"

    id = Column(String(36), primary_key=True)
    item_type = Column(String(100), nullable=False, index=True)
    entity = Column(String(255))
    expiration_date = Column(Date, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    full_data = Column(Text)


class DVIRRecord(Base):
    """SQLAlchemy model for dvir_inspections table."""

    __tablename__ = "dvir_inspections"

    id = Column(String(36), primary_key=True)
    driver_name = Column(String(255), nullable=False)
    truck_number = Column(String(50), nullable=False, index=True)
    inspection_type = Column(String(20))
    overall_status = Column(String(30), index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    full_data = Column(Text)


class DVIRDefectRecord(Base):
    """SQLAlchemy model for dvir_defects table."""

    __tablename__ = "dvir_defects"

    id = Column(String(36), primary_key=True)
    dvir_id = Column(String(36), nullable=False, index=True)
    severity = Column(String(20), index=True)
    is_corrected = Column(Boolean, default=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    full_data = Column(Text)


class MaintenanceRequestRecord(Base):
    """SQLAlchemy model for maintenance_requests table."""

    __tablename__ = "maintenance_requests"

    id = Column(String(36), primary_key=True)
    truck_number = Column(String(50), nullable=False, index=True)
    priority = Column(String(20), index=True)
    status = Column(String(20), index=True)
    can_drive_safely = Column(Boolean, default=True, index=True)
    dvir_id = Column(String(36), index=True)
    submitted_at = Column(DateTime, default=datetime.utcnow, index=True)
    full_data = Column(Text)


class VehicleRecord(Base):
    """SQLAlchemy model for vehicles table."""

    __tablename__ = "vehicles"

    id = Column(String(36), primary_key=True)
    truck_number = Column(String(50), nullable=False, unique=True, index=True)
    status = Column(String(20), index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    full_data = Column(Text)


class MaintenanceRecordRow(Base):
    """SQLAlchemy model for maintenance_records table."""

    __tablename__ = "maintenance_records"

    id = Column(String(36), primary_key=True)
    vehicle_id = Column(String(36), nullable=False, index=True)
    service_date = Column(Date, index=True)
    full_data = Column(Text)


class DriverRecord(Base):
    """SQLAlchemy model for drivers table."""

    __tablename__ = "drivers"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), index=True)
    employee_id = Column(String(50))
    status = Column(String(20), index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    full_data = Column(Text)


class OnboardingRecordRow(Base):
    """SQLAlchemy model for driver_onboarding table."""

    __tablename__ = "driver_onboarding"

    id = Column(String(36), primary_key=True)
    driver_email = Column(String(255), nullable=False, index=True)
    status = Column(String(20), index=True)
    started_at = Column(DateTime, default=datetime.utcnow, index=True)
    full_data = Column(Text)


class OnboardingDocumentRecord(Base):
    """SQLAlchemy model for driver_onboarding_documents table."""

    __tablename__ = "driver_onboarding_documents"

    id = Column(String(36), primary_key=True)
    driver_email = Column(String(255), nullable=False, index=True)
    document_type = Column(String(100), nullable=False)
    status = Column(String(20), index=True)
    uploaded_at = Column(DateTime, default=datetime.utcnow, index=True)
    full_data = Column(Text)

    __table_args__ = (
        UniqueConstraint("driver_email", "document_type", name="uq_onboarding_doc_type"),
    )


class MaterialRateRecord(Base):
    """SQLAlchemy model for material_rates table."""

    __tablename__ = "material_rates"

    id = Column(String(36), primary_key=True)
    material_name = Column(String(255), nullable=False, index=True)
    active = Column(Boolean, default=True, index=True)
    full_data = Column(Text)


class QuoteRecord(Base):
    """SQLAlchemy model for aggregate_quotes table."""

    __tablename__ = "aggregate_quotes"

    id = Column(String(36), primary_key=True)
    company = Column(String(255), nullable=False, index=True)
    status = Column(String(20), index=True)
    material_rate_id = Column(String(36))
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    full_data = Column(Text)


class FactoringCompanyRecord(Base):
    """SQLAlchemy model for factoring_companies table."""

    __tablename__ = "factoring_companies"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    full_data = Column(Text)


class LoadRequestRecord(Base):
    """SQLAlchemy model for load_requests table."""

    __tablename__ = "load_requests"

    id = Column(String(36), primary_key=True)
    customer_id = Column(String(36), nullable=False, index=True)
    status = Column(String(20), index=True)
    pickup_date = Column(Date)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    full_data = Column(Text)


class InvoiceRecord(Base):
    """SQLAlchemy model for invoices table."""

    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True)
    invoice_number = Column(String(30), nullable=False, unique=True, index=True)
    customer_id = Column(String(36), index=True)
    status = Column(String(20), index=True)
    issued_date = Column(Date, index=True)
    due_date = Column(Date, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    full_data = Column(Text)

    __table_args__ = (
        Index("ix_invoices_customer_status", "customer_id", "status"),
    )


class InvoiceSequenceRecord(Base):
    """Per-prefix invoice number counter."""

    __tablename__ = "invoice_sequences"

    prefix = Column(String(10), primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)


class TicketRecord(Base):
    """SQLAlchemy model for aggregate_tickets table."""

    __tablename__ = "aggregate_tickets"

    id = Column(String(36), primary_key=True)
    ticket_date = Column(Date, nullable=False, index=True)
    partner_id = Column(String(36), index=True)
    partner_name = Column(String(255))
    material = Column(String(255), index=True)
    project_id = Column(String(36), index=True)
    customer_id = Column(String(36), index=True)
    voided = Column(Boolean, default=False, index=True)
    status = Column(String(20), index=True)
    full_data = Column(Text)

    __table_args__ = (
        Index("ix_tickets_partner_date", "partner_id", "ticket_date"),
    )


class ProjectRecord(Base):
    """SQLAlchemy model for projects table."""

    __tablename__ = "projects"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    customer_id = Column(String(36), index=True)
    full_data = Column(Text)


# =============================================================================
# Helpers
# =============================================================================

def apply_updates(model: ModelT, changes: dict[str, Any]) -> ModelT:
    """
    Return a re-validated copy of a model with changes applied.

    The id never changes; updated_at is refreshed when the model has one.
    """
    data = model.model_dump()
    data.update({k: v for k, v in changes.items() if k != "id"})
    if "updated_at" in data:
        data["updated_at"] = datetime.utcnow()
    return type(model).model_validate(data)


def date_range_start(date_range: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """Start of a relative date range (today, week, month); None for all."""
    if not date_range or date_range == DateRange.ALL:
        return None
    now = now or datetime.utcnow()
    if date_range == DateRange.TODAY:
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if date_range == DateRange.WEEK:
        return now - timedelta(days=7)
    if date_range == DateRange.MONTH:
        return now - timedelta(days=30)
    return None


# =============================================================================
# Repository Class
# =============================================================================

class Repository:
    """Repository for database operations."""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.DATABASE_URL

        # Ensure data directory exists
        if self.database_url.startswith("sqlite:///"):
            db_path = Path(self.database_url.replace("sqlite:///", ""))
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(
            self.database_url,
            echo=settings.DEBUG,
            connect_args={"check_same_thread": False} if "sqlite" in self.database_url else {},
        )
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def init_db(self) -> None:
        """Create all tables."""
        Base.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    # =========================================================================
    # Generic helpers
    # =========================================================================

    @staticmethod
    def _upsert(session: Session, record_cls, model: BaseModel, **columns):
        """Insert or update a row and store the model blob."""
        record = session.get(record_cls, model.id)
        if record is None:
            record = record_cls(id=model.id)
            session.add(record)
        for name, value in columns.items():
            setattr(record, name, value)
        record.full_data = model.model_dump_json()
        return record

    @staticmethod
    def _load(model_cls: Type[ModelT], records) -> list[ModelT]:
        return [model_cls.model_validate_json(r.full_data) for r in records if r.full_data]

    def _get(self, record_cls, model_cls: Type[ModelT], record_id: str) -> Optional[ModelT]:
        with self.get_session() as session:
            record = session.get(record_cls, record_id)
            if record and record.full_data:
                return model_cls.model_validate_json(record.full_data)
            return None

    def _require(self, record_cls, model_cls: Type[ModelT], record_id: str, entity: str) -> ModelT:
        model = self._get(record_cls, model_cls, record_id)
        if model is None:
            raise NotFoundError(entity, record_id)
        return model

    def _delete(self, record_cls, record_id: str) -> bool:
        with self.get_session() as session:
            record = session.get(record_cls, record_id)
            if record:
                session.delete(record)
                session.commit()
                return True
            return False

    # =========================================================================
    # Compliance Operations
    # =========================================================================

    def save_compliance_item(self, item: ComplianceItem) -> ComplianceItem:
        """Save or update a compliance item."""
        with self.get_session() as session:
            self._upsert(
                session,
                ComplianceItemRecord,
                item,
                item_type=item.item_type,
                entity=item.entity,
                expiration_date=item.expiration_date,
                created_at=item.created_at,
                updated_at=item.updated_at,
            )
            session.commit()
            return item

    def require_compliance_item(self, item_id: str) -> ComplianceItem:
        return self._require(ComplianceItemRecord, ComplianceItem, item_id, "Compliance item")

    def list_compliance_items(
        self,
        upcoming_days: Optional[int] = None,
        item_type: Optional[str] = None,
        today: Optional[date] = None,
    ) -> list[ComplianceItem]:
        """
        List compliance items.

        With upcoming_days, only items expiring within that many days
        (already-expired included), soonest first.
        """
        with self.get_session() as session:
            query = session.query(ComplianceItemRecord)

            if item_type:
                query = query.filter(ComplianceItemRecord.item_type == item_type)

            if upcoming_days is not None:
                cutoff = (today or datetime.utcnow().date()) + timedelta(days=upcoming_days)
                query = query.filter(
                    ComplianceItemRecord.expiration_date.isnot(None),
                    ComplianceItemRecord.expiration_date <= cutoff,
                ).order_by(ComplianceItemRecord.expiration_date.asc())
            else:
                query = query.order_by(ComplianceItemRecord.created_at.desc())

            return self._load(ComplianceItem, query.all())

    def delete_compliance_item(self, item_id: str) -> bool:
        """Delete a compliance item."""
        return self._delete(ComplianceItemRecord, item_id)

    # =========================================================================
    # DVIR Operations
    # =========================================================================

    def save_dvir(
        self,
        dvir: DVIRInspection,
        defects: Optional[list[DVIRDefect]] = None,
        maintenance_requests: Optional[list[MaintenanceRequest]] = None,
    ) -> DVIRInspection:
        """Save a DVIR together with any defects and maintenance requests."""
        with self.get_session() as session:
            self._upsert(
                session,
                DVIRRecord,
                dvir,
                driver_name=dvir.driver_name,
                truck_number=dvir.truck_number,
                inspection_type=dvir.inspection_type,
                overall_status=dvir.overall_status,
                created_at=dvir.created_at,
                updated_at=dvir.updated_at,
            )
            for defect in defects or []:
                self._save_defect(session, defect)
            for request in maintenance_requests or []:
                self._save_maintenance_request(session, request)
            session.commit()
            return dvir

    def require_dvir(self, dvir_id: str) -> DVIRInspection:
        return self._require(DVIRRecord, DVIRInspection, dvir_id, "DVIR")

    def list_dvirs(
        self,
        status: Optional[str] = None,
        truck: Optional[str] = None,
        date_range: Optional[str] = None,
        limit: int = 50,
    ) -> list[DVIRInspection]:
        """List DVIRs, newest first."""
        with self.get_session() as session:
            query = session.query(DVIRRecord)

            if status and status != "all":
                query = query.filter(DVIRRecord.overall_status == status)
            if truck:
                query = query.filter(DVIRRecord.truck_number.ilike(f"%{truck}%"))

            start = date_range_start(date_range)
            if start is not None:
                query = query.filter(DVIRRecord.created_at >= start)

            query = query.order_by(DVIRRecord.created_at.desc()).limit(limit)
            return self._load(DVIRInspection, query.all())

    def _save_defect(self, session: Session, defect: DVIRDefect) -> None:
        self._upsert(
            session,
            DVIRDefectRecord,
            defect,
            dvir_id=defect.dvir_id,
            severity=defect.severity,
            is_corrected=defect.is_corrected,
            created_at=defect.created_at,
        )

    def save_defects(self, defects: list[DVIRDefect]) -> None:
        """Save defect records."""
        with self.get_session() as session:
            for defect in defects:
                self._save_defect(session, defect)
            session.commit()

    def list_defects(self, dvir_id: str) -> list[DVIRDefect]:
        """Defects recorded for a DVIR."""
        with self.get_session() as session:
            query = session.query(DVIRDefectRecord).filter(
                DVIRDefectRecord.dvir_id == dvir_id,
            ).order_by(DVIRDefectRecord.created_at.asc())
            return self._load(DVIRDefect, query.all())

    # =========================================================================
    # Maintenance Operations
    # =========================================================================

    def _save_maintenance_request(self, session: Session, request: MaintenanceRequest) -> None:
        self._upsert(
            session,
            MaintenanceRequestRecord,
            request,
            truck_number=request.truck_number,
            priority=request.priority,
            status=request.status,
            can_drive_safely=request.can_drive_safely,
            dvir_id=request.dvir_id,
            submitted_at=request.submitted_at,
        )

    def save_maintenance_request(self, request: MaintenanceRequest) -> MaintenanceRequest:
        """Save or update a maintenance request."""
        with self.get_session() as session:
            self._save_maintenance_request(session, request)
            session.commit()
            return request

    def require_maintenance_request(self, request_id: str) -> MaintenanceRequest:
        return self._require(MaintenanceRequestRecord, MaintenanceRequest, request_id, "Maintenance request")

    def list_maintenance_requests(
        self,
        filter_by: str = "all",
        truck_number: Optional[str] = None,
        dvir_id: Optional[str] = None,
    ) -> list[MaintenanceRequest]:
        """
        List maintenance requests, longest pending first.

        filter_by: all, critical, unsafe or pending
        """
        with self.get_session() as session:
            query = session.query(MaintenanceRequestRecord)

            if filter_by == "critical":
                query = query.filter(MaintenanceRequestRecord.priority == MaintenancePriority.CRITICAL.value)
            elif filter_by == "unsafe":
                query = query.filter(MaintenanceRequestRecord.can_drive_safely == False)  # noqa: E712
            elif filter_by == "pending":
                query = query.filter(MaintenanceRequestRecord.status == MaintenanceStatus.PENDING.value)

            if truck_number:
                query = query.filter(MaintenanceRequestRecord.truck_number == truck_number)
            if dvir_id:
                query = query.filter(MaintenanceRequestRecord.dvir_id == dvir_id)

            requests = self._load(MaintenanceRequest, query.all())
            return sorted(requests, key=lambda r: r.hours_pending, reverse=True)

    def get_maintenance_stats(self) -> dict:
        """Counts for the maintenance dashboard cards."""
        with self.get_session() as session:
            query = session.query(MaintenanceRequestRecord)
            return {
                "total": query.count(),
                "critical": query.filter_by(priority=MaintenancePriority.CRITICAL.value).count(),
                "unsafe": query.filter_by(can_drive_safely=False).count(),
                "pending": query.filter_by(status=MaintenanceStatus.PENDING.value).count(),
            }

    # =========================================================================
    # Vehicle Operations
    # =========================================================================

    def save_vehicle(self, vehicle: Vehicle) -> Vehicle:
        """Save or update a vehicle."""
        with self.get_session() as session:
            self._upsert(
                session,
                VehicleRecord,
                vehicle,
                truck_number=vehicle.truck_number,
                status=vehicle.status,
                created_at=vehicle.created_at,
            )
            session.commit()
            return vehicle

    def require_vehicle(self, vehicle_id: str) -> Vehicle:
        return self._require(VehicleRecord, Vehicle, vehicle_id, "Vehicle")

    def get_vehicle_by_truck_number(self, truck_number: str) -> Optional[Vehicle]:
        """Get a vehicle by its truck number."""
        with self.get_session() as session:
            record = session.query(VehicleRecord).filter_by(truck_number=truck_number).first()
            if record and record.full_data:
                return Vehicle.model_validate_json(record.full_data)
            return None

    def list_vehicles(self, status: Optional[str] = None) -> list[Vehicle]:
        """List vehicles ordered by truck number."""
        with self.get_session() as session:
            query = session.query(VehicleRecord)
            if status:
                query = query.filter(VehicleRecord.status == status)
            query = query.order_by(VehicleRecord.truck_number.asc())
            return self._load(Vehicle, query.all())

    def delete_vehicle(self, vehicle_id: str) -> bool:
        """Delete a vehicle and its service history."""
        with self.get_session() as session:
            session.query(MaintenanceRecordRow).filter_by(vehicle_id=vehicle_id).delete()
            session.commit()
        return self._delete(VehicleRecord, vehicle_id)

    def save_maintenance_record(self, record: MaintenanceRecord) -> MaintenanceRecord:
        """Save a completed service record."""
        with self.get_session() as session:
            self._upsert(
                session,
                MaintenanceRecordRow,
                record,
                vehicle_id=record.vehicle_id,
                service_date=record.service_date,
            )
            session.commit()
            return record

    def list_maintenance_records(self, vehicle_id: str) -> list[MaintenanceRecord]:
        """Service history for a vehicle, most recent first."""
        with self.get_session() as session:
            query = session.query(MaintenanceRecordRow).filter_by(
                vehicle_id=vehicle_id,
            ).order_by(MaintenanceRecordRow.service_date.desc())
            return self._load(MaintenanceRecord, query.all())

    # =========================================================================
    # Driver Operations
    # =========================================================================

    def save_driver(self, driver: DriverProfile) -> DriverProfile:
        """Save or update a driver profile."""
        with self.get_session() as session:
            self._upsert(
                session,
                DriverRecord,
                driver,
                name=driver.name,
                email=driver.email,
                employee_id=driver.employee_id,
                status=driver.status,
                created_at=driver.created_at,
            )
            session.commit()
            return driver

    def require_driver(self, driver_id: str) -> DriverProfile:
        return self._require(DriverRecord, DriverProfile, driver_id, "Driver")

    def list_drivers(self, status: Optional[str] = None, search: Optional[str] = None) -> list[DriverProfile]:
        """List drivers by name, optionally filtered by status or name/email search."""
        with self.get_session() as session:
            query = session.query(DriverRecord)
            if status:
                query = query.filter(DriverRecord.status == status)
            if search:
                pattern = f"%{search}%"
                query = query.filter(
                    DriverRecord.name.ilike(pattern)
                    | DriverRecord.email.ilike(pattern)
                    | DriverRecord.employee_id.ilike(pattern)
                )
            query = query.order_by(DriverRecord.name.asc())
            return self._load(DriverProfile, query.all())

    def delete_driver(self, driver_id: str) -> bool:
        """Delete a driver profile."""
        return self._delete(DriverRecord, driver_id)

    # =========================================================================
    # Onboarding Operations
    # =========================================================================

    def save_onboarding(self, record: OnboardingRecord) -> OnboardingRecord:
        """Save or update an onboarding record."""
        with self.get_session() as session:
            self._upsert(
                session,
                OnboardingRecordRow,
                record,
                driver_email=record.driver_email,
                status=record.status,
                started_at=record.started_at,
            )
            session.commit()
            return record

    def require_onboarding(self, record_id: str) -> OnboardingRecord:
        return self._require(OnboardingRecordRow, OnboardingRecord, record_id, "Onboarding record")

    def list_onboarding(self, status: Optional[str] = None) -> list[OnboardingRecord]:
        """Onboarding records, most recently started first."""
        with self.get_session() as session:
            query = session.query(OnboardingRecordRow)
            if status and status != "all":
                query = query.filter(OnboardingRecordRow.status == status)
            query = query.order_by(OnboardingRecordRow.started_at.desc())
            return self._load(OnboardingRecord, query.all())

    def save_onboarding_document(self, document: OnboardingDocument) -> OnboardingDocument:
        """
        Upsert a document by (driver_email, document_type).

        Re-uploading a document type replaces the previous upload.
        """
        with self.get_session() as session:
            existing = session.query(OnboardingDocumentRecord).filter_by(
                driver_email=document.driver_email,
                document_type=document.document_type,
            ).first()
            if existing is not None and existing.id != document.id:
                document = document.model_copy(update={"id": existing.id})

            self._upsert(
                session,
                OnboardingDocumentRecord,
                document,
                driver_email=document.driver_email,
                document_type=document.document_type,
                status=document.status,
                uploaded_at=document.uploaded_at,
            )
            session.commit()
            return document

    def require_onboarding_document(self, document_id: str) -> OnboardingDocument:
        return self._require(OnboardingDocumentRecord, OnboardingDocument, document_id, "Onboarding document")

    def list_onboarding_documents(
        self,
        driver_email: Optional[str] = None,
        status: Optional[str] = None,
    ) -> list[OnboardingDocument]:
        """Onboarding documents, most recently uploaded first."""
        with self.get_session() as session:
            query = session.query(OnboardingDocumentRecord)
            if driver_email:
                query = query.filter(OnboardingDocumentRecord.driver_email == driver_email)
            if status:
                query = query.filter(OnboardingDocumentRecord.status == status)
            query = query.order_by(OnboardingDocumentRecord.uploaded_at.desc())
            return self._load(OnboardingDocument, query.all())

    def get_onboarding_stats(self, today: Optional[date] = None) -> dict:
        """Counts for the onboarding dashboard."""
        from ..analysis.expiry import is_expired

        today = today or datetime.utcnow().date()
        since = datetime.combine(today, datetime.min.time()) - timedelta(days=30)

        completed_recent = [
            r for r in self.list_onboarding(status="completed")
            if r.completed_at and r.completed_at >= since
        ]
        documents = self.list_onboarding_documents()

        with self.get_session() as session:
            in_progress = session.query(OnboardingRecordRow).filter_by(status="in_progress").count()

        return {
            "in_progress": in_progress,
            "completed_last_30_days": len(completed_recent),
            "pending_documents": sum(1 for d in documents if d.status == "uploaded"),
            "expired_documents": sum(
                1 for d in documents
                if d.expiration_date and is_expired(d.expiration_date, today=today)
            ),
        }

    # =========================================================================
    # Material Rate & Quote Operations
    # =========================================================================

    def save_material_rate(self, rate: MaterialRate) -> MaterialRate:
        """Save or update a material rate."""
        with self.get_session() as session:
            self._upsert(
                session,
                MaterialRateRecord,
                rate,
                material_name=rate.material_name,
                active=rate.active,
            )
            session.commit()
            return rate

    def get_material_rate(self, rate_id: str) -> Optional[MaterialRate]:
        """Get a material rate by ID."""
        return self._get(MaterialRateRecord, MaterialRate, rate_id)

    def require_material_rate(self, rate_id: str) -> MaterialRate:
        return self._require(MaterialRateRecord, MaterialRate, rate_id, "Material rate")

    def list_material_rates(self, active: Optional[bool] = None) -> list[MaterialRate]:
        """Material rates by name."""
        with self.get_session() as session:
            query = session.query(MaterialRateRecord)
            if active is not None:
                query = query.filter(MaterialRateRecord.active == active)
            query = query.order_by(MaterialRateRecord.material_name.asc())
            return self._load(MaterialRate, query.all())

    def delete_material_rate(self, rate_id: str) -> bool:
        """Delete a material rate."""
        return self._delete(MaterialRateRecord, rate_id)

    def save_quote(self, quote: Quote) -> Quote:
        """Save or update a quote."""
        with self.get_session() as session:
            self._upsert(
                session,
                QuoteRecord,
                quote,
                company=quote.company,
                status=quote.status,
                material_rate_id=quote.material_rate_id,
                created_at=quote.created_at,
            )
            session.commit()
            return quote

    def get_quote(self, quote_id: str) -> Optional[Quote]:
        """Get a quote by ID."""
        return self._get(QuoteRecord, Quote, quote_id)

    def require_quote(self, quote_id: str) -> Quote:
        return self._require(QuoteRecord, Quote, quote_id, "Quote")

    def list_quotes(self, status: Optional[str] = None) -> list[Quote]:
        """Quotes, newest first."""
        with self.get_session() as session:
            query = session.query(QuoteRecord)
            if status:
                query = query.filter(QuoteRecord.status == status)
            query = query.order_by(QuoteRecord.created_at.desc())
            return self._load(Quote, query.all())

    def delete_quote(self, quote_id: str) -> bool:
        """Delete a quote."""
        return self._delete(QuoteRecord, quote_id)

    # =========================================================================
    # Factoring Operations
    # =========================================================================

    def save_factoring_company(self, company: FactoringCompany) -> FactoringCompany:
        """Save or update a factoring company."""
        with self.get_session() as session:
            self._upsert(
                session,
                FactoringCompanyRecord,
                company,
                name=company.name,
                created_at=company.created_at,
            )
            session.commit()
            return company

    def get_factoring_company(self, company_id: str) -> Optional[FactoringCompany]:
        """Get a factoring company by ID."""
        return self._get(FactoringCompanyRecord, FactoringCompany, company_id)

    def require_factoring_company(self, company_id: str) -> FactoringCompany:
        return self._require(FactoringCompanyRecord, FactoringCompany, company_id, "Factoring company")

    def list_factoring_companies(self) -> list[FactoringCompany]:
        """Factoring companies, newest first."""
        with self.get_session() as session:
            query = session.query(FactoringCompanyRecord).order_by(FactoringCompanyRecord.created_at.desc())
            return self._load(FactoringCompany, query.all())

    def delete_factoring_company(self, company_id: str) -> bool:
        """Delete a factoring company."""
        return self._delete(FactoringCompanyRecord, company_id)

    # =========================================================================
    # Load Request Operations
    # =========================================================================

    def save_load_request(self, load_request: LoadRequest) -> LoadRequest:
        """Save or update a load request."""
        with self.get_session() as session:
            self._upsert(
                session,
                LoadRequestRecord,
                load_request,
                customer_id=load_request.customer_id,
                status=load_request.status,
                pickup_date=load_request.pickup_date,
                created_at=load_request.created_at,
            )
            session.commit()
            return load_request

    def list_load_requests(
        self,
        customer_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> list[LoadRequest]:
        """Load requests, newest first."""
        with self.get_session() as session:
            query = session.query(LoadRequestRecord)
            if customer_id:
                query = query.filter(LoadRequestRecord.customer_id == customer_id)
            if status:
                query = query.filter(LoadRequestRecord.status == status)
            query = query.order_by(LoadRequestRecord.created_at.desc())
            return self._load(LoadRequest, query.all())

    # =========================================================================
    # Invoice Operations
    # =========================================================================

    def next_invoice_number(self, prefix: str) -> str:
        """Allocate the next number in a prefix's sequence (INV-000001)."""
        from ..billing import format_invoice_number

        with self.get_session() as session:
            sequence = session.get(InvoiceSequenceRecord, prefix)
            if sequence is None:
                sequence = InvoiceSequenceRecord(prefix=prefix, last_value=0)
                session.add(sequence)
            sequence.last_value += 1
            value = sequence.last_value
            session.commit()
            return format_invoice_number(prefix, value)

    def save_invoice(self, invoice: Invoice) -> Invoice:
        """Save or update an invoice."""
        with self.get_session() as session:
            self._upsert(
                session,
                InvoiceRecord,
                invoice,
                invoice_number=invoice.invoice_number,
                customer_id=invoice.customer_id,
                status=invoice.status,
                issued_date=invoice.issued_date,
                due_date=invoice.due_date,
                created_at=invoice.created_at,
            )
            session.commit()
            return invoice

    def require_invoice(self, invoice_id: str) -> Invoice:
        return self._require(InvoiceRecord, Invoice, invoice_id, "Invoice")

    def list_invoices(
        self,
        status: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> list[Invoice]:
        """Invoices, newest first."""
        with self.get_session() as session:
            query = session.query(InvoiceRecord)
            if status:
                query = query.filter(InvoiceRecord.status == status)
            if customer_id:
                query = query.filter(InvoiceRecord.customer_id == customer_id)
            query = query.order_by(InvoiceRecord.created_at.desc())
            return self._load(Invoice, query.all())

    def delete_invoice(self, invoice_id: str) -> bool:
        """Delete an invoice."""
        return self._delete(InvoiceRecord, invoice_id)

    def save_ticket_invoice(self, invoice: Invoice, tickets: list[Ticket]) -> Invoice:
        """Save a ticket-generated invoice and mark its tickets invoiced."""
        with self.get_session() as session:
            self._upsert(
                session,
                InvoiceRecord,
                invoice,
                invoice_number=invoice.invoice_number,
                customer_id=invoice.customer_id,
                status=invoice.status,
                issued_date=invoice.issued_date,
                due_date=invoice.due_date,
                created_at=invoice.created_at,
            )
            for ticket in tickets:
                invoiced = ticket.model_copy(update={
                    "status": "invoiced",
                    "invoice_number": invoice.invoice_number,
                    "updated_at": datetime.utcnow(),
                })
                self._save_ticket(session, invoiced)
            session.commit()
            logger.info(
                "ticket_invoice_saved",
                invoice_number=invoice.invoice_number,
                ticket_count=len(tickets),
            )
            return invoice

    # =========================================================================
    # Ticket & Project Operations
    # =========================================================================

    def _save_ticket(self, session: Session, ticket: Ticket) -> None:
        self._upsert(
            session,
            TicketRecord,
            ticket,
            ticket_date=ticket.ticket_date,
            partner_id=ticket.partner_id,
            partner_name=ticket.partner_name,
            material=ticket.material,
            project_id=ticket.project_id,
            customer_id=ticket.customer_id,
            voided=ticket.voided,
            status=ticket.status,
        )

    def save_ticket(self, ticket: Ticket) -> Ticket:
        """Save or update a ticket."""
        with self.get_session() as session:
            self._save_ticket(session, ticket)
            session.commit()
            return ticket

    def save_tickets(self, tickets: list[Ticket]) -> int:
        """Save tickets in one transaction. Returns the number saved."""
        with self.get_session() as session:
            for ticket in tickets:
                self._save_ticket(session, ticket)
            session.commit()
            return len(tickets)

    def get_tickets(self, ticket_ids: list[str]) -> list[Ticket]:
        """Tickets by ID (missing IDs are skipped)."""
        with self.get_session() as session:
            query = session.query(TicketRecord).filter(TicketRecord.id.in_(ticket_ids))
            return self._load(Ticket, query.all())

    def list_tickets(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        partner_id: Optional[str] = None,
        project_id: Optional[str] = None,
        include_voided: bool = True,
    ) -> list[Ticket]:
        """Tickets ordered by date."""
        with self.get_session() as session:
            query = session.query(TicketRecord)
            if date_from:
                query = query.filter(TicketRecord.ticket_date >= date_from)
            if date_to:
                query = query.filter(TicketRecord.ticket_date <= date_to)
            if partner_id:
                query = query.filter(TicketRecord.partner_id == partner_id)
            if project_id:
                query = query.filter(TicketRecord.project_id == project_id)
            if not include_voided:
                query = query.filter(TicketRecord.voided == False)  # noqa: E712
            query = query.order_by(TicketRecord.ticket_date.asc())
            return self._load(Ticket, query.all())

    def list_partners(self) -> list[dict[str, str]]:
        """Distinct hauling partners seen on tickets."""
        with self.get_session() as session:
            rows = session.query(
                TicketRecord.partner_id, TicketRecord.partner_name,
            ).filter(
                TicketRecord.partner_id.isnot(None),
            ).distinct().all()
            partners = {pid: name or pid for pid, name in rows}
            return [
                {"id": pid, "name": name}
                for pid, name in sorted(partners.items(), key=lambda p: p[1].lower())
            ]

    def save_project(self, project: Project) -> Project:
        """Save or update a project."""
        with self.get_session() as session:
            self._upsert(
                session,
                ProjectRecord,
                project,
                name=project.name,
                customer_id=project.customer_id,
            )
            session.commit()
            return project

    def require_project(self, project_id: str) -> Project:
        return self._require(ProjectRecord, Project, project_id, "Project")

    def list_projects(self, customer_id: Optional[str] = None) -> list[Project]:
        """Projects by name."""
        with self.get_session() as session:
            query = session.query(ProjectRecord)
            if customer_id:
                query = query.filter(ProjectRecord.customer_id == customer_id)
            query = query.order_by(ProjectRecord.name.asc())
            return self._load(Project, query.all())

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats(self) -> dict:
        """Get database statistics."""
        with self.get_session() as session:
            return {
                "compliance_items": session.query(ComplianceItemRecord).count(),
                "dvirs": {
                    "total": session.query(DVIRRecord).count(),
                    "with_defects": session.query(DVIRRecord).filter_by(overall_status="defects_noted").count(),
                },
                "maintenance": {
                    "total": session.query(MaintenanceRequestRecord).count(),
                    "pending": session.query(MaintenanceRequestRecord).filter_by(status="Pending").count(),
                },
                "vehicles": session.query(VehicleRecord).count(),
                "drivers": {
                    "total": session.query(DriverRecord).count(),
                    "active": session.query(DriverRecord).filter_by(status="Active").count(),
                },
                "quotes": session.query(QuoteRecord).count(),
                "invoices": {
                    "total": session.query(InvoiceRecord).count(),
                    "paid": session.query(InvoiceRecord).filter_by(status="Paid").count(),
                },
                "tickets": session.query(TicketRecord).count(),
                "load_requests": session.query(LoadRequestRecord).count(),
            }


@lru_cache
def get_repository() -> Repository:
    """Get cached repository instance."""
    repo = Repository()
    repo.init_db()
    return repo
