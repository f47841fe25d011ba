"""
Fleet Service - DVIR intake and maintenance workflow.

A submitted DVIR fans out into one defect record and one maintenance
request per defective checklist item. Mechanics close the loop by
marking the DVIR's defects corrected.
"""

from datetime import date, datetime
from typing import Optional

from ..analysis.dvir import build_defect, build_maintenance_request
from ..db import Repository
from ..log import get_logger
from ..models.dvir import DVIRInspection
from ..models.enums import DVIRStatus, MaintenanceStatus
from ..models.fleet import MaintenanceRecord, MaintenanceRequest

logger = get_logger(__name__)

DEFAULT_CORRECTION_NOTES = "Marked as corrected via DVIR dashboard"


class FleetService:
    """DVIR and maintenance operations on top of the repository."""

    def __init__(self, repository: Repository):
        self.repository = repository

    def submit_dvir(self, dvir: DVIRInspection, driver_phone: Optional[str] = None) -> DVIRInspection:
        """
        Save a DVIR with its defects and maintenance requests.

        overall_status becomes defects_noted when there are defective items
        and the caller did not set a status explicitly.

        Args:
            dvir: Inspection as submitted by the driver
            driver_phone: Callback number copied onto maintenance requests

        Returns:
            The saved DVIR
        """
        defective = dvir.defective_items()
        if defective and "overall_status" not in dvir.model_fields_set:
            dvir.overall_status = DVIRStatus.DEFECTS_NOTED.value

        defects = [build_defect(dvir, item) for item in defective]
        requests = [build_maintenance_request(dvir, item, driver_phone) for item in defective]

        self.repository.save_dvir(dvir, defects=defects, maintenance_requests=requests)

        logger.info(
            "dvir_created",
            dvir_id=dvir.id,
            truck_number=dvir.truck_number,
            defect_count=len(defects),
            unsafe=sum(1 for r in requests if not r.can_drive_safely),
        )
        return dvir

    def update_dvir(
        self,
        dvir_id: str,
        defects_corrected: Optional[bool] = None,
        mechanic_signature: Optional[str] = None,
        correction_notes: Optional[str] = None,
    ) -> DVIRInspection:
        """
        Apply a mechanic's update to a DVIR.

        Marking defects corrected flips the DVIR to defects_corrected and
        closes every defect recorded for it.

        Raises:
            NotFoundError: DVIR does not exist
        """
        dvir = self.repository.require_dvir(dvir_id)

        if defects_corrected is not None:
            dvir.defects_corrected = defects_corrected
            if defects_corrected:
                dvir.overall_status = DVIRStatus.DEFECTS_CORRECTED.value
        if mechanic_signature:
            dvir.mechanic_signature = mechanic_signature

        dvir.updated_at = datetime.utcnow()
        self.repository.save_dvir(dvir)

        if defects_corrected:
            defects = self.repository.list_defects(dvir_id)
            for defect in defects:
                defect.mark_corrected(
                    corrected_by=mechanic_signature or "System",
                    notes=correction_notes or DEFAULT_CORRECTION_NOTES,
                )
            self.repository.save_defects(defects)
            logger.info("dvir_defects_corrected", dvir_id=dvir_id, defect_count=len(defects))

        return dvir

    def update_request_status(
        self,
        request_id: str,
        status: MaintenanceStatus,
        scheduled_date: Optional[date] = None,
    ) -> MaintenanceRequest:
        """
        Move a maintenance request to a new status.

        Raises:
            NotFoundError: Request does not exist
        """
        request = self.repository.require_maintenance_request(request_id)
        request.update_status(status, scheduled_date=scheduled_date)
        self.repository.save_maintenance_request(request)
        logger.info("maintenance_status_updated", request_id=request_id, status=request.status)
        return request

    def log_service(self, record: MaintenanceRecord) -> MaintenanceRecord:
        """
        Record completed service on a vehicle.

        Raises:
            NotFoundError: Vehicle does not exist
        """
        vehicle = self.repository.require_vehicle(record.vehicle_id)
        self.repository.save_maintenance_record(record)

        if record.mileage and record.mileage > vehicle.mileage:
            vehicle.mileage = record.mileage
            self.repository.save_vehicle(vehicle)

        logger.info("maintenance_logged", vehicle_id=vehicle.id, service_type=record.service_type)
        return record
