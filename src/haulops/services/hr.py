"""Driver onboarding workflow."""

from typing import Any, Optional

from ..db import Repository, apply_updates
from ..errors import InvalidRequestError
from ..log import get_logger
from ..models.driver import OnboardingDocument, OnboardingRecord
from ..models.enums import DocumentStatus, OnboardingStatus

logger = get_logger(__name__)


class OnboardingService:
    """Onboarding records and document review."""

    def __init__(self, repository: Repository):
        self.repository = repository

    def start(self, record: OnboardingRecord) -> OnboardingRecord:
        self.repository.save_onboarding(record)
        logger.info("onboarding_started", record_id=record.id, driver_email=record.driver_email)
        return record

    def update(self, record_id: str, changes: dict[str, Any]) -> OnboardingRecord:
        """Patch an onboarding record; completing it stamps completed_at."""
        record = self.repository.require_onboarding(record_id)
        was_completed = record.status == OnboardingStatus.COMPLETED

        record = apply_updates(record, changes)
        if record.status == OnboardingStatus.COMPLETED and not was_completed:
            record.complete()
            logger.info("onboarding_completed", record_id=record.id, driver_email=record.driver_email)

        self.repository.save_onboarding(record)
        return record

    def upload_document(self, document: OnboardingDocument) -> OnboardingDocument:
        """Store a document, replacing an earlier upload of the same type."""
        saved = self.repository.save_onboarding_document(document)
        logger.info(
            "onboarding_document_uploaded",
            driver_email=saved.driver_email,
            document_type=saved.document_type,
        )
        return saved

    def review_document(
        self,
        document_id: str,
        status: DocumentStatus,
        reviewed_by: Optional[str] = None,
        rejection_reason: Optional[str] = None,
    ) -> OnboardingDocument:
        """
        Approve or reject an uploaded document.

        Raises:
            NotFoundError: Document does not exist
            InvalidRequestError: status is not approved or rejected
        """
        document = self.repository.require_onboarding_document(document_id)

        if status == DocumentStatus.APPROVED:
            document.approve(reviewed_by or "HR")
        elif status == DocumentStatus.REJECTED:
            document.reject(rejection_reason)
        else:
            raise InvalidRequestError("Review status must be approved or rejected")

        self.repository.save_onboarding_document(document)
        logger.info("onboarding_document_reviewed", document_id=document.id, status=document.status)
        return document

    def stats(self) -> dict:
        return self.repository.get_onboarding_stats()
