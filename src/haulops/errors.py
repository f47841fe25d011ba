"""Domain exceptions raised by repository and service code."""


class HaulOpsError(Exception):
    """Base class for HaulOps errors."""


class NotFoundError(HaulOpsError):
    """A referenced record does not exist."""

    def __init__(self, entity: str, record_id: str):
        self.entity = entity
        self.record_id = record_id
        super().__init__(f"{entity} not found: {record_id}")


class InvalidRequestError(HaulOpsError):
    """Input is missing required fields or violates a business rule."""
