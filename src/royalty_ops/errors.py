"""Domain exceptions shared by services, the API and the CLI."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID


class RoyaltyOpsError(Exception):
    """Base class for domain errors."""

    code = "DOMAIN_ERROR"


class InvalidTransitionError(RoyaltyOpsError):
    """Raised when an invalid state transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = str(from_status)
        self.to_status = str(to_status)
        self.reason = reason
        msg = f"Invalid transition from '{self.from_status}' to '{self.to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class NotFoundError(RoyaltyOpsError):
    """Raised when a row does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: UUID | str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class SplitValidationError(RoyaltyOpsError):
    """Raised when ownership splits for a copyright do not total 100%."""

    code = "INVALID_SPLITS"

    def __init__(self, copyright_id: UUID | str | None, total: Decimal):
        self.copyright_id = copyright_id
        self.total = total
        super().__init__(
            f"Ownership splits for copyright {copyright_id} total {total}%, expected 100%"
        )


class UnprocessWindowError(RoyaltyOpsError):
    """Raised when a batch was processed too long ago to be reversed."""

    code = "UNPROCESS_WINDOW_EXPIRED"

    def __init__(self, batch_id: UUID | str, processed_at: datetime, window_days: int):
        self.batch_id = batch_id
        self.processed_at = processed_at
        self.window_days = window_days
        super().__init__(
            f"Batch {batch_id} was processed at {processed_at.isoformat()}; "
            f"unprocessing is only allowed within {window_days} days"
        )


class StatementMappingError(RoyaltyOpsError):
    """Raised when a statement is missing columns required for import."""

    code = "STATEMENT_MAPPING_ERROR"

    def __init__(self, missing_fields: list[str]):
        self.missing_fields = missing_fields
        super().__init__(
            "Statement is missing required columns: " + ", ".join(missing_fields)
        )


class BatchValidationError(RoyaltyOpsError):
    """Raised when a batch fails pre-processing validation."""

    code = "BATCH_VALIDATION_FAILED"

    def __init__(self, batch_id: UUID | str, errors: list[str]):
        self.batch_id = batch_id
        self.errors = errors
        super().__init__(f"Batch {batch_id} failed validation: " + "; ".join(errors))
