"""Status state machines with transition validation.

Covers the reconciliation batch lifecycle, the payout workflow stage and
system alert status.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from royalty_ops.errors import InvalidTransitionError

if TYPE_CHECKING:
    from royalty_ops.models import ReconciliationBatch


class BatchStatus(str, Enum):
    """Reconciliation batch status values."""

    PENDING = "Pending"
    IMPORTED = "Imported"
    PROCESSED = "Processed"


class BatchStateMachine:
    """State machine for reconciliation batch status transitions.

    Allowed transitions:
    - Pending → Imported (statement imported)
    - Pending → Processed (allocations already present, e.g. after unprocess)
    - Imported → Processed
    - Imported → Pending (import cleared)
    - Processed → Pending (unprocess)
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        BatchStatus.PENDING: [BatchStatus.IMPORTED, BatchStatus.PROCESSED],
        BatchStatus.IMPORTED: [BatchStatus.PROCESSED, BatchStatus.PENDING],
        BatchStatus.PROCESSED: [BatchStatus.PENDING],
    }

    # Statuses where allocations can be added or edited
    ALLOCATIONS_MUTABLE = {
        BatchStatus.PENDING,
        BatchStatus.IMPORTED,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return [s.value for s in cls.VALID_TRANSITIONS.get(current_status, [])]

    @classmethod
    def is_unprocess(cls, from_status: str, to_status: str) -> bool:
        """Check if this transition reverses processing (Processed → Pending)."""
        return from_status == BatchStatus.PROCESSED and to_status == BatchStatus.PENDING

    @classmethod
    def can_modify_allocations(cls, status: str) -> bool:
        """Check if allocations can be imported or edited in this status."""
        return status in cls.ALLOCATIONS_MUTABLE

    @classmethod
    def can_process(cls, status: str) -> bool:
        """Check if a batch in this status may be processed."""
        return cls.can_transition(status, BatchStatus.PROCESSED)

    @classmethod
    def validate_batch_for_transition(
        cls,
        batch: ReconciliationBatch,
        to_status: str,
        allocation_count: int = 0,
    ) -> list[str]:
        """Validate a batch for a specific transition, returning any errors.

        Returns list of error messages (empty if valid).
        """
        errors: list[str] = []
        from_status = batch.status

        if not cls.can_transition(from_status, to_status):
            errors.append(f"Cannot transition from '{from_status}' to '{to_status}'")
            return errors

        if to_status == BatchStatus.PROCESSED:
            if allocation_count == 0:
                errors.append("Batch has no royalty allocations")

        elif to_status == BatchStatus.PENDING and from_status == BatchStatus.PROCESSED:
            if batch.processed_at is None:
                errors.append("Batch has no processing timestamp")

        return errors


class PayoutStatus(str, Enum):
    """Payout workflow stages."""

    PENDING = "pending"
    APPROVED = "approved"
    PROCESSING = "processing"
    PAID = "paid"
    ON_HOLD = "on_hold"
    REVERSED = "reversed"


class PayoutStateMachine:
    """State machine for payout workflow stages.

    pending → approved → processing → paid, with on_hold reachable from the
    three open stages and released back to pending. Reversed is terminal
    and is only set when the originating batch is unprocessed.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayoutStatus.PENDING: [PayoutStatus.APPROVED, PayoutStatus.ON_HOLD, PayoutStatus.REVERSED],
        PayoutStatus.APPROVED: [
            PayoutStatus.PROCESSING,
            PayoutStatus.ON_HOLD,
            PayoutStatus.REVERSED,
        ],
        PayoutStatus.PROCESSING: [PayoutStatus.PAID, PayoutStatus.ON_HOLD],
        PayoutStatus.ON_HOLD: [PayoutStatus.PENDING, PayoutStatus.REVERSED],
        PayoutStatus.PAID: [],
        PayoutStatus.REVERSED: [],
    }

    # Stages from which the originating batch may still be unprocessed
    REVERSIBLE = {
        PayoutStatus.PENDING,
        PayoutStatus.APPROVED,
        PayoutStatus.ON_HOLD,
        PayoutStatus.REVERSED,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        return to_status in cls.VALID_TRANSITIONS.get(from_status, [])

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def is_reversible(cls, status: str) -> bool:
        """Check if a payout in this stage can be reversed by unprocessing."""
        return status in cls.REVERSIBLE


class AlertStatus(str, Enum):
    """System alert status values."""

    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


class AlertStateMachine:
    """active → acknowledged → resolved, or active → resolved directly."""

    VALID_TRANSITIONS: dict[str, list[str]] = {
        AlertStatus.ACTIVE: [AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED],
        AlertStatus.ACKNOWLEDGED: [AlertStatus.RESOLVED],
        AlertStatus.RESOLVED: [],
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        return to_status in cls.VALID_TRANSITIONS.get(from_status, [])

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)
