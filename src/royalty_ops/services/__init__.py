"""Royalty operations services."""

from royalty_ops.services.alert_service import AlertService
from royalty_ops.services.automation_service import AutomationService
from royalty_ops.services.batch_service import BatchService
from royalty_ops.services.payout_service import PayoutService
from royalty_ops.services.state_machine import BatchStateMachine, BatchStatus, PayoutStatus

__all__ = [
    "AlertService",
    "AutomationService",
    "BatchService",
    "PayoutService",
    "BatchStateMachine",
    "BatchStatus",
    "PayoutStatus",
]
