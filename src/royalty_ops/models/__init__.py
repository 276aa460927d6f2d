"""ORM models."""

from royalty_ops.models.audit import AuditEvent
from royalty_ops.models.base import Base, as_utc, utcnow
from royalty_ops.models.operations import (
    CustomerHealthMetric,
    RevenueEvent,
    SupportTicket,
    SystemAlert,
    WorkflowAutomationRule,
)
from royalty_ops.models.royalties import (
    EXPENSE_TYPES,
    PAYEE_TYPES,
    ROYALTY_SOURCES,
    Copyright,
    CopyrightSplit,
    Expense,
    ExpenseApplication,
    Payee,
    Payout,
    ReconciliationBatch,
    RoyaltyAllocation,
)

__all__ = [
    "AuditEvent",
    "Base",
    "as_utc",
    "utcnow",
    "CustomerHealthMetric",
    "RevenueEvent",
    "SupportTicket",
    "SystemAlert",
    "WorkflowAutomationRule",
    "EXPENSE_TYPES",
    "PAYEE_TYPES",
    "ROYALTY_SOURCES",
    "Copyright",
    "CopyrightSplit",
    "Expense",
    "ExpenseApplication",
    "Payee",
    "Payout",
    "ReconciliationBatch",
    "RoyaltyAllocation",
]
