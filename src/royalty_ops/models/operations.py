"""Operations dashboard models: customer health, tickets, revenue, alerts, rules."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from royalty_ops.models.base import Base, IdMixin, JSONType, TimestampMixin


class CustomerHealthMetric(Base, IdMixin, TimestampMixin):
    """Per-customer engagement snapshot."""

    __tablename__ = "customer_health_metric"

    customer_user_id: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    health_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    feature_adoption_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    login_frequency: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    last_activity_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    modules_used: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    contracts_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    royalties_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    support_tickets_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    subscription_status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    days_since_signup: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    risk_level: Mapped[str] = mapped_column(String, nullable=False, default="low")

    __table_args__ = (
        CheckConstraint(
            "risk_level IN ('low', 'medium', 'high', 'critical')",
            name="health_risk_level_check",
        ),
    )


class SupportTicket(Base, IdMixin, TimestampMixin):
    """Customer support ticket analytics row."""

    __tablename__ = "support_ticket"

    customer_user_id: Mapped[str] = mapped_column(String, nullable=False)
    ticket_subject: Mapped[str] = mapped_column(String, nullable=False)
    ticket_category: Mapped[str] = mapped_column(String, nullable=False, default="general")
    priority_level: Mapped[str] = mapped_column(String, nullable=False, default="medium")
    status: Mapped[str] = mapped_column(String, nullable=False, default="open")
    resolution_time_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    first_response_time_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    customer_satisfaction_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "priority_level IN ('low', 'medium', 'high', 'urgent')",
            name="ticket_priority_check",
        ),
        CheckConstraint(
            "status IN ('open', 'in_progress', 'resolved', 'closed')",
            name="ticket_status_check",
        ),
        Index("ix_ticket_status", "status"),
    )


class RevenueEvent(Base, IdMixin, TimestampMixin):
    """Subscription revenue event."""

    __tablename__ = "revenue_event"

    customer_user_id: Mapped[str] = mapped_column(String, nullable=False)
    event_type: Mapped[str] = mapped_column(String, nullable=False)
    revenue_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0.00")
    )
    previous_plan: Mapped[str | None] = mapped_column(String, nullable=True)
    new_plan: Mapped[str | None] = mapped_column(String, nullable=True)
    billing_cycle: Mapped[str | None] = mapped_column(String, nullable=True)
    mrr_change: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0.00")
    )

    __table_args__ = (
        CheckConstraint(
            "event_type IN ('signup', 'upgrade', 'downgrade', 'churn', "
            "'reactivation', 'payment_success', 'payment_failed')",
            name="revenue_event_type_check",
        ),
        Index("ix_revenue_event_created", "created_at"),
    )


class SystemAlert(Base, IdMixin, TimestampMixin):
    """Operational alert shown in the alert management center."""

    __tablename__ = "system_alert"

    alert_name: Mapped[str] = mapped_column(String, nullable=False)
    alert_message: Mapped[str] = mapped_column(Text, nullable=False)
    alert_type: Mapped[str] = mapped_column(String, nullable=False, default="system")
    severity: Mapped[str] = mapped_column(String, nullable=False, default="medium")
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    acknowledged_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "severity IN ('low', 'medium', 'high', 'critical')",
            name="alert_severity_check",
        ),
        CheckConstraint(
            "status IN ('active', 'acknowledged', 'resolved')",
            name="alert_status_check",
        ),
    )


class WorkflowAutomationRule(Base, IdMixin, TimestampMixin):
    """Automation rule that can be switched on and off."""

    __tablename__ = "workflow_automation_rule"

    rule_name: Mapped[str] = mapped_column(String, nullable=False)
    trigger_type: Mapped[str] = mapped_column(String, nullable=False)
    trigger_conditions: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    actions: Mapped[list[Any] | None] = mapped_column(JSONType, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    execution_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_executed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
