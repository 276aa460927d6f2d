"""Audit trail model."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from royalty_ops.models.base import Base, IdMixin, JSONType, TimestampMixin


class AuditEvent(Base, IdMixin, TimestampMixin):
    """Audit trail entry."""

    __tablename__ = "audit_event"

    entity_type: Mapped[str] = mapped_column(String, nullable=False)
    entity_id: Mapped[UUID] = mapped_column(nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    actor: Mapped[str | None] = mapped_column(String, nullable=True)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    __table_args__ = (Index("ix_audit_entity", "entity_type", "entity_id"),)
