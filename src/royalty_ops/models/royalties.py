"""Reconciliation batch, allocation, payee, payout and expense models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from royalty_ops.models.base import Base, IdMixin, JSONType, TimestampMixin

ROYALTY_SOURCES = (
    "DSP",
    "PRO",
    "YouTube",
    "Other",
    "BMI",
    "ASCAP",
    "SESAC",
    "SOCAN",
    "Spotify",
    "Apple Music",
    "Amazon Music",
    "Tidal",
    "Pandora",
    "SiriusXM",
)

PAYEE_TYPES = ("writer", "publisher", "artist", "producer", "other")

EXPENSE_TYPES = ("advance", "commission", "finder_fee", "admin_fee", "other")

Money = Numeric(14, 2)


def _in(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


# ===== Payees & Copyrights =====


class Payee(Base, IdMixin, TimestampMixin):
    """Individual or entity entitled to a share of royalty income."""

    __tablename__ = "payee"

    payee_name: Mapped[str] = mapped_column(String, nullable=False)
    payee_type: Mapped[str] = mapped_column(String, nullable=False, default="writer")
    contact_email: Mapped[str | None] = mapped_column(String, nullable=True)
    payment_info: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    balance: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))

    __table_args__ = (
        CheckConstraint(_in("payee_type", PAYEE_TYPES), name="payee_type_check"),
    )


class Copyright(Base, IdMixin, TimestampMixin):
    """Musical work that royalty lines are matched against."""

    __tablename__ = "copyright"

    work_title: Mapped[str] = mapped_column(String, nullable=False)
    artist: Mapped[str | None] = mapped_column(String, nullable=True)
    iswc: Mapped[str | None] = mapped_column(String, nullable=True)
    akas: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)

    splits: Mapped[list[CopyrightSplit]] = relationship(
        back_populates="copyright", lazy="selectin"
    )


class CopyrightSplit(Base, IdMixin, TimestampMixin):
    """Ownership share of a copyright held by a payee."""

    __tablename__ = "copyright_split"

    copyright_id: Mapped[UUID] = mapped_column(
        ForeignKey("copyright.id", ondelete="CASCADE"), nullable=False
    )
    payee_id: Mapped[UUID] = mapped_column(
        ForeignKey("payee.id", ondelete="CASCADE"), nullable=False
    )
    writer_name: Mapped[str | None] = mapped_column(String, nullable=True)
    ownership_percentage: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)
    controlled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("copyright_id", "payee_id", name="copyright_split_payee_unique"),
        CheckConstraint(
            "ownership_percentage >= 0 AND ownership_percentage <= 100",
            name="copyright_split_percentage_check",
        ),
    )

    copyright: Mapped[Copyright] = relationship(back_populates="splits")


# ===== Reconciliation =====


class ReconciliationBatch(Base, IdMixin, TimestampMixin):
    """Grouping of imported royalty-statement line items."""

    __tablename__ = "reconciliation_batch"

    batch_code: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    source: Mapped[str] = mapped_column(String, nullable=False)
    date_received: Mapped[date] = mapped_column(Date, nullable=False)
    statement_period_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    statement_period_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_gross_amount: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    statement_file_url: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="Pending")
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(_in("source", ROYALTY_SOURCES), name="batch_source_check"),
        CheckConstraint(
            "status IN ('Pending', 'Imported', 'Processed')",
            name="batch_status_check",
        ),
        CheckConstraint(
            "statement_period_end IS NULL OR statement_period_start IS NULL "
            "OR statement_period_end >= statement_period_start",
            name="batch_period_check",
        ),
        Index("ix_batch_status", "status"),
    )


class RoyaltyAllocation(Base, IdMixin, TimestampMixin):
    """Single royalty line item attributed to a copyright."""

    __tablename__ = "royalty_allocation"

    batch_id: Mapped[UUID] = mapped_column(
        ForeignKey("reconciliation_batch.id", ondelete="CASCADE"), nullable=False
    )
    copyright_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("copyright.id", ondelete="SET NULL"), nullable=True
    )
    line_number: Mapped[int | None] = mapped_column(nullable=True)
    song_title: Mapped[str] = mapped_column(String, nullable=False)
    artist: Mapped[str | None] = mapped_column(String, nullable=True)
    isrc: Mapped[str | None] = mapped_column(String, nullable=True)
    iswc: Mapped[str | None] = mapped_column(String, nullable=True)
    country: Mapped[str | None] = mapped_column(String, nullable=True)
    revenue_source: Mapped[str | None] = mapped_column(String, nullable=True)
    quantity: Mapped[Decimal | None] = mapped_column(Numeric(18, 4), nullable=True)
    gross_royalty_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    net_amount: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    match_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    mapped_data: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    __table_args__ = (Index("ix_allocation_batch", "batch_id"),)


# ===== Payouts & Expenses =====


class Payout(Base, IdMixin, TimestampMixin):
    """Amount owed to a payee from a processed batch."""

    __tablename__ = "payout"

    payee_id: Mapped[UUID] = mapped_column(
        ForeignKey("payee.id", ondelete="CASCADE"), nullable=False
    )
    batch_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("reconciliation_batch.id", ondelete="SET NULL"), nullable=True
    )
    period: Mapped[str] = mapped_column(String, nullable=False)
    gross_royalties: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    total_expenses: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    net_payable: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'processing', 'paid', 'on_hold', 'reversed')",
            name="payout_status_check",
        ),
        Index("ix_payout_batch", "batch_id"),
        Index("ix_payout_payee", "payee_id"),
    )


class Expense(Base, IdMixin, TimestampMixin):
    """Deduction applied to a payee's earnings before payout."""

    __tablename__ = "expense"

    payee_id: Mapped[UUID] = mapped_column(
        ForeignKey("payee.id", ondelete="CASCADE"), nullable=False
    )
    description: Mapped[str] = mapped_column(String, nullable=False)
    expense_type: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    is_percentage: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    percentage_rate: Mapped[Decimal | None] = mapped_column(Numeric(7, 4), nullable=True)
    is_recoupable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_commission: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_finder_fee: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    recouped_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    effective_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint(_in("expense_type", EXPENSE_TYPES), name="expense_type_check"),
        CheckConstraint(
            "status IN ('pending', 'applied', 'recouped')",
            name="expense_status_check",
        ),
    )


class ExpenseApplication(Base, IdMixin, TimestampMixin):
    """Portion of an expense deducted from one payout."""

    __tablename__ = "expense_application"

    expense_id: Mapped[UUID] = mapped_column(
        ForeignKey("expense.id", ondelete="CASCADE"), nullable=False
    )
    payout_id: Mapped[UUID] = mapped_column(
        ForeignKey("payout.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    reversed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("expense_id", "payout_id", name="expense_application_unique"),
    )
