"""Type definitions for the royalty calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


class MatchType(str, Enum):
    """Confidence bands for song-to-copyright matches."""

    EXACT = "exact"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class SplitShare:
    """Ownership share of one payee in a copyright."""

    payee_id: UUID
    ownership_percentage: Decimal


@dataclass
class SplitPart:
    """Prorated portion of a gross amount for one payee."""

    payee_id: UUID
    ownership_percentage: Decimal
    amount: Decimal


@dataclass
class ExpenseTerms:
    """Expense attributes needed to compute a deduction."""

    expense_id: UUID
    expense_type: str
    amount: Decimal = ZERO
    is_percentage: bool = False
    percentage_rate: Decimal | None = None
    is_recoupable: bool = False
    is_commission: bool = False
    is_finder_fee: bool = False
    recouped_amount: Decimal = ZERO

    @property
    def outstanding(self) -> Decimal:
        """Amount of a recoupable advance still to be recovered."""
        return max(self.amount - self.recouped_amount, ZERO)


@dataclass
class ExpenseDeduction:
    """Amount deducted for one expense against one payout."""

    expense_id: UUID
    amount: Decimal
    recoupment: bool = False


@dataclass
class ExpenseResult:
    """Outcome of applying a payee's expenses to gross earnings."""

    gross: Decimal
    deductions: list[ExpenseDeduction] = field(default_factory=list)

    @property
    def total_expenses(self) -> Decimal:
        return sum((d.amount for d in self.deductions), ZERO)

    @property
    def net(self) -> Decimal:
        return self.gross - self.total_expenses


@dataclass
class AllocationCandidate:
    """A statement line mapped to canonical allocation fields."""

    line_number: int
    song_title: str
    gross_royalty_amount: Decimal
    artist: str | None = None
    isrc: str | None = None
    iswc: str | None = None
    country: str | None = None
    revenue_source: str | None = None
    quantity: Decimal | None = None
    net_amount: Decimal | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class MappingIssue:
    """Problem found while mapping a statement row."""

    row: int
    field: str
    message: str


@dataclass
class MappedStatement:
    """Result of parsing and mapping a royalty statement."""

    mapping: dict[str, str]
    candidates: list[AllocationCandidate] = field(default_factory=list)
    issues: list[MappingIssue] = field(default_factory=list)
    unmapped_columns: list[str] = field(default_factory=list)

    @property
    def total_gross(self) -> Decimal:
        return sum((c.gross_royalty_amount for c in self.candidates), ZERO)
