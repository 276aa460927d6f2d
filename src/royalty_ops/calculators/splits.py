"""Ownership split validation and proration."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence
from uuid import UUID

from royalty_ops.calculators.types import CENT, HUNDRED, ZERO, SplitPart, SplitShare
from royalty_ops.errors import SplitValidationError


def total_percentage(splits: Sequence[SplitShare]) -> Decimal:
    """Sum of ownership percentages."""
    return sum((Decimal(s.ownership_percentage) for s in splits), ZERO)


def validate_splits(
    splits: Sequence[SplitShare],
    tolerance: Decimal = CENT,
    copyright_id: UUID | str | None = None,
) -> None:
    """Raise SplitValidationError unless splits total 100% within tolerance."""
    total = total_percentage(splits)
    if not splits or abs(total - HUNDRED) > tolerance:
        raise SplitValidationError(copyright_id, total)


def split_amount(gross: Decimal, splits: Sequence[SplitShare]) -> list[SplitPart]:
    """Prorate a gross amount across payees by ownership percentage.

    Each part is rounded half-up to cents. The rounding remainder goes to
    the largest share (first one on ties) so parts always sum to gross.
    """
    if not splits:
        return []

    total = total_percentage(splits)
    if total == ZERO:
        return [SplitPart(s.payee_id, Decimal(s.ownership_percentage), ZERO) for s in splits]

    gross = Decimal(gross).quantize(CENT, rounding=ROUND_HALF_UP)
    parts = [
        SplitPart(
            payee_id=s.payee_id,
            ownership_percentage=Decimal(s.ownership_percentage),
            amount=(gross * Decimal(s.ownership_percentage) / total).quantize(
                CENT, rounding=ROUND_HALF_UP
            ),
        )
        for s in splits
    ]

    remainder = gross - sum((p.amount for p in parts), ZERO)
    if remainder:
        largest = max(range(len(parts)), key=lambda i: (parts[i].ownership_percentage, -i))
        parts[largest].amount += remainder

    return parts
