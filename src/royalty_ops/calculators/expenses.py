"""Expense deduction rules applied during batch processing.

Net payable = gross royalties - expenses deducted. Fee expenses
(commission, finder fee, admin fee and other non-recoupable costs) are
deducted in full. Recoupable advances only recover what is left of the
gross after fees, so recoupment never pushes a payout below zero; the
outstanding balance carries forward to later batches.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from royalty_ops.calculators.types import (
    CENT,
    HUNDRED,
    ZERO,
    ExpenseDeduction,
    ExpenseResult,
    ExpenseTerms,
)


def is_recurring(expense: ExpenseTerms) -> bool:
    """Commission expenses apply to every payout rather than once."""
    return expense.is_commission or expense.expense_type == "commission"


def calculate_expense_amount(expense: ExpenseTerms, gross: Decimal) -> Decimal:
    """Deduction for a single expense against a gross amount."""
    if expense.is_recoupable:
        return expense.outstanding

    if expense.is_percentage or expense.is_commission:
        rate = expense.percentage_rate if expense.percentage_rate is not None else ZERO
        return (Decimal(gross) * Decimal(rate) / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)

    return Decimal(expense.amount).quantize(CENT, rounding=ROUND_HALF_UP)


def apply_expenses(gross: Decimal, expenses: Sequence[ExpenseTerms]) -> ExpenseResult:
    """Apply a payee's eligible expenses to gross earnings."""
    result = ExpenseResult(gross=Decimal(gross))

    # Fees first, in the order given
    for expense in expenses:
        if expense.is_recoupable:
            continue
        amount = calculate_expense_amount(expense, result.gross)
        if amount > ZERO:
            result.deductions.append(ExpenseDeduction(expense.expense_id, amount))

    # Then recoup advances from what remains
    available = max(result.net, ZERO)
    for expense in expenses:
        if not expense.is_recoupable or available <= ZERO:
            continue
        amount = min(calculate_expense_amount(expense, result.gross), available)
        if amount > ZERO:
            result.deductions.append(ExpenseDeduction(expense.expense_id, amount, recoupment=True))
            available -= amount

    return result
