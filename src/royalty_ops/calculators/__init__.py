"""Royalty calculations: statement mapping, matching, splits and expenses."""

from royalty_ops.calculators.expenses import apply_expenses, calculate_expense_amount
from royalty_ops.calculators.matching import find_potential_matches, similarity
from royalty_ops.calculators.splits import split_amount, validate_splits
from royalty_ops.calculators.statement_mapping import parse_statement, propose_mapping

__all__ = [
    "apply_expenses",
    "calculate_expense_amount",
    "find_potential_matches",
    "similarity",
    "split_amount",
    "validate_splits",
    "parse_statement",
    "propose_mapping",
]
