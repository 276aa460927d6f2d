"""Tests for ownership split validation and proration."""

from decimal import Decimal
from uuid import uuid4

import pytest

from royalty_ops.calculators.splits import split_amount, total_percentage, validate_splits
from royalty_ops.calculators.types import SplitShare
from royalty_ops.errors import SplitValidationError


def shares(*percentages: str) -> list[SplitShare]:
    return [SplitShare(uuid4(), Decimal(p)) for p in percentages]


class TestValidateSplits:
    def test_exact_hundred_passes(self):
        validate_splits(shares("50", "30", "20"))

    def test_within_tolerance_passes(self):
        validate_splits(shares("33.3333", "33.3333", "33.3333"))

    def test_short_total_raises_with_total(self):
        with pytest.raises(SplitValidationError) as exc_info:
            validate_splits(shares("50", "40"), copyright_id="work-1")

        assert exc_info.value.total == Decimal("90")
        assert exc_info.value.copyright_id == "work-1"

    def test_over_total_raises(self):
        with pytest.raises(SplitValidationError):
            validate_splits(shares("60", "50"))

    def test_empty_splits_raise(self):
        with pytest.raises(SplitValidationError):
            validate_splits([])

    def test_total_percentage(self):
        assert total_percentage(shares("12.5", "87.5")) == Decimal("100")


class TestSplitAmount:
    def test_even_split(self):
        parts = split_amount(Decimal("600.00"), shares("50", "50"))
        assert [p.amount for p in parts] == [Decimal("300.00"), Decimal("300.00")]

    def test_parts_always_sum_to_gross(self):
        """Thirds of a cent-odd amount still add up exactly."""
        parts = split_amount(Decimal("100.00"), shares("33.3333", "33.3333", "33.3334"))
        assert sum(p.amount for p in parts) == Decimal("100.00")

    def test_remainder_goes_to_largest_share(self):
        parts = split_amount(Decimal("0.05"), shares("50", "50"))
        # 0.025 rounds half-up to 0.03 for both; the -0.01 remainder lands on the first
        assert [p.amount for p in parts] == [Decimal("0.02"), Decimal("0.03")]

    def test_remainder_prefers_larger_percentage(self):
        parts = split_amount(Decimal("10.00"), shares("33.3333", "66.6667"))
        assert parts[0].amount == Decimal("3.33")
        assert parts[1].amount == Decimal("6.67")
        assert sum(p.amount for p in parts) == Decimal("10.00")

    def test_prorates_when_total_is_not_hundred(self):
        parts = split_amount(Decimal("90.00"), shares("30", "60"))
        assert [p.amount for p in parts] == [Decimal("30.00"), Decimal("60.00")]

    def test_empty_splits(self):
        assert split_amount(Decimal("10.00"), []) == []
