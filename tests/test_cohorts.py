"""Tests for signup cohort analysis."""

from datetime import datetime, timezone
from decimal import Decimal

from royalty_ops.analytics import build_cohorts, summarize_cohorts
from royalty_ops.analytics.cohorts import add_months
from royalty_ops.models import RevenueEvent

NOW = datetime(2025, 6, 15, tzinfo=timezone.utc)


def at(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def event(customer: str, event_type: str, amount: str, created: datetime) -> RevenueEvent:
    return RevenueEvent(
        customer_user_id=customer,
        event_type=event_type,
        revenue_amount=Decimal(amount),
        created_at=created,
    )


def base_events():
    return [
        event("a", "signup", "100.00", at(2024, 1, 10)),
        event("a", "payment_success", "50.00", at(2024, 1, 20)),
        event("a", "payment_success", "50.00", at(2024, 3, 5)),
        event("b", "signup", "100.00", at(2024, 1, 25)),
        event("b", "churn", "0.00", at(2024, 2, 15)),
        event("c", "signup", "100.00", at(2025, 5, 3)),
    ]


def test_add_months_clamps_day():
    assert add_months(at(2024, 1, 31), 1) == at(2024, 2, 29)
    assert add_months(at(2024, 11, 15), 3) == at(2025, 2, 15)


class TestBuildCohorts:
    def test_groups_by_signup_month(self):
        cohorts = build_cohorts(base_events(), now=NOW)

        assert [(c.cohort_period, c.cohort_size) for c in cohorts] == [("2024-01", 2), ("2025-05", 1)]

    def test_retention_and_cumulative_revenue(self):
        january = build_cohorts(base_events(), now=NOW)[0]

        # b churned mid-February so still counts at the one-month mark
        assert january.retention_data == {"month_1": 2, "month_3": 1, "month_6": 1, "month_12": 1}
        assert january.revenue_data == {
            "month_1": 250.0,
            "month_3": 300.0,
            "month_6": 300.0,
            "month_12": 300.0,
        }

    def test_future_offsets_are_none(self):
        may = build_cohorts(base_events(), now=NOW)[1]

        assert may.retention_data == {"month_1": 1, "month_3": None, "month_6": None, "month_12": None}
        assert may.revenue_data["month_1"] == 100.0
        assert may.revenue_data["month_3"] is None

    def test_reactivation_clears_churn(self):
        events = base_events() + [event("b", "reactivation", "0.00", at(2024, 4, 10))]
        january = build_cohorts(events, now=NOW)[0]

        assert january.retention_data["month_3"] == 2

    def test_no_events(self):
        assert build_cohorts([], now=NOW) == []


class TestSummarizeCohorts:
    def test_only_mature_cohorts_are_averaged(self):
        summary = summarize_cohorts(build_cohorts(base_events(), now=NOW))

        assert summary == {
            "total_customers": 3,
            "active_cohorts": 2,
            "avg_retention_12m": 50.0,
            "avg_ltv": 150.0,
        }

    def test_empty(self):
        assert summarize_cohorts([]) == {
            "total_customers": 0,
            "active_cohorts": 0,
            "avg_retention_12m": 0.0,
            "avg_ltv": 0.0,
        }
