"""Tests for operations and financial dashboard metrics."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from royalty_ops.analytics import (
    QuarterlyExpenses,
    compute_financial_metrics,
    compute_operations_metrics,
    filter_tickets,
    health_distribution,
    round_half_up,
    ticket_stats,
)
from royalty_ops.models import CustomerHealthMetric, Payout, RevenueEvent, SupportTicket

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def at(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def event(customer: str, event_type: str, amount: str, created: datetime) -> RevenueEvent:
    return RevenueEvent(
        customer_user_id=customer,
        event_type=event_type,
        revenue_amount=Decimal(amount),
        created_at=created,
    )


def ticket(subject: str, status: str, priority: str = "medium", **kwargs) -> SupportTicket:
    return SupportTicket(
        customer_user_id=kwargs.pop("customer", "cust-1"),
        ticket_subject=subject,
        ticket_category=kwargs.pop("category", "general"),
        priority_level=priority,
        status=status,
        **kwargs,
    )


@pytest.fixture
def health():
    return [
        CustomerHealthMetric(
            customer_user_id="c1", health_score=80, risk_level="low", last_activity_date=at(2024, 6, 10)
        ),
        CustomerHealthMetric(
            customer_user_id="c2", health_score=60, risk_level="high", last_activity_date=at(2024, 5, 1)
        ),
        CustomerHealthMetric(
            customer_user_id="c3", health_score=41, risk_level="critical", last_activity_date=None
        ),
    ]


@pytest.fixture
def tickets():
    return [
        ticket("Login broken", "open", "urgent", customer="c1"),
        ticket("Statement import slow", "in_progress", "high", category="imports", customer="c2"),
        ticket(
            "Split question",
            "resolved",
            resolution_time_hours=10,
            first_response_time_hours=2,
            customer_satisfaction_score=4,
        ),
        ticket(
            "Invoice copy",
            "closed",
            "low",
            resolution_time_hours=5,
            first_response_time_hours=1,
            customer_satisfaction_score=5,
        ),
    ]


@pytest.fixture
def events():
    return [
        event("c1", "signup", "100.00", at(2024, 6, 1)),
        event("c2", "payment_success", "50.50", at(2024, 6, 5)),
        event("c1", "payment_success", "99.00", at(2024, 5, 20)),
        event("c3", "churn", "0.00", at(2024, 6, 7)),
    ]


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.125, 2) == 0.13
    assert round_half_up(-1.5) == -2


class TestOperationsMetrics:
    def test_headline_cards(self, health, tickets, events):
        metrics = compute_operations_metrics(health, tickets, events, now=NOW)

        assert metrics.total_customers == 3
        assert metrics.active_customers == 1
        assert metrics.avg_health_score == 60.33
        assert metrics.critical_risk_customers == 2
        assert metrics.open_tickets == 2
        assert metrics.avg_resolution_time == 7.5
        assert metrics.monthly_recurring_revenue == 151
        assert metrics.churn_rate == 33.33
        assert metrics.customer_satisfaction == 4.5

    def test_no_health_rows_is_all_zero(self, tickets, events):
        metrics = compute_operations_metrics([], tickets, events, now=NOW)
        assert metrics.to_dict() == {
            "total_customers": 0,
            "active_customers": 0,
            "avg_health_score": 0.0,
            "critical_risk_customers": 0,
            "open_tickets": 0,
            "avg_resolution_time": 0.0,
            "monthly_recurring_revenue": 0.0,
            "churn_rate": 0.0,
            "customer_satisfaction": 0.0,
        }

    def test_no_tickets_does_not_divide_by_zero(self, health):
        metrics = compute_operations_metrics(health, [], [], now=NOW)
        assert metrics.avg_resolution_time == 0.0
        assert metrics.customer_satisfaction == 0.0

    def test_health_distribution(self, health):
        assert health_distribution(health) == {"low": 1, "medium": 0, "high": 1, "critical": 1}


class TestFinancialMetrics:
    def test_against_targets(self, events):
        events = events + [event("c4", "signup", "200.00", at(2023, 3, 1))]
        payouts = [Payout(net_payable=Decimal("50.00"), created_at=at(2024, 4, 2))]
        quarters = [
            QuarterlyExpenses(2024, 1, Decimal("20.00")),
            QuarterlyExpenses(2023, 4, Decimal("999.00")),
        ]

        metrics = compute_financial_metrics(events, payouts, quarters, now=NOW)

        assert metrics.mrr == 151
        assert metrics.arr == 1806
        assert metrics.gross_profit == 170
        assert metrics.net_profit == 100
        assert metrics.profit_margin == 39.94
        assert metrics.growth_rate == 24.75
        assert metrics.churn_rate == 25.0
        assert metrics.customer_acquisition_cost == 11
        assert metrics.revenue_per_customer == 62
        assert metrics.lifetime_value == 250
        assert metrics.target_revenue == 324000
        assert metrics.target_profit_margin == 68

    def test_ltv_falls_back_without_churn(self):
        events = [event("c1", "signup", "100.00", at(2024, 2, 1))]
        metrics = compute_financial_metrics(events, now=NOW)

        assert metrics.churn_rate == 0.0
        assert metrics.lifetime_value == 2000

    def test_empty_inputs(self):
        metrics = compute_financial_metrics([], now=NOW)
        assert metrics.mrr == 0.0
        assert metrics.profit_margin == 0.0
        assert metrics.target_revenue == 324000


class TestTicketFilters:
    def test_status_and_priority(self, tickets):
        assert [t.ticket_subject for t in filter_tickets(tickets, status="open")] == ["Login broken"]
        assert [t.ticket_subject for t in filter_tickets(tickets, priority="low")] == ["Invoice copy"]
        assert len(filter_tickets(tickets, status="all", priority="all")) == 4

    def test_search_covers_subject_category_and_customer(self, tickets):
        assert [t.ticket_subject for t in filter_tickets(tickets, search="IMPORTS")] == [
            "Statement import slow"
        ]
        assert [t.ticket_subject for t in filter_tickets(tickets, search="split")] == ["Split question"]
        assert len(filter_tickets(tickets, search="c2")) == 1

    def test_stats(self, tickets):
        stats = ticket_stats(tickets)

        assert stats["total"] == 4
        assert stats["by_status"] == {"open": 1, "in_progress": 1, "resolved": 1, "closed": 1}
        assert stats["by_priority"]["urgent"] == 1
        assert stats["avg_first_response_hours"] == 1.5
