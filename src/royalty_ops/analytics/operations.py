"""Dashboard statistics derived from fetched operations rows.

Every function here is a pure reduction over rows already loaded from the
database; divisions guard against empty inputs and return zero.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Sequence

from royalty_ops.models import (
    CustomerHealthMetric,
    Payout,
    RevenueEvent,
    SupportTicket,
    as_utc,
    utcnow,
)

REVENUE_EVENT_TYPES = ("signup", "upgrade", "payment_success")
OPEN_TICKET_STATUSES = ("open", "in_progress")
RISK_LEVELS = ("low", "medium", "high", "critical")
TICKET_STATUSES = ("open", "in_progress", "resolved", "closed")
TICKET_PRIORITIES = ("low", "medium", "high", "urgent")

TARGET_REVENUE = 324000
TARGET_PROFIT_MARGIN = 68
DIRECT_COST_RATIO = 0.32
MARKETING_SHARE = 0.3
FALLBACK_CHURN = 0.05


def round_half_up(value: float | Decimal, places: int = 0) -> float:
    """Round like a dashboard does (0.5 always rounds away from zero)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


@dataclass
class OperationsMetrics:
    total_customers: int = 0
    active_customers: int = 0
    avg_health_score: float = 0.0
    critical_risk_customers: int = 0
    open_tickets: int = 0
    avg_resolution_time: float = 0.0
    monthly_recurring_revenue: float = 0.0
    churn_rate: float = 0.0
    customer_satisfaction: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class FinancialMetrics:
    mrr: float = 0.0
    arr: float = 0.0
    gross_profit: float = 0.0
    net_profit: float = 0.0
    profit_margin: float = 0.0
    growth_rate: float = 0.0
    target_revenue: int = TARGET_REVENUE
    target_profit_margin: int = TARGET_PROFIT_MARGIN
    customer_acquisition_cost: float = 0.0
    lifetime_value: float = 0.0
    churn_rate: float = 0.0
    revenue_per_customer: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class QuarterlyExpenses:
    """Expenses booked for one quarter of the balance report."""

    year: int
    quarter: int
    expenses_amount: Decimal


def _same_month(moment: datetime, now: datetime) -> bool:
    moment = as_utc(moment)
    return moment.year == now.year and moment.month == now.month


def _revenue(event: RevenueEvent) -> float:
    return float(event.revenue_amount or 0)


def compute_operations_metrics(
    health: Sequence[CustomerHealthMetric],
    tickets: Sequence[SupportTicket],
    events: Sequence[RevenueEvent],
    now: datetime | None = None,
    active_window_days: int = 30,
) -> OperationsMetrics:
    """Headline cards of the operations dashboard.

    Returns all zeros when there are no customer health rows.
    """
    if not health:
        return OperationsMetrics()

    now = as_utc(now or utcnow())
    active_since = now - timedelta(days=active_window_days)
    total_customers = len(health)

    active_customers = sum(
        1
        for c in health
        if c.last_activity_date is not None and as_utc(c.last_activity_date) > active_since
    )
    avg_health_score = sum(c.health_score for c in health) / total_customers
    critical_risk = sum(1 for c in health if c.risk_level in ("high", "critical"))

    open_tickets = sum(1 for t in tickets if t.status in OPEN_TICKET_STATUSES)
    resolution_times = [t.resolution_time_hours for t in tickets if t.resolution_time_hours is not None]
    avg_resolution = _ratio(sum(resolution_times), len(resolution_times))

    this_month_revenue = sum(
        _revenue(e)
        for e in events
        if e.event_type in REVENUE_EVENT_TYPES and _same_month(e.created_at, now)
    )
    churn_events = sum(1 for e in events if e.event_type == "churn")
    churn_rate = _ratio(churn_events, total_customers) * 100

    scores = [
        t.customer_satisfaction_score for t in tickets if t.customer_satisfaction_score is not None
    ]
    satisfaction = _ratio(sum(scores), len(scores))

    return OperationsMetrics(
        total_customers=total_customers,
        active_customers=active_customers,
        avg_health_score=round_half_up(avg_health_score, 2),
        critical_risk_customers=critical_risk,
        open_tickets=open_tickets,
        avg_resolution_time=round_half_up(avg_resolution, 1),
        monthly_recurring_revenue=round_half_up(this_month_revenue),
        churn_rate=round_half_up(churn_rate, 2),
        customer_satisfaction=round_half_up(satisfaction, 2),
    )


def compute_financial_metrics(
    events: Sequence[RevenueEvent],
    payouts: Sequence[Payout] = (),
    quarters: Iterable[QuarterlyExpenses] = (),
    now: datetime | None = None,
) -> FinancialMetrics:
    """Executive financial view against the year-one targets.

    Revenue is the current year's revenue events (or twelve times this
    month when the year has none). Expenses are the current year's
    quarterly expenses plus net payouts created this year. CAC and LTV are
    estimates: marketing is taken as 30% of expenses, and LTV falls back to
    a 5% churn when no churn was observed.
    """
    if not events and not payouts:
        return FinancialMetrics()

    now = as_utc(now or utcnow())
    revenue_events = [e for e in events if e.event_type in REVENUE_EVENT_TYPES]

    monthly_revenue = sum(_revenue(e) for e in revenue_events if _same_month(e.created_at, now))
    current_year = sum(_revenue(e) for e in revenue_events if as_utc(e.created_at).year == now.year)
    previous_year = sum(
        _revenue(e) for e in revenue_events if as_utc(e.created_at).year == now.year - 1
    )
    growth_rate = _ratio(current_year - previous_year, previous_year) * 100

    quarterly_expenses = sum(float(q.expenses_amount or 0) for q in quarters if q.year == now.year)
    payout_expenses = sum(
        float(p.net_payable or 0) for p in payouts if as_utc(p.created_at).year == now.year
    )
    total_expenses = quarterly_expenses + payout_expenses

    total_revenue = current_year or monthly_revenue * 12
    arr = monthly_revenue * 12
    gross_profit = total_revenue - total_revenue * DIRECT_COST_RATIO
    net_profit = gross_profit - total_expenses
    profit_margin = _ratio(net_profit, total_revenue) * 100

    total_customers = len({e.customer_user_id for e in events})
    churn_rate = _ratio(sum(1 for e in events if e.event_type == "churn"), total_customers) * 100

    new_customers = sum(1 for e in events if e.event_type == "signup")
    cac = _ratio(total_expenses * MARKETING_SHARE, new_customers)
    revenue_per_customer = _ratio(total_revenue, total_customers)
    lifetime_value = revenue_per_customer / ((churn_rate / 100) or FALLBACK_CHURN)

    return FinancialMetrics(
        mrr=round_half_up(monthly_revenue),
        arr=round_half_up(arr),
        gross_profit=round_half_up(gross_profit),
        net_profit=round_half_up(net_profit),
        profit_margin=round_half_up(profit_margin, 2),
        growth_rate=round_half_up(growth_rate, 2),
        customer_acquisition_cost=round_half_up(cac),
        lifetime_value=round_half_up(lifetime_value),
        churn_rate=round_half_up(churn_rate, 2),
        revenue_per_customer=round_half_up(revenue_per_customer),
    )


def filter_tickets(
    tickets: Iterable[SupportTicket],
    status: str | None = "all",
    priority: str | None = "all",
    search: str | None = None,
) -> list[SupportTicket]:
    """Ticket table filters; "all" or empty disables a filter."""
    needle = (search or "").strip().lower()
    matched = []
    for ticket in tickets:
        if status and status != "all" and ticket.status != status:
            continue
        if priority and priority != "all" and ticket.priority_level != priority:
            continue
        if needle and not (
            needle in ticket.ticket_subject.lower()
            or needle in (ticket.ticket_category or "").lower()
            or needle in ticket.customer_user_id.lower()
        ):
            continue
        matched.append(ticket)
    return matched


def ticket_stats(tickets: Sequence[SupportTicket]) -> dict[str, Any]:
    by_status = Counter(t.status for t in tickets)
    by_priority = Counter(t.priority_level for t in tickets)
    response_times = [
        t.first_response_time_hours for t in tickets if t.first_response_time_hours is not None
    ]
    return {
        "total": len(tickets),
        "by_status": {s: by_status.get(s, 0) for s in TICKET_STATUSES},
        "by_priority": {p: by_priority.get(p, 0) for p in TICKET_PRIORITIES},
        "avg_first_response_hours": round_half_up(_ratio(sum(response_times), len(response_times)), 1),
    }


def health_distribution(health: Sequence[CustomerHealthMetric]) -> dict[str, int]:
    counts = Counter(c.risk_level for c in health)
    return {level: counts.get(level, 0) for level in RISK_LEVELS}
