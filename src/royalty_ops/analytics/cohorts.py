"""Signup cohorts with retention and revenue at fixed month offsets."""

from __future__ import annotations

import calendar
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Sequence

from royalty_ops.analytics.operations import REVENUE_EVENT_TYPES, round_half_up
from royalty_ops.models import RevenueEvent, as_utc, utcnow

OFFSETS = (1, 3, 6, 12)


def add_months(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


@dataclass
class Cohort:
    """Customers whose first signup fell in the same calendar month.

    Offsets that have not elapsed yet are None.
    """

    cohort_period: str
    cohort_size: int
    retention_data: dict[str, int | None] = field(default_factory=dict)
    revenue_data: dict[str, float | None] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cohort_period": self.cohort_period,
            "cohort_size": self.cohort_size,
            "retention_data": dict(self.retention_data),
            "revenue_data": dict(self.revenue_data),
        }


def build_cohorts(events: Sequence[RevenueEvent], now: datetime | None = None) -> list[Cohort]:
    """Group customers by signup month, oldest cohort first."""
    now = as_utc(now or utcnow())

    signups: dict[str, datetime] = {}
    churned: dict[str, datetime] = {}
    by_customer: dict[str, list[RevenueEvent]] = defaultdict(list)
    for event in sorted(events, key=lambda e: as_utc(e.created_at)):
        customer = event.customer_user_id
        created = as_utc(event.created_at)
        by_customer[customer].append(event)
        if event.event_type == "signup":
            signups.setdefault(customer, created)
        elif event.event_type == "churn":
            churned[customer] = created
        elif event.event_type == "reactivation":
            churned.pop(customer, None)

    members: dict[str, list[str]] = defaultdict(list)
    for customer, signed_up in signups.items():
        members[f"{signed_up.year:04d}-{signed_up.month:02d}"].append(customer)

    cohorts = []
    for period in sorted(members):
        year, month = (int(p) for p in period.split("-"))
        start = datetime(year, month, 1, tzinfo=now.tzinfo)
        customers = members[period]

        cohort = Cohort(cohort_period=period, cohort_size=len(customers))
        for offset in OFFSETS:
            key = f"month_{offset}"
            cutoff = add_months(start, offset)
            if cutoff > now:
                cohort.retention_data[key] = None
                cohort.revenue_data[key] = None
                continue
            cohort.retention_data[key] = sum(
                1 for c in customers if c not in churned or churned[c] >= cutoff
            )
            cohort.revenue_data[key] = round_half_up(
                sum(
                    float(e.revenue_amount or 0)
                    for c in customers
                    for e in by_customer[c]
                    if e.event_type in REVENUE_EVENT_TYPES and as_utc(e.created_at) < cutoff
                ),
                2,
            )
        cohorts.append(cohort)
    return cohorts


def summarize_cohorts(cohorts: Sequence[Cohort]) -> dict[str, Any]:
    """Average 12-month retention %, total customers and average LTV.

    Averages cover only cohorts old enough to have a 12-month value.
    """
    mature = [
        c for c in cohorts if c.cohort_size and c.retention_data.get("month_12") is not None
    ]
    avg_retention = (
        sum(c.retention_data["month_12"] / c.cohort_size for c in mature) / len(mature) * 100
        if mature
        else 0.0
    )
    avg_ltv = (
        sum(c.revenue_data["month_12"] / c.cohort_size for c in mature) / len(mature)
        if mature
        else 0.0
    )
    return {
        "total_customers": sum(c.cohort_size for c in cohorts),
        "active_cohorts": len(cohorts),
        "avg_retention_12m": round_half_up(avg_retention, 1),
        "avg_ltv": round_half_up(avg_ltv),
    }
