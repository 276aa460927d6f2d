"""Demo data for local development and the dashboard walkthrough."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from royalty_ops.models import (
    Copyright,
    CopyrightSplit,
    CustomerHealthMetric,
    Expense,
    Payee,
    ReconciliationBatch,
    RevenueEvent,
    SupportTicket,
    SystemAlert,
    WorkflowAutomationRule,
    utcnow,
)

logger = logging.getLogger(__name__)

PAYEES = [
    ("Maya Lin", "writer", "maya@example.com"),
    ("Jonah Reyes", "writer", "jonah@example.com"),
    ("Northbound Publishing", "publisher", "royalties@northbound.example"),
    ("The Quiet Tides", "artist", "band@quiettides.example"),
]

# title, artist, iswc, akas, [(payee index, percentage, writer name)]
COPYRIGHTS = [
    ("Midnight Harbor", "The Quiet Tides", "T-123.456.789-0", ["Harbor at Midnight"],
     [(0, "50", "Maya Lin"), (2, "50", None)]),
    ("Paper Lanterns", "The Quiet Tides", "T-234.567.890-1", [],
     [(0, "25", "Maya Lin"), (1, "25", "Jonah Reyes"), (2, "50", None)]),
    ("Salt & Static", "Jonah Reyes", "T-345.678.901-2", ["Salt and Static"],
     [(1, "60", "Jonah Reyes"), (3, "40", None)]),
]

DEMO_STATEMENT = """Track Title,Track Artist,ISWC,Territory,Streams,Gross Revenue
Midnight Harbor,The Quiet Tides,T-123.456.789-0,US,120000,"$1,250.00"
Paper Lanterns,The Quiet Tides,,GB,48000,$480.50
Salt and Static,Jonah Reyes,,CA,15500,$155.25
"""

AUTOMATION_RULES = [
    ("Escalate urgent tickets", "ticket_created", {"priority": "urgent"},
     [{"type": "notify", "channel": "support-leads"}], 1),
    ("At-risk customer outreach", "health_score_drop", {"below": 40},
     [{"type": "create_task", "owner": "customer_success"}], 2),
    ("Statement received reminder", "batch_created", {"status": "Pending"},
     [{"type": "email", "template": "statement_received"}], 3),
]


async def seed_demo_data(session: AsyncSession, now: datetime | None = None) -> dict[str, int]:
    """Insert the demo data set once.

    Returns row counts per table, or an empty dict when payees already
    exist.
    """
    existing = await session.scalar(select(func.count()).select_from(Payee))
    if existing:
        logger.info("Demo data already present (%d payees), skipping", existing)
        return {}

    now = now or utcnow()
    today = now.date()
    counts: dict[str, int] = {}

    payees = [Payee(payee_name=n, payee_type=t, contact_email=e) for n, t, e in PAYEES]
    session.add_all(payees)
    await session.flush()
    counts["payees"] = len(payees)

    for title, artist, iswc, akas, splits in COPYRIGHTS:
        work = Copyright(work_title=title, artist=artist, iswc=iswc, akas=akas)
        work.splits = [
            CopyrightSplit(payee_id=payees[i].id, ownership_percentage=Decimal(pct), writer_name=name)
            for i, pct, name in splits
        ]
        session.add(work)
    counts["copyrights"] = len(COPYRIGHTS)

    quarter_start = date(today.year, 3 * ((today.month - 1) // 3) + 1, 1)
    period_end = quarter_start - timedelta(days=1)
    period_start = date(period_end.year, period_end.month - 2, 1)
    session.add(
        ReconciliationBatch(
            batch_code=f"BATCH-{today:%Y%m%d}-DEMO01",
            source="Spotify",
            date_received=today,
            statement_period_start=period_start,
            statement_period_end=period_end,
            total_gross_amount=Decimal("1885.75"),
            notes="Demo statement; import DEMO_STATEMENT to continue",
        )
    )
    counts["batches"] = 1

    session.add_all(
        [
            Expense(
                payee_id=payees[0].id,
                description="Signing advance",
                expense_type="advance",
                amount=Decimal("300.00"),
                is_recoupable=True,
                effective_date=period_start,
            ),
            Expense(
                payee_id=payees[1].id,
                description="Manager commission",
                expense_type="commission",
                is_percentage=True,
                percentage_rate=Decimal("10"),
                is_commission=True,
            ),
            Expense(
                payee_id=payees[2].id,
                description="Registration admin fee",
                expense_type="admin_fee",
                amount=Decimal("25.00"),
            ),
        ]
    )
    counts["expenses"] = 3

    risk = ["low", "low", "medium", "high", "critical", "low"]
    scores = [92.5, 88.0, 64.0, 38.5, 21.0, 79.0]
    health_rows = []
    for i, (level, score) in enumerate(zip(risk, scores), start=1):
        health_rows.append(
            CustomerHealthMetric(
                customer_user_id=f"customer-{i:03d}",
                health_score=score,
                feature_adoption_rate=round(score / 100, 2),
                login_frequency=float(10 - i),
                last_activity_date=now - timedelta(days=i * 9),
                modules_used=["royalties", "contracts"][: 1 + i % 2],
                contracts_created=i * 2,
                royalties_processed=i * 5,
                support_tickets_count=i % 3,
                subscription_status="active" if level != "critical" else "past_due",
                days_since_signup=30 * i,
                risk_level=level,
            )
        )
    session.add_all(health_rows)
    counts["customer_health"] = len(health_rows)

    tickets = [
        ("customer-001", "Statement import fails on CSV", "royalties", "high", "open", None, 1.5, None),
        ("customer-002", "Add a second publisher", "account", "low", "resolved", 6.0, 0.5, 4.5),
        ("customer-003", "Payout stuck in processing", "payouts", "urgent", "in_progress", None, 0.25, None),
        ("customer-004", "Invoice copy", "billing", "medium", "closed", 12.0, 2.0, 5.0),
        ("customer-005", "Contract template question", "contracts", "medium", "resolved", 20.0, 3.0, 3.5),
    ]
    session.add_all(
        [
            SupportTicket(
                customer_user_id=customer,
                ticket_subject=subject,
                ticket_category=category,
                priority_level=priority,
                status=status,
                resolution_time_hours=resolution,
                first_response_time_hours=first_response,
                customer_satisfaction_score=satisfaction,
                resolved_at=now - timedelta(days=1) if status in ("resolved", "closed") else None,
            )
            for customer, subject, category, priority, status, resolution, first_response, satisfaction in tickets
        ]
    )
    counts["tickets"] = len(tickets)

    events = []
    for i in range(1, 7):
        customer = f"customer-{i:03d}"
        signed_up = now - timedelta(days=30 * i)
        events.append(
            RevenueEvent(
                customer_user_id=customer,
                event_type="signup",
                revenue_amount=Decimal("99.00"),
                new_plan="starter",
                billing_cycle="monthly",
                mrr_change=Decimal("99.00"),
                created_at=signed_up,
            )
        )
        events.append(
            RevenueEvent(
                customer_user_id=customer,
                event_type="payment_success",
                revenue_amount=Decimal("99.00"),
                billing_cycle="monthly",
                created_at=now - timedelta(days=1),
            )
        )
    events.append(
        RevenueEvent(
            customer_user_id="customer-002",
            event_type="upgrade",
            revenue_amount=Decimal("150.00"),
            previous_plan="starter",
            new_plan="pro",
            billing_cycle="monthly",
            mrr_change=Decimal("150.00"),
            created_at=now - timedelta(days=3),
        )
    )
    events.append(
        RevenueEvent(
            customer_user_id="customer-005",
            event_type="churn",
            revenue_amount=Decimal("0.00"),
            previous_plan="starter",
            mrr_change=Decimal("-99.00"),
            created_at=now - timedelta(days=2),
        )
    )
    session.add_all(events)
    counts["revenue_events"] = len(events)

    alerts = [
        ("Database connections high", "Connection pool at 85% capacity", "performance", "high", "active"),
        ("Statement import backlog", "4 statements waiting more than 48 hours", "royalties", "medium", "acknowledged"),
        ("Payment provider outage", "Payouts API returned errors for 12 minutes", "integration", "critical", "resolved"),
    ]
    session.add_all(
        [
            SystemAlert(
                alert_name=name,
                alert_message=message,
                alert_type=alert_type,
                severity=severity,
                status=status,
                acknowledged_at=now if status != "active" else None,
                resolved_at=now if status == "resolved" else None,
            )
            for name, message, alert_type, severity, status in alerts
        ]
    )
    counts["alerts"] = len(alerts)

    session.add_all(
        [
            WorkflowAutomationRule(
                rule_name=name,
                trigger_type=trigger,
                trigger_conditions=conditions,
                actions=actions,
                priority=priority,
                is_active=priority != 3,
            )
            for name, trigger, conditions, actions, priority in AUTOMATION_RULES
        ]
    )
    counts["automation_rules"] = len(AUTOMATION_RULES)

    await session.flush()
    logger.info("Seeded demo data: %s", counts)
    return counts
