"""Operations dashboard API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query
from sqlalchemy import select

from royalty_ops.analytics import (
    build_cohorts,
    compute_financial_metrics,
    compute_operations_metrics,
    filter_tickets,
    health_distribution,
    summarize_cohorts,
    ticket_stats,
)
from royalty_ops.api.dependencies import AppSettings, DbSession
from royalty_ops.api.schemas import (
    AlertListResponse,
    AlertResponse,
    AutomationRuleListResponse,
    AutomationRuleResponse,
    CohortAnalysisResponse,
    CohortResponse,
    ErrorResponse,
    FinancialMetricsResponse,
    OperationsMetricsResponse,
    TicketListResponse,
    TicketResponse,
    ToggleRuleRequest,
)
from royalty_ops.models import CustomerHealthMetric, Payout, RevenueEvent, SupportTicket
from royalty_ops.services.alert_service import AlertService, alert_counts
from royalty_ops.services.automation_service import AutomationService, automation_summary

router = APIRouter(prefix="/operations", tags=["operations"])

ERRORS = {400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}


async def _all(db, model, *order_by):
    result = await db.execute(select(model).order_by(*order_by))
    return list(result.scalars().all())


# ============================================================================
# Metrics
# ============================================================================


@router.get("/metrics", response_model=OperationsMetricsResponse)
async def operations_metrics(db: DbSession, settings: AppSettings) -> OperationsMetricsResponse:
    """Headline dashboard cards."""
    health = await _all(db, CustomerHealthMetric, CustomerHealthMetric.health_score.desc())
    tickets = await _all(db, SupportTicket, SupportTicket.created_at.desc())
    events = await _all(db, RevenueEvent, RevenueEvent.created_at.desc())

    metrics = compute_operations_metrics(
        health, tickets, events, active_window_days=settings.active_window_days
    )
    return OperationsMetricsResponse(
        **metrics.to_dict(), health_distribution=health_distribution(health)
    )


@router.get("/financial-metrics", response_model=FinancialMetricsResponse)
async def financial_metrics(db: DbSession) -> FinancialMetricsResponse:
    events = await _all(db, RevenueEvent, RevenueEvent.created_at.desc())
    payouts = await _all(db, Payout, Payout.created_at.desc())
    return FinancialMetricsResponse.model_validate(compute_financial_metrics(events, payouts))


@router.get("/cohorts", response_model=CohortAnalysisResponse)
async def cohort_analysis(db: DbSession) -> CohortAnalysisResponse:
    events = await _all(db, RevenueEvent, RevenueEvent.created_at)
    cohorts = build_cohorts(events)
    return CohortAnalysisResponse(
        cohorts=[CohortResponse.model_validate(c) for c in cohorts],
        summary=summarize_cohorts(cohorts),
    )


# ============================================================================
# Tickets & alerts
# ============================================================================


@router.get("/tickets", response_model=TicketListResponse)
async def list_tickets(
    db: DbSession,
    status_filter: Annotated[str, Query(alias="status")] = "all",
    priority: str = "all",
    search: str | None = None,
) -> TicketListResponse:
    tickets = await _all(db, SupportTicket, SupportTicket.created_at.desc())
    matched = filter_tickets(tickets, status_filter, priority, search)
    return TicketListResponse(
        items=[TicketResponse.model_validate(t) for t in matched],
        total=len(matched),
        stats=ticket_stats(tickets),
    )


@router.get("/alerts", response_model=AlertListResponse)
async def list_alerts(
    db: DbSession,
    search: str | None = None,
    severity: str = "all",
    status_filter: Annotated[str, Query(alias="status")] = "all",
) -> AlertListResponse:
    alerts = await AlertService(db).list_alerts(search, severity, status_filter)
    return AlertListResponse(
        items=[AlertResponse.model_validate(a) for a in alerts],
        total=len(alerts),
    )


@router.get("/alerts/counts")
async def alert_status_counts(db: DbSession) -> dict[str, int]:
    return alert_counts(await AlertService(db).list_alerts())


@router.post("/alerts/{alert_id}/acknowledge", response_model=AlertResponse, responses=ERRORS)
async def acknowledge_alert(db: DbSession, alert_id: Annotated[UUID, Path()]) -> AlertResponse:
    alert = await AlertService(db).acknowledge_alert(alert_id)
    await db.commit()
    return AlertResponse.model_validate(alert)


@router.post("/alerts/{alert_id}/resolve", response_model=AlertResponse, responses=ERRORS)
async def resolve_alert(db: DbSession, alert_id: Annotated[UUID, Path()]) -> AlertResponse:
    alert = await AlertService(db).resolve_alert(alert_id)
    await db.commit()
    return AlertResponse.model_validate(alert)


# ============================================================================
# Automation rules
# ============================================================================


@router.get("/automation-rules", response_model=AutomationRuleListResponse)
async def list_automation_rules(db: DbSession) -> AutomationRuleListResponse:
    rules = await AutomationService(db).list_rules()
    return AutomationRuleListResponse(
        items=[AutomationRuleResponse.model_validate(r) for r in rules],
        summary=automation_summary(rules),
    )


@router.post(
    "/automation-rules/{rule_id}/toggle",
    response_model=AutomationRuleResponse,
    responses=ERRORS,
)
async def toggle_automation_rule(
    db: DbSession,
    rule_id: Annotated[UUID, Path()],
    payload: ToggleRuleRequest,
) -> AutomationRuleResponse:
    rule = await AutomationService(db).toggle_rule(rule_id, payload.is_active)
    await db.commit()
    return AutomationRuleResponse.model_validate(rule)
