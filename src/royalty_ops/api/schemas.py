"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Error body returned for failed requests."""

    detail: str
    code: str | None = None


# ============================================================================
# Batch schemas
# ============================================================================


class BatchCreate(BaseModel):
    """Schema for creating a reconciliation batch."""

    source: str
    date_received: date | None = None
    statement_period_start: date | None = None
    statement_period_end: date | None = None
    total_gross_amount: Decimal | None = None
    statement_file_url: str | None = None
    notes: str | None = None


class BatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    batch_code: str
    source: str
    date_received: date
    statement_period_start: date | None = None
    statement_period_end: date | None = None
    total_gross_amount: Decimal | None = None
    statement_file_url: str | None = None
    notes: str | None = None
    status: str
    processed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class BatchListResponse(BaseModel):
    items: list[BatchResponse]
    total: int
    page: int
    page_size: int


class BatchSummaryResponse(BaseModel):
    batch_id: UUID
    batch_code: str
    status: str
    allocation_count: int
    matched_count: int
    imported_total: Decimal
    statement_total: Decimal | None = None
    difference: Decimal | None = None
    payout_count: int
    payout_net_total: Decimal
    next_statuses: list[str]


class StatementImportRequest(BaseModel):
    """CSV statement text with an optional field -> column mapping."""

    csv_text: str = Field(min_length=1)
    mapping: dict[str, str] | None = None


class MappingIssueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    row: int
    field: str
    message: str


class StatementImportResponse(BaseModel):
    batch: BatchResponse
    allocations_created: int
    total_gross: Decimal
    mapping: dict[str, str]
    unmapped_columns: list[str]
    issues: list[MappingIssueResponse]


class MatchRequest(BaseModel):
    threshold: float | None = Field(default=None, ge=0, le=1)


class MatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    matched: int
    unmatched: int


class ValidationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    batch_id: UUID
    is_valid: bool
    allocation_count: int
    imported_total: Decimal
    errors: list[str]
    warnings: list[str]


class AllocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    batch_id: UUID
    copyright_id: UUID | None = None
    line_number: int | None = None
    song_title: str
    artist: str | None = None
    isrc: str | None = None
    iswc: str | None = None
    country: str | None = None
    revenue_source: str | None = None
    quantity: Decimal | None = None
    gross_royalty_amount: Decimal
    net_amount: Decimal | None = None
    match_confidence: float | None = None


class AllocationLinkRequest(BaseModel):
    """Copyright to link; null removes the match."""

    copyright_id: UUID | None


class ClearImportResponse(BaseModel):
    batch: BatchResponse
    allocations_removed: int


# ============================================================================
# Payout schemas
# ============================================================================


class PayoutResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payee_id: UUID
    batch_id: UUID | None = None
    period: str
    gross_royalties: Decimal
    total_expenses: Decimal
    net_payable: Decimal
    status: str
    approved_at: datetime | None = None
    payment_date: date | None = None
    payment_reference: str | None = None
    notes: str | None = None
    created_at: datetime


class ProcessResponse(BaseModel):
    batch: BatchResponse
    payouts: list[PayoutResponse]
    payees_affected: int
    total_gross: Decimal
    total_expenses: Decimal
    total_net: Decimal


class UnprocessRequest(BaseModel):
    reason: str = Field(min_length=1)


class UnprocessResponse(BaseModel):
    batch: BatchResponse
    payouts_reversed: int
    expenses_restored: int
    total_reversed: Decimal


class PaymentRequest(BaseModel):
    payment_reference: str = Field(min_length=1)
    payment_date: date | None = None


class HoldRequest(BaseModel):
    reason: str | None = None


# ============================================================================
# Operations schemas
# ============================================================================


class OperationsMetricsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_customers: int
    active_customers: int
    avg_health_score: float
    critical_risk_customers: int
    open_tickets: int
    avg_resolution_time: float
    monthly_recurring_revenue: float
    churn_rate: float
    customer_satisfaction: float
    health_distribution: dict[str, int] = Field(default_factory=dict)


class FinancialMetricsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    mrr: float
    arr: float
    gross_profit: float
    net_profit: float
    profit_margin: float
    growth_rate: float
    target_revenue: int
    target_profit_margin: int
    customer_acquisition_cost: float
    lifetime_value: float
    churn_rate: float
    revenue_per_customer: float


class CohortResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cohort_period: str
    cohort_size: int
    retention_data: dict[str, int | None]
    revenue_data: dict[str, float | None]


class CohortAnalysisResponse(BaseModel):
    cohorts: list[CohortResponse]
    summary: dict[str, Any]


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    customer_user_id: str
    ticket_subject: str
    ticket_category: str
    priority_level: str
    status: str
    resolution_time_hours: float | None = None
    first_response_time_hours: float | None = None
    customer_satisfaction_score: float | None = None
    created_at: datetime
    resolved_at: datetime | None = None


class TicketListResponse(BaseModel):
    items: list[TicketResponse]
    total: int
    stats: dict[str, Any]


class AlertResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    alert_name: str
    alert_message: str
    alert_type: str
    severity: str
    status: str
    acknowledged_at: datetime | None = None
    resolved_at: datetime | None = None
    created_at: datetime


class AlertListResponse(BaseModel):
    items: list[AlertResponse]
    total: int


class AutomationRuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    rule_name: str
    trigger_type: str
    trigger_conditions: dict[str, Any] | None = None
    actions: list[Any] | None = None
    is_active: bool
    priority: int
    execution_count: int
    last_executed_at: datetime | None = None


class AutomationRuleListResponse(BaseModel):
    items: list[AutomationRuleResponse]
    summary: dict[str, Any]


class ToggleRuleRequest(BaseModel):
    is_active: bool


# ============================================================================
# Assistant & seed schemas
# ============================================================================


class AssistantRequest(BaseModel):
    message: str = Field(min_length=1)


class ChatMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    content: str
    timestamp: datetime
    suggestions: list[str]


class SeedResponse(BaseModel):
    seeded: bool
    counts: dict[str, int]
