"""Operations dashboard analytics."""

from royalty_ops.analytics.cohorts import Cohort, build_cohorts, summarize_cohorts
from royalty_ops.analytics.operations import (
    FinancialMetrics,
    OperationsMetrics,
    QuarterlyExpenses,
    compute_financial_metrics,
    compute_operations_metrics,
    filter_tickets,
    health_distribution,
    round_half_up,
    ticket_stats,
)

__all__ = [
    "Cohort",
    "build_cohorts",
    "summarize_cohorts",
    "FinancialMetrics",
    "OperationsMetrics",
    "QuarterlyExpenses",
    "compute_financial_metrics",
    "compute_operations_metrics",
    "filter_tickets",
    "health_distribution",
    "round_half_up",
    "ticket_stats",
]
