"""Workflow automation rule service."""

from __future__ import annotations

import logging
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from royalty_ops.errors import NotFoundError
from royalty_ops.models import WorkflowAutomationRule, utcnow

logger = logging.getLogger(__name__)


def automation_summary(rules: Sequence[WorkflowAutomationRule]) -> dict[str, Any]:
    return {
        "total_rules": len(rules),
        "active_rules": sum(1 for r in rules if r.is_active),
        "total_executions": sum(r.execution_count or 0 for r in rules),
    }


class AutomationService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_rules(self) -> list[WorkflowAutomationRule]:
        result = await self.session.execute(
            select(WorkflowAutomationRule).order_by(
                WorkflowAutomationRule.priority, WorkflowAutomationRule.rule_name
            )
        )
        return list(result.scalars().all())

    async def get_rule(self, rule_id: UUID) -> WorkflowAutomationRule:
        rule = await self.session.get(WorkflowAutomationRule, rule_id)
        if rule is None:
            raise NotFoundError("Automation rule", rule_id)
        return rule

    async def toggle_rule(self, rule_id: UUID, is_active: bool) -> WorkflowAutomationRule:
        """Set the rule's active flag with one UPDATE, then read it back."""
        result = await self.session.execute(
            update(WorkflowAutomationRule)
            .where(WorkflowAutomationRule.id == rule_id)
            .values(is_active=is_active, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Automation rule", rule_id)

        refetched = await self.session.execute(
            select(WorkflowAutomationRule)
            .where(WorkflowAutomationRule.id == rule_id)
            .execution_options(populate_existing=True)
        )
        rule = refetched.scalar_one()
        logger.info("Automation rule '%s' %s", rule.rule_name, "enabled" if rule.is_active else "disabled")
        return rule

    async def record_execution(self, rule_id: UUID) -> WorkflowAutomationRule:
        rule = await self.get_rule(rule_id)
        rule.execution_count = (rule.execution_count or 0) + 1
        rule.last_executed_at = utcnow()
        await self.session.flush()
        return rule
