"""System alert service and alert-center filters."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from royalty_ops.errors import NotFoundError
from royalty_ops.models import SystemAlert, utcnow
from royalty_ops.services.audit import record_audit
from royalty_ops.services.state_machine import AlertStateMachine, AlertStatus

logger = logging.getLogger(__name__)

ALL = "all"


def filter_alerts(
    alerts: Iterable[SystemAlert],
    search: str | None = None,
    severity: str | None = ALL,
    status: str | None = ALL,
) -> list[SystemAlert]:
    """Filter alerts the way the alert center does.

    "all" (or an empty value) disables the severity/status filter; search
    matches the alert name or message case-insensitively.
    """
    needle = (search or "").strip().lower()
    matched = []
    for alert in alerts:
        if needle and needle not in alert.alert_name.lower() and needle not in alert.alert_message.lower():
            continue
        if severity and severity != ALL and alert.severity != severity:
            continue
        if status and status != ALL and alert.status != status:
            continue
        matched.append(alert)
    return matched


def alert_counts(alerts: Sequence[SystemAlert]) -> dict[str, int]:
    counts = {s.value: 0 for s in AlertStatus}
    for alert in alerts:
        counts[alert.status] = counts.get(alert.status, 0) + 1
    counts["critical_active"] = sum(
        1 for a in alerts if a.severity == "critical" and a.status == AlertStatus.ACTIVE
    )
    return counts


class AlertService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_alerts(
        self,
        search: str | None = None,
        severity: str | None = ALL,
        status: str | None = ALL,
    ) -> list[SystemAlert]:
        result = await self.session.execute(
            select(SystemAlert).order_by(SystemAlert.created_at.desc())
        )
        return filter_alerts(result.scalars().all(), search, severity, status)

    async def get_alert(self, alert_id: UUID) -> SystemAlert:
        alert = await self.session.get(SystemAlert, alert_id)
        if alert is None:
            raise NotFoundError("Alert", alert_id)
        return alert

    async def acknowledge_alert(self, alert_id: UUID, actor: str | None = None) -> SystemAlert:
        alert = await self._transition(alert_id, AlertStatus.ACKNOWLEDGED, actor)
        alert.acknowledged_at = utcnow()
        return alert

    async def resolve_alert(self, alert_id: UUID, actor: str | None = None) -> SystemAlert:
        alert = await self._transition(alert_id, AlertStatus.RESOLVED, actor)
        alert.resolved_at = utcnow()
        return alert

    async def _transition(
        self, alert_id: UUID, to_status: AlertStatus, actor: str | None
    ) -> SystemAlert:
        alert = await self.get_alert(alert_id)
        from_status = alert.status
        AlertStateMachine.validate_transition(from_status, to_status)

        alert.status = to_status.value
        record_audit(
            self.session, "system_alert", alert.id, f"status_change:{from_status}:{to_status.value}", actor
        )
        await self.session.flush()
        logger.info("Alert %s (%s): %s → %s", alert.id, alert.alert_name, from_status, to_status.value)
        return alert
