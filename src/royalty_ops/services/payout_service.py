"""Payout workflow service."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from royalty_ops.calculators.types import ZERO
from royalty_ops.errors import InvalidTransitionError, NotFoundError
from royalty_ops.models import Payout, utcnow
from royalty_ops.services.audit import record_audit
from royalty_ops.services.state_machine import PayoutStateMachine, PayoutStatus

logger = logging.getLogger(__name__)


class PayoutService:
    """Moves payouts through pending → approved → processing → paid."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_payout(self, payout_id: UUID) -> Payout:
        payout = await self.session.get(Payout, payout_id)
        if payout is None:
            raise NotFoundError("Payout", payout_id)
        return payout

    async def list_payouts(
        self,
        status: str | None = None,
        payee_id: UUID | None = None,
        batch_id: UUID | None = None,
    ) -> list[Payout]:
        query = select(Payout)
        if status:
            query = query.where(Payout.status == status)
        if payee_id:
            query = query.where(Payout.payee_id == payee_id)
        if batch_id:
            query = query.where(Payout.batch_id == batch_id)
        result = await self.session.execute(query.order_by(Payout.created_at.desc()))
        return list(result.scalars().all())

    async def payout_totals(self) -> dict[str, dict[str, Any]]:
        """Count and net payable per workflow stage."""
        result = await self.session.execute(
            select(Payout.status, func.count(), func.coalesce(func.sum(Payout.net_payable), 0))
            .group_by(Payout.status)
        )
        totals: dict[str, dict[str, Any]] = {
            s.value: {"count": 0, "net_payable": ZERO} for s in PayoutStatus
        }
        for status, count, net in result.all():
            totals[status] = {"count": count, "net_payable": Decimal(str(net))}
        return totals

    async def approve(self, payout_id: UUID, actor: str | None = None) -> Payout:
        payout = await self._transition(payout_id, PayoutStatus.APPROVED, actor)
        payout.approved_at = utcnow()
        return payout

    async def start_processing(self, payout_id: UUID, actor: str | None = None) -> Payout:
        return await self._transition(payout_id, PayoutStatus.PROCESSING, actor)

    async def mark_paid(
        self,
        payout_id: UUID,
        payment_reference: str,
        payment_date: date | None = None,
        actor: str | None = None,
    ) -> Payout:
        if not payment_reference or not payment_reference.strip():
            raise ValueError("A payment reference is required")
        payout = await self._transition(
            payout_id, PayoutStatus.PAID, actor, {"payment_reference": payment_reference}
        )
        payout.payment_reference = payment_reference.strip()
        payout.payment_date = payment_date or utcnow().date()
        return payout

    async def hold(self, payout_id: UUID, reason: str | None = None, actor: str | None = None) -> Payout:
        payout = await self._transition(payout_id, PayoutStatus.ON_HOLD, actor, {"reason": reason})
        if reason:
            payout.notes = f"{payout.notes}\n{reason}" if payout.notes else reason
        return payout

    async def release(self, payout_id: UUID, actor: str | None = None) -> Payout:
        return await self._transition(payout_id, PayoutStatus.PENDING, actor)

    async def _transition(
        self,
        payout_id: UUID,
        to_status: PayoutStatus,
        actor: str | None,
        details: dict[str, Any] | None = None,
    ) -> Payout:
        payout = await self.get_payout(payout_id)
        from_status = payout.status

        # Reversal belongs to batch unprocessing only
        if to_status == PayoutStatus.REVERSED:
            raise InvalidTransitionError(from_status, to_status, "Unprocess the batch instead")
        try:
            PayoutStateMachine.validate_transition(from_status, to_status)
        except InvalidTransitionError:
            logger.warning("Rejected payout %s transition %s → %s", payout.id, from_status, to_status)
            raise

        payout.status = to_status.value
        record_audit(
            self.session,
            "payout",
            payout.id,
            f"status_change:{from_status}:{to_status.value}",
            actor,
            {k: v for k, v in (details or {}).items() if v is not None} or None,
        )
        await self.session.flush()
        logger.info("Payout %s: %s → %s", payout.id, from_status, to_status.value)
        return payout
