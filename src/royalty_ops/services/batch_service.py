"""Reconciliation batch service - lifecycle orchestration for royalty batches."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Iterable, Mapping
from uuid import UUID, uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from royalty_ops.calculators.expenses import apply_expenses, is_recurring
from royalty_ops.calculators.matching import SongLine, WorkCandidate, find_potential_matches
from royalty_ops.calculators.splits import split_amount, validate_splits
from royalty_ops.calculators.statement_mapping import parse_statement
from royalty_ops.calculators.types import ZERO, ExpenseTerms, MappedStatement, SplitShare
from royalty_ops.config import Settings, get_settings
from royalty_ops.errors import (
    BatchValidationError,
    InvalidTransitionError,
    NotFoundError,
    SplitValidationError,
    UnprocessWindowError,
)
from royalty_ops.models import (
    ROYALTY_SOURCES,
    Copyright,
    Expense,
    ExpenseApplication,
    Payee,
    Payout,
    ReconciliationBatch,
    RoyaltyAllocation,
    as_utc,
    utcnow,
)
from royalty_ops.services.audit import record_audit
from royalty_ops.services.state_machine import (
    BatchStateMachine,
    BatchStatus,
    PayoutStateMachine,
    PayoutStatus,
)

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Outcome of importing a statement into a batch."""

    batch: ReconciliationBatch
    statement: MappedStatement
    allocations_created: int


@dataclass
class MatchSummary:
    """Outcome of matching a batch's allocations to copyrights."""

    total: int = 0
    matched: int = 0
    unmatched: int = 0


@dataclass
class BatchValidation:
    """Pre-processing checks for a batch."""

    batch_id: UUID
    allocation_count: int = 0
    imported_total: Decimal = ZERO
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass
class ProcessingResult:
    """Outcome of processing a batch."""

    batch: ReconciliationBatch
    payouts: list[Payout] = field(default_factory=list)
    total_gross: Decimal = ZERO
    total_expenses: Decimal = ZERO
    total_net: Decimal = ZERO

    @property
    def payees_affected(self) -> int:
        return len({p.payee_id for p in self.payouts})


@dataclass
class UnprocessResult:
    """Outcome of reversing a processed batch."""

    batch: ReconciliationBatch
    payouts_reversed: int = 0
    expenses_restored: int = 0
    total_reversed: Decimal = ZERO


def generate_batch_code(received: date) -> str:
    """Human-readable batch identifier, e.g. BATCH-20240115-3F9A1C."""
    return f"BATCH-{received:%Y%m%d}-{uuid4().hex[:6].upper()}"


def period_label(batch: ReconciliationBatch) -> str:
    """Statement period of a batch, or the quarter it was received in."""
    start, end = batch.statement_period_start, batch.statement_period_end
    if start and end:
        return f"{start.isoformat()}..{end.isoformat()}"
    received = batch.date_received
    return f"{received.year}-Q{(received.month - 1) // 3 + 1}"


class BatchService:
    """Service for managing the reconciliation batch lifecycle.

    Operations:
    - create_batch: New batch in Pending
    - import_statement: Map statement lines into allocations (→ Imported)
    - match_allocations: Link allocations to copyrights
    - link_allocation: Match or unmatch one allocation by hand
    - clear_import: Delete imported allocations (Imported → Pending)
    - validate_batch: Pre-processing checks
    - process_batch: Split allocations into payee payouts (→ Processed)
    - unprocess_batch: Reverse payouts, balances and expenses (→ Pending)
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_batch(self, batch_id: UUID) -> ReconciliationBatch | None:
        return await self.session.get(ReconciliationBatch, batch_id)

    async def require_batch(self, batch_id: UUID) -> ReconciliationBatch:
        batch = await self.get_batch(batch_id)
        if batch is None:
            raise NotFoundError("Batch", batch_id)
        return batch

    async def list_batches(
        self,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[ReconciliationBatch], int]:
        """List batches newest first, with the unpaginated total."""
        query = select(ReconciliationBatch)
        if status:
            query = query.where(ReconciliationBatch.status == status)

        total = await self.session.scalar(select(func.count()).select_from(query.subquery())) or 0

        query = query.order_by(ReconciliationBatch.created_at.desc()).offset(offset).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all()), total

    async def get_allocations(self, batch_id: UUID) -> list[RoyaltyAllocation]:
        result = await self.session.execute(
            select(RoyaltyAllocation)
            .where(RoyaltyAllocation.batch_id == batch_id)
            .order_by(RoyaltyAllocation.line_number, RoyaltyAllocation.created_at)
        )
        return list(result.scalars().all())

    async def get_payouts(self, batch_id: UUID) -> list[Payout]:
        result = await self.session.execute(
            select(Payout).where(Payout.batch_id == batch_id).order_by(Payout.created_at)
        )
        return list(result.scalars().all())

    async def batch_summary(self, batch_id: UUID) -> dict[str, Any]:
        """Totals and counts shown on the batch detail view."""
        batch = await self.require_batch(batch_id)
        allocations = await self.get_allocations(batch_id)
        payouts = await self.get_payouts(batch_id)
        active = [p for p in payouts if p.status != PayoutStatus.REVERSED]

        imported_total = sum((a.gross_royalty_amount for a in allocations), ZERO)
        return {
            "batch_id": batch.id,
            "batch_code": batch.batch_code,
            "status": batch.status,
            "allocation_count": len(allocations),
            "matched_count": sum(1 for a in allocations if a.copyright_id is not None),
            "imported_total": imported_total,
            "statement_total": batch.total_gross_amount,
            "difference": (
                imported_total - batch.total_gross_amount
                if batch.total_gross_amount is not None
                else None
            ),
            "payout_count": len(active),
            "payout_net_total": sum((p.net_payable for p in active), ZERO),
            "next_statuses": BatchStateMachine.get_next_statuses(batch.status),
        }

    # ------------------------------------------------------------------
    # Creation & import
    # ------------------------------------------------------------------

    async def create_batch(
        self,
        *,
        source: str,
        date_received: date | None = None,
        statement_period_start: date | None = None,
        statement_period_end: date | None = None,
        total_gross_amount: Decimal | None = None,
        statement_file_url: str | None = None,
        notes: str | None = None,
        actor: str | None = None,
    ) -> ReconciliationBatch:
        """Create a batch in Pending status."""
        if source not in ROYALTY_SOURCES:
            raise ValueError(f"Unknown royalty source '{source}'")
        if (
            statement_period_start
            and statement_period_end
            and statement_period_end < statement_period_start
        ):
            raise ValueError("Statement period end is before its start")

        received = date_received or utcnow().date()
        batch = ReconciliationBatch(
            id=uuid4(),
            batch_code=generate_batch_code(received),
            source=source,
            date_received=received,
            statement_period_start=statement_period_start,
            statement_period_end=statement_period_end,
            total_gross_amount=total_gross_amount,
            statement_file_url=statement_file_url,
            notes=notes,
            status=BatchStatus.PENDING.value,
        )
        self.session.add(batch)
        record_audit(
            self.session,
            "reconciliation_batch",
            batch.id,
            "created",
            actor,
            {"source": source, "total_gross_amount": total_gross_amount},
        )
        await self.session.flush()
        logger.info("Created batch %s (%s)", batch.batch_code, source)
        return batch

    async def import_statement(
        self,
        batch_id: UUID,
        statement: str | Iterable[Mapping[str, Any]],
        mapping: Mapping[str, str] | None = None,
        actor: str | None = None,
    ) -> ImportResult:
        """Map statement lines into allocations and mark the batch Imported."""
        batch = await self.require_batch(batch_id)
        if not BatchStateMachine.can_modify_allocations(batch.status):
            raise InvalidTransitionError(
                batch.status,
                BatchStatus.IMPORTED,
                "Allocations cannot be imported into a processed batch",
            )

        mapped = parse_statement(statement, mapping)
        for candidate in mapped.candidates:
            self.session.add(
                RoyaltyAllocation(
                    batch_id=batch.id,
                    line_number=candidate.line_number,
                    song_title=candidate.song_title,
                    artist=candidate.artist,
                    isrc=candidate.isrc,
                    iswc=candidate.iswc,
                    country=candidate.country,
                    revenue_source=candidate.revenue_source or batch.source,
                    quantity=candidate.quantity,
                    gross_royalty_amount=candidate.gross_royalty_amount,
                    net_amount=candidate.net_amount,
                    mapped_data=candidate.raw,
                )
            )

        if batch.status == BatchStatus.PENDING and mapped.candidates:
            await self.transition_status(batch, BatchStatus.IMPORTED, actor)

        record_audit(
            self.session,
            "reconciliation_batch",
            batch.id,
            "statement_imported",
            actor,
            {
                "lines": len(mapped.candidates),
                "issues": len(mapped.issues),
                "total_gross": mapped.total_gross,
            },
        )
        await self.session.flush()
        logger.info(
            "Imported %d line(s) into batch %s (%d issue(s))",
            len(mapped.candidates),
            batch.batch_code,
            len(mapped.issues),
        )
        return ImportResult(batch=batch, statement=mapped, allocations_created=len(mapped.candidates))

    async def match_allocations(
        self,
        batch_id: UUID,
        threshold: float | None = None,
    ) -> MatchSummary:
        """Link unmatched allocations to the best-scoring copyright."""
        batch = await self.require_batch(batch_id)
        if not BatchStateMachine.can_modify_allocations(batch.status):
            raise InvalidTransitionError(
                batch.status, batch.status, "Allocations of a processed batch are locked"
            )

        threshold = self.settings.match_threshold if threshold is None else threshold
        allocations = await self.get_allocations(batch_id)
        works = await self._load_work_candidates()

        summary = MatchSummary(total=len(allocations))
        for allocation in allocations:
            if allocation.copyright_id is not None:
                summary.matched += 1
                continue
            matches = find_potential_matches(
                SongLine(
                    song_title=allocation.song_title,
                    artist=allocation.artist or "",
                    iswc=allocation.iswc,
                ),
                works,
                min_confidence=threshold,
            )
            if matches:
                best = matches[0]
                allocation.copyright_id = best.work.work_id
                allocation.match_confidence = round(best.confidence, 4)
                summary.matched += 1
            else:
                summary.unmatched += 1

        await self.session.flush()
        logger.info(
            "Matched %d/%d allocation(s) in batch %s",
            summary.matched,
            summary.total,
            batch.batch_code,
        )
        return summary

    async def link_allocation(
        self,
        batch_id: UUID,
        allocation_id: UUID,
        copyright_id: UUID | None,
        actor: str | None = None,
    ) -> RoyaltyAllocation:
        """Match an allocation to a copyright by hand, or unlink it with None."""
        batch = await self.require_batch(batch_id)
        if not BatchStateMachine.can_modify_allocations(batch.status):
            raise InvalidTransitionError(
                batch.status, batch.status, "Allocations of a processed batch are locked"
            )

        allocation = await self.session.get(RoyaltyAllocation, allocation_id)
        if allocation is None or allocation.batch_id != batch.id:
            raise NotFoundError("Allocation", allocation_id)
        if copyright_id is not None and await self.session.get(Copyright, copyright_id) is None:
            raise NotFoundError("Copyright", copyright_id)

        previous = allocation.copyright_id
        allocation.copyright_id = copyright_id
        allocation.match_confidence = 1.0 if copyright_id is not None else None
        record_audit(
            self.session,
            "royalty_allocation",
            allocation.id,
            "matched" if copyright_id is not None else "unmatched",
            actor,
            {"batch_id": batch.id, "from": previous, "to": copyright_id},
        )
        await self.session.flush()
        logger.info(
            "Allocation %s in batch %s linked to %s", allocation.id, batch.batch_code, copyright_id
        )
        return allocation

    async def clear_import(self, batch_id: UUID, actor: str | None = None) -> int:
        """Delete an Imported batch's allocations and return it to Pending."""
        batch = await self.require_batch(batch_id)
        if BatchStateMachine.is_unprocess(batch.status, BatchStatus.PENDING):
            raise InvalidTransitionError(
                batch.status, BatchStatus.PENDING, "Use unprocess_batch"
            )
        BatchStateMachine.validate_transition(batch.status, BatchStatus.PENDING)

        removed = await self.session.execute(
            delete(RoyaltyAllocation).where(RoyaltyAllocation.batch_id == batch.id)
        )
        await self.transition_status(batch, BatchStatus.PENDING, actor, "import cleared")
        record_audit(
            self.session,
            "reconciliation_batch",
            batch.id,
            "import_cleared",
            actor,
            {"allocations_removed": removed.rowcount},
        )
        await self.session.flush()
        logger.info("Cleared %d allocation(s) from batch %s", removed.rowcount, batch.batch_code)
        return removed.rowcount

    async def _load_work_candidates(self) -> list[WorkCandidate]:
        result = await self.session.execute(select(Copyright))
        works = []
        for work in result.scalars().all():
            works.append(
                WorkCandidate(
                    work_id=work.id,
                    work_title=work.work_title,
                    iswc=work.iswc,
                    artist=work.artist,
                    akas=list(work.akas or []),
                    writer_names=[s.writer_name for s in work.splits if s.writer_name],
                )
            )
        return works

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    async def validate_batch(self, batch_id: UUID) -> BatchValidation:
        """Run pre-processing checks; errors block processing, warnings do not."""
        batch = await self.require_batch(batch_id)
        allocations = await self.get_allocations(batch_id)

        validation = BatchValidation(
            batch_id=batch.id,
            allocation_count=len(allocations),
            imported_total=sum((a.gross_royalty_amount for a in allocations), ZERO),
        )

        if not allocations:
            validation.errors.append("Batch has no royalty allocations")

        unmatched = [a for a in allocations if a.copyright_id is None]
        if unmatched:
            validation.errors.append(
                f"{len(unmatched)} allocation(s) are not matched to a copyright"
            )

        copyrights = await self._load_copyrights({a.copyright_id for a in allocations})
        for copyright_ in copyrights.values():
            if not copyright_.splits:
                validation.errors.append(f"Copyright '{copyright_.work_title}' has no ownership splits")
                continue
            try:
                validate_splits(
                    [SplitShare(s.payee_id, s.ownership_percentage) for s in copyright_.splits],
                    tolerance=self.settings.split_tolerance,
                    copyright_id=copyright_.id,
                )
            except SplitValidationError as exc:
                validation.errors.append(
                    f"Ownership splits for '{copyright_.work_title}' total {exc.total}%"
                )

        if batch.total_gross_amount is not None and allocations:
            difference = validation.imported_total - batch.total_gross_amount
            if abs(difference) > Decimal("0.01"):
                validation.warnings.append(
                    f"Imported total {validation.imported_total} differs from statement "
                    f"total {batch.total_gross_amount} by {difference}"
                )

        return validation

    async def _load_copyrights(self, ids: set[UUID | None]) -> dict[UUID, Copyright]:
        wanted = [i for i in ids if i is not None]
        if not wanted:
            return {}
        result = await self.session.execute(select(Copyright).where(Copyright.id.in_(wanted)))
        return {c.id: c for c in result.scalars().all()}

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def process_batch(self, batch_id: UUID, actor: str | None = None) -> ProcessingResult:
        """Convert a batch's allocations into payee payouts.

        This method:
        1. Validates the transition and the batch contents
        2. Claims the batch with a conditional status update
        3. Splits every allocation among its copyright's payees
        4. Applies each payee's eligible expenses and creates one payout
        5. Adds net payable to payee balances
        """
        batch = await self.require_batch(batch_id)
        from_status = batch.status

        allocations = await self.get_allocations(batch_id)
        errors = BatchStateMachine.validate_batch_for_transition(
            batch, BatchStatus.PROCESSED, len(allocations)
        )
        if errors:
            logger.warning("Rejected processing of batch %s: %s", batch.batch_code, errors)
            raise InvalidTransitionError(from_status, BatchStatus.PROCESSED, "; ".join(errors))

        validation = await self.validate_batch(batch_id)
        if not validation.is_valid:
            logger.warning("Batch %s failed validation: %s", batch.batch_code, validation.errors)
            raise BatchValidationError(batch.id, validation.errors)

        now = utcnow()
        claimed = await self.session.execute(
            update(ReconciliationBatch)
            .where(
                ReconciliationBatch.id == batch.id,
                ReconciliationBatch.status == from_status,
            )
            .values(status=BatchStatus.PROCESSED.value, processed_at=now)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount == 0:
            await self.session.refresh(batch)
            raise InvalidTransitionError(
                batch.status, BatchStatus.PROCESSED, "Status changed during processing"
            )
        batch.status = BatchStatus.PROCESSED.value
        batch.processed_at = now

        # Gross per payee across all allocations
        copyrights = await self._load_copyrights({a.copyright_id for a in allocations})
        gross_by_payee: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
        for allocation in allocations:
            copyright_ = copyrights[allocation.copyright_id]
            shares = [SplitShare(s.payee_id, s.ownership_percentage) for s in copyright_.splits]
            for part in split_amount(allocation.gross_royalty_amount, shares):
                gross_by_payee[part.payee_id] += part.amount

        result = ProcessingResult(batch=batch)
        period = period_label(batch)
        payees = await self._load_payees(gross_by_payee.keys())
        expenses_by_payee = await self._eligible_expenses(gross_by_payee.keys(), batch)

        for payee_id, gross in gross_by_payee.items():
            expenses = expenses_by_payee.get(payee_id, [])
            applied = apply_expenses(gross, [self._terms(e) for e in expenses])

            payout = Payout(
                id=uuid4(),
                payee_id=payee_id,
                batch_id=batch.id,
                period=period,
                gross_royalties=gross,
                total_expenses=applied.total_expenses,
                net_payable=applied.net,
                status=PayoutStatus.PENDING.value,
            )
            self.session.add(payout)

            by_id = {e.id: e for e in expenses}
            for deduction in applied.deductions:
                expense = by_id[deduction.expense_id]
                self.session.add(
                    ExpenseApplication(
                        expense_id=expense.id,
                        payout_id=payout.id,
                        amount=deduction.amount,
                    )
                )
                if deduction.recoupment:
                    expense.recouped_amount = (expense.recouped_amount or ZERO) + deduction.amount
                    expense.status = "recouped" if expense.recouped_amount >= expense.amount else "pending"
                else:
                    expense.status = "applied"

            payee = payees[payee_id]
            payee.balance = (payee.balance or ZERO) + applied.net

            result.payouts.append(payout)
            result.total_gross += gross
            result.total_expenses += applied.total_expenses
            result.total_net += applied.net

        record_audit(
            self.session,
            "reconciliation_batch",
            batch.id,
            f"status_change:{from_status}:{BatchStatus.PROCESSED.value}",
            actor,
            {
                "payouts": len(result.payouts),
                "total_gross": result.total_gross,
                "total_expenses": result.total_expenses,
                "total_net": result.total_net,
            },
        )
        await self.session.flush()
        logger.info(
            "Processed batch %s: %d payout(s), gross %s, net %s",
            batch.batch_code,
            len(result.payouts),
            result.total_gross,
            result.total_net,
        )
        return result

    async def _load_payees(self, ids: Iterable[UUID]) -> dict[UUID, Payee]:
        wanted = list(ids)
        if not wanted:
            return {}
        result = await self.session.execute(select(Payee).where(Payee.id.in_(wanted)))
        payees = {p.id: p for p in result.scalars().all()}
        missing = [i for i in wanted if i not in payees]
        if missing:
            raise NotFoundError("Payee", missing[0])
        return payees

    async def _eligible_expenses(
        self,
        payee_ids: Iterable[UUID],
        batch: ReconciliationBatch,
    ) -> dict[UUID, list[Expense]]:
        wanted = list(payee_ids)
        if not wanted:
            return {}
        result = await self.session.execute(
            select(Expense)
            .where(Expense.payee_id.in_(wanted), Expense.status.in_(["pending", "applied"]))
            .order_by(Expense.created_at)
        )
        cutoff = batch.statement_period_end or batch.date_received
        grouped: dict[UUID, list[Expense]] = defaultdict(list)
        for expense in result.scalars().all():
            if expense.effective_date and expense.effective_date > cutoff:
                continue
            if expense.status == "applied" and not is_recurring(self._terms(expense)):
                continue
            grouped[expense.payee_id].append(expense)
        return grouped

    @staticmethod
    def _terms(expense: Expense) -> ExpenseTerms:
        return ExpenseTerms(
            expense_id=expense.id,
            expense_type=expense.expense_type,
            amount=expense.amount or ZERO,
            is_percentage=expense.is_percentage,
            percentage_rate=expense.percentage_rate,
            is_recoupable=expense.is_recoupable,
            is_commission=expense.is_commission,
            is_finder_fee=expense.is_finder_fee,
            recouped_amount=expense.recouped_amount or ZERO,
        )

    # ------------------------------------------------------------------
    # Unprocessing
    # ------------------------------------------------------------------

    async def unprocess_batch(
        self,
        batch_id: UUID,
        reason: str,
        actor: str | None = None,
        now: datetime | None = None,
    ) -> UnprocessResult:
        """Reverse a processed batch back to Pending.

        Payouts are marked reversed, payee balances lose the reversed net,
        expense applications are undone and recoupable expenses return to
        pending. Refused once any payout has entered payment.
        """
        if not reason or not reason.strip():
            raise ValueError("Unprocessing requires a reason")

        batch = await self.require_batch(batch_id)
        if batch.status != BatchStatus.PROCESSED:
            raise InvalidTransitionError(
                batch.status,
                BatchStatus.PENDING,
                "Only processed batches can be unprocessed",
            )

        now = now or utcnow()
        errors = BatchStateMachine.validate_batch_for_transition(batch, BatchStatus.PENDING)
        if errors:
            raise InvalidTransitionError(batch.status, BatchStatus.PENDING, "; ".join(errors))

        window = timedelta(days=self.settings.unprocess_window_days)
        if as_utc(now) - as_utc(batch.processed_at) > window:
            raise UnprocessWindowError(
                batch.id, batch.processed_at, self.settings.unprocess_window_days
            )

        payouts = await self.get_payouts(batch_id)
        locked = [p for p in payouts if not PayoutStateMachine.is_reversible(p.status)]
        if locked:
            raise InvalidTransitionError(
                batch.status,
                BatchStatus.PENDING,
                f"{len(locked)} payout(s) are already in payment",
            )

        claimed = await self.session.execute(
            update(ReconciliationBatch)
            .where(
                ReconciliationBatch.id == batch.id,
                ReconciliationBatch.status == BatchStatus.PROCESSED.value,
            )
            .values(status=BatchStatus.PENDING.value, processed_at=None)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount == 0:
            await self.session.refresh(batch)
            raise InvalidTransitionError(
                batch.status, BatchStatus.PENDING, "Status changed during unprocessing"
            )
        batch.status = BatchStatus.PENDING.value
        batch.processed_at = None
        stamp = f"[Unprocessed {as_utc(now):%Y-%m-%d}] {reason.strip()}"
        batch.notes = f"{batch.notes}\n{stamp}" if batch.notes else stamp

        result = UnprocessResult(batch=batch)
        open_payouts = [p for p in payouts if p.status != PayoutStatus.REVERSED]
        payees = await self._load_payees({p.payee_id for p in open_payouts})
        for payout in open_payouts:
            payee = payees[payout.payee_id]
            payee.balance = (payee.balance or ZERO) - payout.net_payable
            payout.status = PayoutStatus.REVERSED.value
            result.payouts_reversed += 1
            result.total_reversed += payout.net_payable

        result.expenses_restored = await self._reverse_expense_applications(
            [p.id for p in open_payouts]
        )

        record_audit(
            self.session,
            "reconciliation_batch",
            batch.id,
            f"status_change:{BatchStatus.PROCESSED.value}:{BatchStatus.PENDING.value}",
            actor,
            {
                "reason": reason,
                "payouts_reversed": result.payouts_reversed,
                "total_reversed": result.total_reversed,
            },
        )
        await self.session.flush()
        logger.info(
            "Unprocessed batch %s: %d payout(s) reversed (%s)",
            batch.batch_code,
            result.payouts_reversed,
            reason,
        )
        return result

    async def _reverse_expense_applications(self, payout_ids: list[UUID]) -> int:
        """Undo expense applications for reversed payouts; returns expenses touched."""
        if not payout_ids:
            return 0

        result = await self.session.execute(
            select(ExpenseApplication).where(
                ExpenseApplication.payout_id.in_(payout_ids),
                ExpenseApplication.reversed.is_(False),
            )
        )
        applications = list(result.scalars().all())
        if not applications:
            return 0

        expense_ids = {a.expense_id for a in applications}
        expenses = {
            e.id: e
            for e in (
                await self.session.execute(select(Expense).where(Expense.id.in_(expense_ids)))
            ).scalars().all()
        }

        for application in applications:
            application.reversed = True
            expense = expenses[application.expense_id]
            if expense.is_recoupable:
                expense.recouped_amount = max(
                    (expense.recouped_amount or ZERO) - application.amount, ZERO
                )
            expense.status = "pending"

        # Recurring expenses stay applied while other payouts still use them
        still_used = await self.session.execute(
            select(ExpenseApplication.expense_id)
            .where(
                ExpenseApplication.expense_id.in_(expense_ids),
                ExpenseApplication.payout_id.not_in(payout_ids),
                ExpenseApplication.reversed.is_(False),
            )
            .distinct()
        )
        for expense_id in still_used.scalars().all():
            expense = expenses[expense_id]
            if not expense.is_recoupable:
                expense.status = "applied"

        return len(expenses)

    # ------------------------------------------------------------------
    # Generic transitions
    # ------------------------------------------------------------------

    async def transition_status(
        self,
        batch: ReconciliationBatch,
        to_status: str,
        actor: str | None = None,
        reason: str | None = None,
    ) -> ReconciliationBatch:
        """Move a batch between Pending and Imported.

        Processing and unprocessing carry side effects and go through
        process_batch/unprocess_batch instead.
        """
        from_status = batch.status
        if to_status == BatchStatus.PROCESSED or BatchStateMachine.is_unprocess(
            from_status, to_status
        ):
            raise InvalidTransitionError(
                from_status, to_status, "Use process_batch/unprocess_batch"
            )
        BatchStateMachine.validate_transition(from_status, to_status)

        batch.status = BatchStatus(to_status).value
        record_audit(
            self.session,
            "reconciliation_batch",
            batch.id,
            f"status_change:{from_status}:{batch.status}",
            actor,
            {"reason": reason} if reason else None,
        )
        logger.info("Batch %s: %s → %s", batch.batch_code, from_status, batch.status)
        return batch
