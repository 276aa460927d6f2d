"""Reconciliation batch lifecycle tests.

Import → match → validate → process → unprocess → reprocess against a real
(SQLite) session, checking payouts, payee balances and expense state at each
step.
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select, update

from royalty_ops.errors import (
    BatchValidationError,
    InvalidTransitionError,
    NotFoundError,
    UnprocessWindowError,
)
from royalty_ops.models import (
    AuditEvent,
    Expense,
    ExpenseApplication,
    Payout,
    ReconciliationBatch,
    utcnow,
)
from royalty_ops.services import BatchService, PayoutService


async def new_batch(session, statement: str, received: date = date(2024, 4, 1)):
    service = BatchService(session)
    batch = await service.create_batch(
        source="Spotify",
        date_received=received,
        total_gross_amount=Decimal("1000.00"),
    )
    await service.import_statement(batch.id, statement)
    await service.match_allocations(batch.id)
    return batch


@pytest.fixture
async def batch(session, catalog, statement_csv):
    return await new_batch(session, statement_csv)


class TestImportAndMatch:
    async def test_import_moves_batch_to_imported(self, session, catalog, statement_csv):
        service = BatchService(session)
        batch = await service.create_batch(source="Spotify", date_received=date(2024, 4, 1))
        assert batch.status == "Pending"
        assert batch.batch_code.startswith("BATCH-20240401-")

        result = await service.import_statement(batch.id, statement_csv)

        assert result.allocations_created == 2
        assert result.statement.total_gross == Decimal("1000.00")
        assert batch.status == "Imported"

        allocations = await service.get_allocations(batch.id)
        assert [a.song_title for a in allocations] == ["Midnight Harbor", "Paper Lanterns"]
        assert allocations[0].revenue_source == "Spotify"

    async def test_match_links_allocations(self, session, batch, catalog):
        allocations = await BatchService(session).get_allocations(batch.id)

        by_title = {a.song_title: a for a in allocations}
        assert by_title["Midnight Harbor"].copyright_id == catalog["harbor"].id
        assert by_title["Paper Lanterns"].copyright_id == catalog["lanterns"].id
        assert all(a.match_confidence >= 0.6 for a in allocations)

    async def test_non_finite_amounts_are_reported_not_imported(self, session, catalog):
        statement = (
            "Track Title,Track Artist,Gross Revenue\n"
            "Midnight Harbor,The Quiet Tides,NaN\n"
            "Paper Lanterns,The Quiet Tides,Infinity\n"
            "Paper Lanterns,The Quiet Tides,12.00\n"
        )
        service = BatchService(session)
        batch = await service.create_batch(source="Spotify", date_received=date(2024, 4, 1))

        result = await service.import_statement(batch.id, statement)

        assert result.allocations_created == 1
        assert [(i.row, i.field) for i in result.statement.issues] == [
            (1, "gross_royalty_amount"),
            (2, "gross_royalty_amount"),
        ]
        allocations = await service.get_allocations(batch.id)
        assert [a.gross_royalty_amount for a in allocations] == [Decimal("12.00")]

    async def test_unknown_source_rejected(self, session):
        with pytest.raises(ValueError):
            await BatchService(session).create_batch(source="Napster")

    async def test_summary(self, session, batch):
        summary = await BatchService(session).batch_summary(batch.id)

        assert summary["allocation_count"] == 2
        assert summary["matched_count"] == 2
        assert summary["difference"] == Decimal("0.00")
        assert set(summary["next_statuses"]) == {"Processed", "Pending"}


class TestValidation:
    async def test_clean_batch_is_valid(self, session, batch):
        validation = await BatchService(session).validate_batch(batch.id)

        assert validation.is_valid
        assert validation.imported_total == Decimal("1000.00")
        assert validation.warnings == []

    async def test_unmatched_allocation_blocks_processing(self, session, catalog, statement_csv):
        statement = statement_csv + "Nobody Knows This,Zz Unknown,,US,10,$5.00\n"
        batch = await new_batch(session, statement)
        service = BatchService(session)

        validation = await service.validate_batch(batch.id)
        assert validation.errors == ["1 allocation(s) are not matched to a copyright"]
        assert validation.warnings  # 1005.00 imported against a 1000.00 statement

        with pytest.raises(BatchValidationError):
            await service.process_batch(batch.id)
        assert batch.status == "Imported"

    async def test_empty_batch_cannot_process(self, session):
        service = BatchService(session)
        batch = await service.create_batch(source="ASCAP", date_received=date(2024, 4, 1))

        with pytest.raises(InvalidTransitionError):
            await service.process_batch(batch.id)


class TestManualCorrections:
    async def test_link_unmatched_allocation_then_process(self, session, catalog, statement_csv):
        statement = statement_csv + "Nobody Knows This,Zz Unknown,,US,10,$5.00\n"
        batch = await new_batch(session, statement)
        service = BatchService(session)
        unmatched = [a for a in await service.get_allocations(batch.id) if a.copyright_id is None]
        assert len(unmatched) == 1

        allocation = await service.link_allocation(
            batch.id, unmatched[0].id, catalog["lanterns"].id, actor="ops"
        )

        assert allocation.copyright_id == catalog["lanterns"].id
        assert allocation.match_confidence == 1.0
        validation = await service.validate_batch(batch.id)
        assert validation.is_valid

        result = await service.process_batch(batch.id)
        assert result.total_gross == Decimal("1005.00")

        actions = (
            await session.execute(
                select(AuditEvent.action).where(AuditEvent.entity_id == allocation.id)
            )
        ).scalars().all()
        assert actions == ["matched"]

    async def test_unlink_allocation(self, session, catalog, batch):
        service = BatchService(session)
        allocation = (await service.get_allocations(batch.id))[0]

        await service.link_allocation(batch.id, allocation.id, None)

        assert allocation.copyright_id is None
        assert allocation.match_confidence is None
        validation = await service.validate_batch(batch.id)
        assert validation.errors == ["1 allocation(s) are not matched to a copyright"]

    async def test_link_rejects_unknown_rows(self, session, catalog, batch):
        service = BatchService(session)
        allocation = (await service.get_allocations(batch.id))[0]
        other = await service.create_batch(source="BMI", date_received=date(2024, 4, 2))

        with pytest.raises(NotFoundError):
            await service.link_allocation(batch.id, allocation.id, uuid4())
        with pytest.raises(NotFoundError):
            await service.link_allocation(other.id, allocation.id, catalog["harbor"].id)
        with pytest.raises(NotFoundError):
            await service.link_allocation(batch.id, uuid4(), catalog["harbor"].id)

    async def test_processed_allocations_cannot_be_relinked(self, session, catalog, batch):
        service = BatchService(session)
        await service.process_batch(batch.id)
        allocation = (await service.get_allocations(batch.id))[0]

        with pytest.raises(InvalidTransitionError):
            await service.link_allocation(batch.id, allocation.id, catalog["lanterns"].id)

    async def test_relink_after_unprocess(self, session, catalog, batch):
        service = BatchService(session)
        await service.process_batch(batch.id)
        await service.unprocess_batch(batch.id, "Harbor line belongs to Lanterns")
        harbor_line = (await service.get_allocations(batch.id))[0]

        await service.link_allocation(batch.id, harbor_line.id, catalog["lanterns"].id)
        result = await service.process_batch(batch.id)

        assert result.total_gross == Decimal("1000.00")
        assert harbor_line.copyright_id == catalog["lanterns"].id

    async def test_clear_import(self, session, batch):
        service = BatchService(session)

        removed = await service.clear_import(batch.id, actor="ops")

        assert removed == 2
        assert batch.status == "Pending"
        assert await service.get_allocations(batch.id) == []

        actions = (
            await session.execute(select(AuditEvent.action).where(AuditEvent.entity_id == batch.id))
        ).scalars().all()
        assert {"status_change:Imported:Pending", "import_cleared"} <= set(actions)

    async def test_clear_import_needs_imported_batch(self, session, batch):
        service = BatchService(session)
        await service.process_batch(batch.id)

        with pytest.raises(InvalidTransitionError):
            await service.clear_import(batch.id)
        assert len(await service.get_allocations(batch.id)) == 2

        await service.unprocess_batch(batch.id, "Start over")
        with pytest.raises(InvalidTransitionError):
            await service.clear_import(batch.id)


class TestConcurrentClaims:
    """A second session changes the batch status between load and claim."""

    async def test_process_loses_claim(self, session, session_factory, payees, batch):
        await session.commit()
        async with session_factory() as other:
            await other.execute(
                update(ReconciliationBatch)
                .where(ReconciliationBatch.id == batch.id)
                .values(status="Processed", processed_at=utcnow())
            )
            await other.commit()

        with pytest.raises(InvalidTransitionError, match="Status changed during processing"):
            await BatchService(session).process_batch(batch.id)
        await session.rollback()

        payout_count = await session.scalar(select(func.count()).select_from(Payout))
        assert payout_count == 0
        await session.refresh(payees["writer"])
        assert payees["writer"].balance == Decimal("0.00")

    async def test_unprocess_loses_claim(self, session, session_factory, payees, batch):
        await BatchService(session).process_batch(batch.id)
        await session.commit()
        async with session_factory() as other:
            await other.execute(
                update(ReconciliationBatch)
                .where(ReconciliationBatch.id == batch.id)
                .values(status="Pending", processed_at=None)
            )
            await other.commit()

        with pytest.raises(InvalidTransitionError, match="Status changed during unprocessing"):
            await BatchService(session).unprocess_batch(batch.id, "Duplicate request")
        await session.rollback()

        statuses = (await session.execute(select(Payout.status))).scalars().all()
        assert sorted(statuses) == ["pending", "pending"]
        await session.refresh(payees["writer"])
        assert payees["writer"].balance == Decimal("400.00")


class TestProcessing:
    async def test_process_creates_payouts_and_balances(self, session, payees, expenses, batch):
        result = await BatchService(session).process_batch(batch.id, actor="ops@example.com")

        assert batch.status == "Processed"
        assert batch.processed_at is not None
        assert result.payees_affected == 2
        assert result.total_gross == Decimal("1000.00")
        assert result.total_expenses == Decimal("120.00")
        assert result.total_net == Decimal("880.00")

        by_payee = {p.payee_id: p for p in result.payouts}
        writer = by_payee[payees["writer"].id]
        publisher = by_payee[payees["publisher"].id]
        assert (writer.gross_royalties, writer.total_expenses, writer.net_payable) == (
            Decimal("400.00"),
            Decimal("100.00"),
            Decimal("300.00"),
        )
        assert publisher.net_payable == Decimal("580.00")
        assert payees["writer"].balance == Decimal("300.00")
        assert payees["publisher"].balance == Decimal("580.00")

        assert expenses["advance"].recouped_amount == Decimal("100.00")
        assert expenses["advance"].status == "recouped"
        assert expenses["admin_fee"].status == "applied"

    async def test_processed_batch_is_locked(self, session, batch, statement_csv):
        service = BatchService(session)
        await service.process_batch(batch.id)

        with pytest.raises(InvalidTransitionError):
            await service.process_batch(batch.id)
        with pytest.raises(InvalidTransitionError):
            await service.import_statement(batch.id, statement_csv)

    async def test_audit_trail(self, session, batch):
        await BatchService(session).process_batch(batch.id, actor="ops@example.com")

        events = (
            await session.execute(select(AuditEvent).where(AuditEvent.entity_id == batch.id))
        ).scalars().all()
        actions = {e.action for e in events}
        assert {"created", "statement_imported", "status_change:Imported:Processed"} <= actions


class TestUnprocess:
    async def test_unprocess_reverses_everything(self, session, payees, expenses, batch):
        service = BatchService(session)
        await service.process_batch(batch.id)

        result = await service.unprocess_batch(batch.id, "Wrong statement period", actor="ops")

        assert batch.status == "Pending"
        assert batch.processed_at is None
        assert batch.notes.startswith("[Unprocessed ")
        assert batch.notes.endswith("] Wrong statement period")
        assert result.payouts_reversed == 2
        assert result.total_reversed == Decimal("880.00")
        assert result.expenses_restored == 2

        payouts = await service.get_payouts(batch.id)
        assert {p.status for p in payouts} == {"reversed"}
        assert payees["writer"].balance == Decimal("0.00")
        assert payees["publisher"].balance == Decimal("0.00")
        assert expenses["advance"].recouped_amount == Decimal("0.00")
        assert expenses["advance"].status == "pending"
        assert expenses["admin_fee"].status == "pending"

        applications = (await session.execute(select(ExpenseApplication))).scalars().all()
        assert applications and all(a.reversed for a in applications)

    async def test_reprocess_after_unprocess(self, session, payees, expenses, batch):
        service = BatchService(session)
        await service.process_batch(batch.id)
        await service.unprocess_batch(batch.id, "Re-run with corrected splits")

        result = await service.process_batch(batch.id)

        assert batch.status == "Processed"
        assert result.total_net == Decimal("880.00")
        assert payees["writer"].balance == Decimal("300.00")
        assert expenses["advance"].status == "recouped"

        statuses = sorted(p.status for p in await service.get_payouts(batch.id))
        assert statuses == ["pending", "pending", "reversed", "reversed"]

    async def test_reason_required(self, session, batch):
        service = BatchService(session)
        await service.process_batch(batch.id)

        with pytest.raises(ValueError):
            await service.unprocess_batch(batch.id, "  ")
        assert batch.status == "Processed"

    async def test_window_expired(self, session, batch):
        service = BatchService(session)
        await service.process_batch(batch.id)

        later = batch.processed_at + timedelta(days=31)
        with pytest.raises(UnprocessWindowError):
            await service.unprocess_batch(batch.id, "Too late", now=later)
        assert batch.status == "Processed"

    async def test_payout_in_payment_blocks_unprocess(self, session, batch):
        service = BatchService(session)
        result = await service.process_batch(batch.id)

        payouts = PayoutService(session)
        await payouts.approve(result.payouts[0].id)
        await payouts.start_processing(result.payouts[0].id)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await service.unprocess_batch(batch.id, "Needs correction")
        assert "in payment" in str(exc_info.value)
        assert batch.status == "Processed"

    async def test_missing_processing_timestamp_is_rejected(self, session, batch):
        service = BatchService(session)
        await service.process_batch(batch.id)
        batch.processed_at = None

        with pytest.raises(InvalidTransitionError, match="no processing timestamp"):
            await service.unprocess_batch(batch.id, "Needs correction")
        assert batch.status == "Processed"

    async def test_pending_batch_cannot_unprocess(self, session, batch):
        with pytest.raises(InvalidTransitionError):
            await BatchService(session).unprocess_batch(batch.id, "Nothing to undo")


async def test_commission_recurs_across_batches(session, payees, catalog, statement_csv):
    commission = Expense(
        payee_id=payees["publisher"].id,
        description="Sub-publishing commission",
        expense_type="commission",
        is_percentage=True,
        percentage_rate=Decimal("10"),
        is_commission=True,
    )
    session.add(commission)
    await session.flush()

    service = BatchService(session)
    first = await new_batch(session, statement_csv)
    second = await new_batch(session, statement_csv, received=date(2024, 7, 1))

    for batch in (first, second):
        result = await service.process_batch(batch.id)
        publisher = next(p for p in result.payouts if p.payee_id == payees["publisher"].id)
        assert publisher.total_expenses == Decimal("60.00")
        assert publisher.net_payable == Decimal("540.00")

    await service.unprocess_batch(second.id, "Duplicate statement")

    # still deducted by the first batch's payout
    assert commission.status == "applied"
    assert payees["publisher"].balance == Decimal("540.00")

    active = (
        await session.execute(select(Payout).where(Payout.status != "reversed"))
    ).scalars().all()
    assert {p.batch_id for p in active} == {first.id}
