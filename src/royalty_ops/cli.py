"""Royalty operations command line interface.

Provides operational tools for:
- Schema creation and demo data
- Batch import, validation, processing and unprocessing
- Dashboard metrics
- The canned-response assistant

Usage:
    python -m royalty_ops.cli init-db
    python -m royalty_ops.cli import-statement BATCH_ID statement.csv
    python -m royalty_ops.cli process-batch BATCH_ID
    python -m royalty_ops.cli unprocess-batch BATCH_ID --reason "wrong period"
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable
from uuid import UUID

from sqlalchemy import select

from royalty_ops.analytics import compute_operations_metrics, health_distribution
from royalty_ops.assistant import OperationsAssistant
from royalty_ops.config import get_settings
from royalty_ops.database import create_all, dispose_db, get_session, init_db
from royalty_ops.errors import RoyaltyOpsError
from royalty_ops.log_config import configure_logging
from royalty_ops.models import CustomerHealthMetric, RevenueEvent, SupportTicket
from royalty_ops.seed import seed_demo_data
from royalty_ops.services.batch_service import BatchService


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


def emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


class RoyaltyOpsCli:
    """Royalty operations command line interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m royalty_ops.cli",
            description="Royalty operations tools",
        )
        parser.add_argument(
            "--database-url",
            type=str,
            help="Database URL (default: $DATABASE_URL)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser("init-db", help="Create all tables")
        subparsers.add_parser("seed-demo", help="Insert demo data if the database is empty")

        batches = subparsers.add_parser("list-batches", help="List reconciliation batches")
        batches.add_argument(
            "--status",
            type=str,
            choices=["Pending", "Imported", "Processed"],
            help="Only batches in this status",
        )

        imp = subparsers.add_parser(
            "import-statement",
            help="Import a CSV statement into a batch and match its lines",
        )
        imp.add_argument("batch_id", type=parse_uuid)
        imp.add_argument("file", type=Path, help="CSV statement file")

        clear = subparsers.add_parser(
            "clear-import", help="Delete imported allocations and return the batch to Pending"
        )
        clear.add_argument("batch_id", type=parse_uuid)

        validate = subparsers.add_parser("validate-batch", help="Run pre-processing checks")
        validate.add_argument("batch_id", type=parse_uuid)

        process = subparsers.add_parser("process-batch", help="Create payouts for a batch")
        process.add_argument("batch_id", type=parse_uuid)

        unprocess = subparsers.add_parser(
            "unprocess-batch",
            help="Reverse a processed batch back to Pending",
        )
        unprocess.add_argument("batch_id", type=parse_uuid)
        unprocess.add_argument(
            "--reason",
            type=str,
            required=True,
            help="Why the batch is being reversed (kept in the batch notes)",
        )

        subparsers.add_parser("metrics", help="Print operations dashboard metrics")

        ask = subparsers.add_parser("ask", help="Ask the operations assistant")
        ask.add_argument("message", type=str)

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        configure_logging(get_settings().log_level)

        # Dispatch to command handler
        handlers: dict[str, Callable[[argparse.Namespace], Awaitable[int]]] = {
            "init-db": self._cmd_init_db,
            "seed-demo": self._cmd_seed_demo,
            "list-batches": self._cmd_list_batches,
            "import-statement": self._cmd_import_statement,
            "clear-import": self._cmd_clear_import,
            "validate-batch": self._cmd_validate_batch,
            "process-batch": self._cmd_process_batch,
            "unprocess-batch": self._cmd_unprocess_batch,
            "metrics": self._cmd_metrics,
            "ask": self._cmd_ask,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            return asyncio.run(self._run_with_db(handler, parsed))
        except RoyaltyOpsError as e:
            print(json.dumps({"error": str(e), "code": e.code}), file=sys.stderr)
            return 1
        except ValueError as e:
            print(json.dumps({"error": str(e), "code": "VALIDATION_ERROR"}), file=sys.stderr)
            return 1

    async def _run_with_db(
        self,
        handler: Callable[[argparse.Namespace], Awaitable[int]],
        args: argparse.Namespace,
    ) -> int:
        init_db(args.database_url)
        try:
            return await handler(args)
        finally:
            await dispose_db()

    async def _cmd_init_db(self, args: argparse.Namespace) -> int:
        await create_all()
        emit({"status": "created"})
        return 0

    async def _cmd_seed_demo(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            counts = await seed_demo_data(session)
        emit({"seeded": bool(counts), "counts": counts})
        return 0

    async def _cmd_list_batches(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            batches, total = await BatchService(session).list_batches(status=args.status, limit=100)
        emit(
            {
                "total": total,
                "items": [
                    {
                        "id": b.id,
                        "batch_code": b.batch_code,
                        "source": b.source,
                        "status": b.status,
                        "date_received": b.date_received,
                        "total_gross_amount": b.total_gross_amount,
                    }
                    for b in batches
                ],
            }
        )
        return 0

    async def _cmd_import_statement(self, args: argparse.Namespace) -> int:
        text = args.file.read_text(encoding="utf-8-sig")
        async with get_session() as session:
            service = BatchService(session)
            result = await service.import_statement(args.batch_id, text, actor="cli")
            matched = await service.match_allocations(args.batch_id)
        emit(
            {
                "batch_id": args.batch_id,
                "status": result.batch.status,
                "allocations_created": result.allocations_created,
                "total_gross": result.statement.total_gross,
                "matched": matched.matched,
                "unmatched": matched.unmatched,
                "issues": [vars(i) for i in result.statement.issues],
            }
        )
        return 0

    async def _cmd_clear_import(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            service = BatchService(session)
            removed = await service.clear_import(args.batch_id, actor="cli")
            batch = await service.require_batch(args.batch_id)
        emit({"batch_id": batch.id, "status": batch.status, "allocations_removed": removed})
        return 0

    async def _cmd_validate_batch(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            validation = await BatchService(session).validate_batch(args.batch_id)
        emit(
            {
                "batch_id": validation.batch_id,
                "is_valid": validation.is_valid,
                "allocation_count": validation.allocation_count,
                "imported_total": validation.imported_total,
                "errors": validation.errors,
                "warnings": validation.warnings,
            }
        )
        return 0 if validation.is_valid else 1

    async def _cmd_process_batch(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            result = await BatchService(session).process_batch(args.batch_id, actor="cli")
        emit(
            {
                "batch_id": result.batch.id,
                "status": result.batch.status,
                "payouts_created": len(result.payouts),
                "payees_affected": result.payees_affected,
                "total_gross": result.total_gross,
                "total_expenses": result.total_expenses,
                "total_net": result.total_net,
            }
        )
        return 0

    async def _cmd_unprocess_batch(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            result = await BatchService(session).unprocess_batch(
                args.batch_id, args.reason, actor="cli"
            )
        emit(
            {
                "batch_id": result.batch.id,
                "status": result.batch.status,
                "payouts_reversed": result.payouts_reversed,
                "expenses_restored": result.expenses_restored,
                "total_reversed": result.total_reversed,
            }
        )
        return 0

    async def _cmd_metrics(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            health = list((await session.execute(select(CustomerHealthMetric))).scalars().all())
            tickets = list((await session.execute(select(SupportTicket))).scalars().all())
            events = list((await session.execute(select(RevenueEvent))).scalars().all())
        metrics = compute_operations_metrics(
            health, tickets, events, active_window_days=get_settings().active_window_days
        )
        emit({**metrics.to_dict(), "health_distribution": health_distribution(health)})
        return 0

    async def _cmd_ask(self, args: argparse.Namespace) -> int:
        assistant = OperationsAssistant(reply_delay=0)
        reply = await assistant.reply(args.message)
        emit(reply.to_dict())
        return 0


def main() -> int:
    """CLI entry point."""
    cli = RoyaltyOpsCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
