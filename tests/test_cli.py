"""Tests for the command line interface."""

import json
from uuid import uuid4

import pytest

from royalty_ops.cli import RoyaltyOpsCli
from royalty_ops.seed import DEMO_STATEMENT


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'ops.db'}"


@pytest.fixture
def run(database_url, capsys):
    """Run one CLI command; returns (exit code, stdout JSON)."""

    def _run(*args: str):
        code = RoyaltyOpsCli().run(["--database-url", database_url, *args])
        out = capsys.readouterr().out
        return code, json.loads(out) if out.strip() else None

    return _run


def test_batch_workflow(run, tmp_path):
    assert run("init-db") == (0, {"status": "created"})

    code, seeded = run("seed-demo")
    assert code == 0
    assert seeded["seeded"] is True

    _, batches = run("list-batches", "--status", "Pending")
    assert batches["total"] == 1
    batch_id = batches["items"][0]["id"]

    statement = tmp_path / "statement.csv"
    statement.write_text(DEMO_STATEMENT, encoding="utf-8")
    code, imported = run("import-statement", batch_id, str(statement))
    assert code == 0
    assert imported["status"] == "Imported"
    assert imported["allocations_created"] == 3
    assert imported["unmatched"] == 0

    code, validation = run("validate-batch", batch_id)
    assert code == 0
    assert validation["is_valid"] is True

    code, processed = run("process-batch", batch_id)
    assert code == 0
    assert processed["status"] == "Processed"
    assert processed["payees_affected"] == 4

    code, reversed_ = run("unprocess-batch", batch_id, "--reason", "Loaded the wrong quarter")
    assert code == 0
    assert reversed_["status"] == "Pending"
    assert reversed_["payouts_reversed"] == 4


def test_clear_import(run, tmp_path):
    run("init-db")
    run("seed-demo")
    _, batches = run("list-batches", "--status", "Pending")
    batch_id = batches["items"][0]["id"]
    statement = tmp_path / "statement.csv"
    statement.write_text(DEMO_STATEMENT, encoding="utf-8")
    run("import-statement", batch_id, str(statement))

    code, cleared = run("clear-import", batch_id)

    assert code == 0
    assert cleared["status"] == "Pending"
    assert cleared["allocations_removed"] == 3

    code, validation = run("validate-batch", batch_id)
    assert code == 1
    assert validation["errors"] == ["Batch has no royalty allocations"]


def test_seed_is_idempotent(run):
    run("init-db")
    run("seed-demo")

    code, seeded = run("seed-demo")
    assert code == 0
    assert seeded == {"seeded": False, "counts": {}}


def test_metrics(run):
    run("init-db")
    run("seed-demo")

    code, metrics = run("metrics")
    assert code == 0
    assert metrics["total_customers"] == 6
    assert metrics["health_distribution"]["critical"] == 1


def test_ask(run):
    code, reply = run("ask", "what about performance?")
    assert code == 0
    assert reply["type"] == "assistant"
    assert reply["content"].startswith("Based on current metrics")


def test_missing_batch_reports_error(run, database_url, capsys):
    run("init-db")

    code = RoyaltyOpsCli().run(["--database-url", database_url, "process-batch", str(uuid4())])

    assert code == 1
    error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert error["code"] == "NOT_FOUND"


def test_no_command_prints_help(capsys):
    assert RoyaltyOpsCli().run([]) == 1
    assert "usage" in capsys.readouterr().out.lower()
