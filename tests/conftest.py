"""Pytest fixtures for royalty operations tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from royalty_ops.database import get_engine
from royalty_ops.models import Base, Copyright, CopyrightSplit, Expense, Payee

# In-memory SQLite through aiosqlite; each test gets a fresh schema
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

STATEMENT_CSV = """Track Title,Track Artist,ISWC,Territory,Streams,Gross Revenue
Midnight Harbor,The Quiet Tides,T-123.456.789-0,US,120000,"$600.00"
Paper Lanterns,The Quiet Tides,,GB,48000,$400.00
"""


@pytest.fixture
async def engine():
    """Create test database engine."""
    engine = get_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def payees(session: AsyncSession) -> dict[str, Payee]:
    """A writer and a publisher."""
    writer = Payee(payee_name="Maya Lin", payee_type="writer", contact_email="maya@example.com")
    publisher = Payee(payee_name="Northbound Publishing", payee_type="publisher")
    session.add_all([writer, publisher])
    await session.flush()
    return {"writer": writer, "publisher": publisher}


@pytest.fixture
async def catalog(session: AsyncSession, payees: dict[str, Payee]) -> dict[str, Copyright]:
    """Two works: a 50/50 split and a 25/75 split."""
    harbor = Copyright(
        work_title="Midnight Harbor",
        artist="The Quiet Tides",
        iswc="T-123.456.789-0",
        akas=["Harbor at Midnight"],
    )
    harbor.splits = [
        CopyrightSplit(
            payee_id=payees["writer"].id,
            ownership_percentage=Decimal("50"),
            writer_name="Maya Lin",
        ),
        CopyrightSplit(payee_id=payees["publisher"].id, ownership_percentage=Decimal("50")),
    ]
    lanterns = Copyright(work_title="Paper Lanterns", artist="The Quiet Tides", akas=[])
    lanterns.splits = [
        CopyrightSplit(
            payee_id=payees["writer"].id,
            ownership_percentage=Decimal("25"),
            writer_name="Maya Lin",
        ),
        CopyrightSplit(payee_id=payees["publisher"].id, ownership_percentage=Decimal("75")),
    ]
    session.add_all([harbor, lanterns])
    await session.flush()
    return {"harbor": harbor, "lanterns": lanterns}


@pytest.fixture
async def expenses(session: AsyncSession, payees: dict[str, Payee]) -> dict[str, Expense]:
    """A recoupable advance for the writer and an admin fee for the publisher."""
    advance = Expense(
        payee_id=payees["writer"].id,
        description="Signing advance",
        expense_type="advance",
        amount=Decimal("100.00"),
        is_recoupable=True,
        effective_date=date(2024, 1, 1),
    )
    admin_fee = Expense(
        payee_id=payees["publisher"].id,
        description="Registration admin fee",
        expense_type="admin_fee",
        amount=Decimal("20.00"),
    )
    session.add_all([advance, admin_fee])
    await session.flush()
    return {"advance": advance, "admin_fee": admin_fee}


@pytest.fixture
def statement_csv() -> str:
    return STATEMENT_CSV
