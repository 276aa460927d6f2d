"""Integration test fixtures: the FastAPI app over the test database."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from royalty_ops.api.app import create_app
from royalty_ops.api.dependencies import get_assistant, get_db_session
from royalty_ops.assistant import OperationsAssistant
from royalty_ops.seed import seed_demo_data


@pytest.fixture
def app(session_factory):
    """App wired to the per-test in-memory database."""
    app = create_app()

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_assistant] = lambda: OperationsAssistant(reply_delay=0)
    return app


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for API tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def seeded(session_factory) -> dict[str, int]:
    """Demo data committed so API requests can see it."""
    async with session_factory() as session:
        counts = await seed_demo_data(session)
        await session.commit()
    return counts
