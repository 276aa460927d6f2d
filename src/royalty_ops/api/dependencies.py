"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from royalty_ops.assistant import OperationsAssistant
from royalty_ops.config import Settings, get_settings
from royalty_ops.database import init_db


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_app_settings() -> Settings:
    return get_settings()


def get_assistant() -> OperationsAssistant:
    """A fresh conversation per request; replies do not depend on history."""
    return OperationsAssistant(reply_delay=get_settings().assistant_reply_delay)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Assistant = Annotated[OperationsAssistant, Depends(get_assistant)]
