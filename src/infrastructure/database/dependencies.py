"""FastAPI dependency providing one database session per request."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.session import get_async_session


async def get_db() -> AsyncGenerator[AsyncSession]:
    """Yield a session committed on success and rolled back on error.

    Example:
        @router.get("/creditos")
        async def list_credits(db: DatabaseSession) -> list[CreditResponse]:
            ...
    """
    async with get_async_session() as session:
        yield session


DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
