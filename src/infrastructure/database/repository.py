"""Generic read-only repository for SQLAlchemy models.

Credits are loaded by an external process, so repositories here only read.
"""

from loguru import logger
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.constants import DEFAULT_PAGINATION_LIMIT
from src.infrastructure.database.base import BaseModel


class BaseRepository[T: BaseModel]:
    """Common read operations for any model deriving from ``BaseModel``.

    Args:
        session: The async SQLAlchemy session to use for operations.
        model_class: The SQLAlchemy model class this repository manages.

    Example:
        class CreditRepository(BaseRepository[Credit]):
            def __init__(self, session: AsyncSession) -> None:
                super().__init__(session, Credit)
    """

    def __init__(self, session: AsyncSession, model_class: type[T]) -> None:
        self.session = session
        self.model_class = model_class

    async def _scalars(self, stmt: Select[tuple[T]]) -> list[T]:
        """Execute a select and return its model instances."""
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_all(
        self, skip: int = 0, limit: int = DEFAULT_PAGINATION_LIMIT
    ) -> list[T]:
        """Return one page of instances ordered by id.

        Args:
            skip: Number of records to skip (for pagination).
            limit: Maximum number of records to return.

        Returns:
            list[T]: List of model instances.
        """
        logger.debug(
            "Fetching all {} with pagination - skip: {}, limit: {}",
            self.model_class.__name__,
            skip,
            limit,
        )

        stmt = (
            select(self.model_class)
            .order_by(self.model_class.id)
            .offset(skip)
            .limit(limit)
        )
        return await self._scalars(stmt)

    async def count(self) -> int:
        """Count all instances of the model."""
        stmt = select(func.count()).select_from(self.model_class)
        result = await self.session.execute(stmt)
        count_value: int = result.scalar() or 0

        logger.debug("Counted {} {} instances", count_value, self.model_class.__name__)
        return count_value
