"""Queries over the ``credito`` table.

Every method returns immutable domain values (``CreditRecord`` and the
statistics types), never ORM instances, so results can be cached and
shared after the session is closed.
"""

from collections.abc import Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from loguru import logger
from sqlalchemy import Row, extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from src.core.constants import CENT
from src.domain.credits.models import (
    CreditRecord,
    DuplicateEntry,
    IssqnSummary,
    MonthlyStatistics,
    TypeStatistics,
)
from src.infrastructure.constants import DEFAULT_PAGINATION_LIMIT
from src.infrastructure.credits.models import Credit
from src.infrastructure.database.repository import BaseRepository


def _round_money(value: Decimal | None) -> Decimal | None:
    """Round database averages to cents."""
    if value is None:
        return None
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _records(credits: Sequence[Credit]) -> list[CreditRecord]:
    return [credit.to_record() for credit in credits]


class CreditRepository(BaseRepository[Credit]):
    """Read access to constituted credits."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Credit)

    # Lookups

    async def find_by_invoice_number(self, invoice_number: str) -> list[CreditRecord]:
        """Return the credits constituted from an NFS-e, newest first."""
        stmt = (
            select(Credit)
            .where(Credit.invoice_number == invoice_number)
            .order_by(Credit.constitution_date.desc(), Credit.id)
        )
        credits = await self._scalars(stmt)
        logger.debug(
            "Found {} credits for NFS-e {}", len(credits), invoice_number
        )
        return _records(credits)

    async def find_by_credit_number(self, credit_number: str) -> list[CreditRecord]:
        """Return every credit with this number, oldest row first.

        Credit numbers are expected to be unique, but the schema does not
        enforce it, so duplicates are returned rather than hidden.
        """
        stmt = (
            select(Credit)
            .where(Credit.credit_number == credit_number)
            .order_by(Credit.id)
        )
        return _records(await self._scalars(stmt))

    async def exists_by_credit_number(self, credit_number: str) -> bool:
        """Return whether any credit has this number."""
        stmt = select(Credit.id).where(Credit.credit_number == credit_number).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def exists_by_invoice_number(self, invoice_number: str) -> bool:
        """Return whether any credit was constituted from this NFS-e."""
        stmt = (
            select(Credit.id).where(Credit.invoice_number == invoice_number).limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def list_records(
        self, skip: int = 0, limit: int = DEFAULT_PAGINATION_LIMIT
    ) -> list[CreditRecord]:
        """Return one page of credits ordered by id."""
        return _records(await self.get_all(skip=skip, limit=limit))

    # Searches

    async def find_by_period(self, start: date, end: date) -> list[CreditRecord]:
        """Return credits constituted between ``start`` and ``end`` inclusive."""
        stmt = (
            select(Credit)
            .where(Credit.constitution_date.between(start, end))
            .order_by(Credit.constitution_date.desc(), Credit.id)
        )
        return _records(await self._scalars(stmt))

    async def find_by_type(self, credit_type: str) -> list[CreditRecord]:
        """Return credits of a type, compared case-insensitively."""
        stmt = (
            select(Credit)
            .where(func.upper(Credit.credit_type) == credit_type.strip().upper())
            .order_by(Credit.constitution_date.desc(), Credit.id)
        )
        return _records(await self._scalars(stmt))

    async def find_by_simplified_regime(
        self, simplified_regime: bool
    ) -> list[CreditRecord]:
        """Return credits whose taxpayer is (or is not) under Simples Nacional."""
        stmt = (
            select(Credit)
            .where(Credit.simplified_regime.is_(simplified_regime))
            .order_by(Credit.constitution_date.desc(), Credit.id)
        )
        return _records(await self._scalars(stmt))

    async def find_by_value_range(
        self, minimum: Decimal, maximum: Decimal
    ) -> list[CreditRecord]:
        """Return credits whose ISSQN value lies in the range, largest first."""
        stmt = (
            select(Credit)
            .where(Credit.issqn_value.between(minimum, maximum))
            .order_by(Credit.issqn_value.desc(), Credit.id)
        )
        return _records(await self._scalars(stmt))

    # Statistics

    async def issqn_summary(self) -> IssqnSummary:
        """Return count, sum, average, minimum and maximum ISSQN value."""
        stmt = select(
            func.count(Credit.id),
            func.coalesce(func.sum(Credit.issqn_value), 0),
            func.avg(Credit.issqn_value),
            func.min(Credit.issqn_value),
            func.max(Credit.issqn_value),
        )
        result = await self.session.execute(stmt)
        count, total, average, minimum, maximum = result.one()
        return IssqnSummary(
            count=count,
            total=Decimal(total),
            average=_round_money(average),
            minimum=minimum,
            maximum=maximum,
        )

    async def statistics_by_type(self) -> list[TypeStatistics]:
        """Return count, sum and average ISSQN value per credit type."""
        stmt = (
            select(
                Credit.credit_type,
                func.count(Credit.id),
                func.coalesce(func.sum(Credit.issqn_value), 0),
                func.avg(Credit.issqn_value),
            )
            .group_by(Credit.credit_type)
            .order_by(Credit.credit_type)
        )
        result = await self.session.execute(stmt)
        return [
            TypeStatistics(
                credit_type=credit_type,
                count=count,
                total=Decimal(total),
                average=_round_money(average),
            )
            for credit_type, count, total, average in result.all()
        ]

    async def monthly_statistics(self, year: int) -> list[MonthlyStatistics]:
        """Return count, sum and average ISSQN value per month of ``year``."""
        month = extract("month", Credit.constitution_date)
        stmt = (
            select(
                month,
                func.count(Credit.id),
                func.coalesce(func.sum(Credit.issqn_value), 0),
                func.avg(Credit.issqn_value),
            )
            .where(extract("year", Credit.constitution_date) == year)
            .group_by(month)
            .order_by(month)
        )
        result = await self.session.execute(stmt)
        return [
            MonthlyStatistics(
                year=year,
                month=int(month_number),
                count=count,
                total=Decimal(total),
                average=_round_money(average),
            )
            for month_number, count, total, average in result.all()
        ]

    # Data quality

    async def _duplicates(
        self, column: InstrumentedAttribute[str]
    ) -> list[DuplicateEntry]:
        occurrences = func.count(Credit.id)
        stmt = (
            select(column, occurrences)
            .group_by(column)
            .having(occurrences > 1)
            .order_by(occurrences.desc(), column)
        )
        result = await self.session.execute(stmt)
        rows: Sequence[Row[tuple[str, int]]] = result.all()
        return [
            DuplicateEntry(number=number, occurrences=count) for number, count in rows
        ]

    async def find_duplicate_credit_numbers(self) -> list[DuplicateEntry]:
        """Return credit numbers shared by more than one row."""
        return await self._duplicates(Credit.credit_number)

    async def find_duplicate_invoice_numbers(self) -> list[DuplicateEntry]:
        """Return NFS-e numbers with more than one constituted credit."""
        return await self._duplicates(Credit.invoice_number)
