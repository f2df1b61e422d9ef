"""Credit query service.

Lookups validate their input, then read through the query cache. Keys
follow the ``<kind>_<number>`` scheme (``nfse_7891011``,
``credito_exists_123456``) so a whole family can be invalidated by prefix.
Lookups that find nothing raise inside the loader and are therefore
never cached.

Database failures surface as ``DataAccessError``.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Generator
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from src.core.exceptions import (
    CreditNotFoundError,
    DataAccessError,
    FieldValidationError,
    FieldViolation,
    InvoiceWithoutCreditsError,
    ViolationKind,
)
from src.core.observability import add_span_attributes, trace_operation
from src.core.types import NumericInput
from src.domain.credits.models import (
    CreditRecord,
    DuplicateReport,
    InconsistentCredit,
    IssqnSummary,
    MonthlyStatistics,
    Page,
    TypeStatistics,
)
from src.domain.credits.validation import (
    check_consistency,
    expected_issqn_value,
    is_valid_credit_number_format,
    is_valid_invoice_service_number_format,
    normalize_string,
    validate_credit_number,
    validate_credit_type,
    validate_date_range,
    validate_full_record,
    validate_invoice_service_number,
    validate_monetary_value,
)
from src.infrastructure.constants import SCAN_BATCH_SIZE

if TYPE_CHECKING:
    from src.infrastructure.cache import QueryCache
    from src.infrastructure.credits.repository import CreditRepository

INVOICE_KEY_PREFIX = "nfse_"
CREDIT_KEY_PREFIX = "credito_"
CREDIT_EXISTS_KEY_PREFIX = "credito_exists_"
INVOICE_EXISTS_KEY_PREFIX = "nfse_exists_"

MIN_VALUE_FIELD = "valorMinimo"
MAX_VALUE_FIELD = "valorMaximo"
MAX_PAGE_SIZE = 100


@contextmanager
def _data_access(operation: str) -> Generator[None]:
    """Translate SQLAlchemy failures into ``DataAccessError``."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(
            "Database failure while trying to {}: {}",
            operation,
            type(e).__name__,
        )
        raise DataAccessError(operation, cause=e) from e


def _as_decimal(value: NumericInput) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _inconsistency(record: CreditRecord) -> InconsistentCredit | None:
    issqn, base, rate = record.issqn_value, record.calculation_base, record.tax_rate
    if issqn is None or base is None or rate is None:
        return None
    if check_consistency(issqn, base, rate) is None:
        return None
    expected = expected_issqn_value(base, rate)
    return InconsistentCredit(
        record=record, expected=expected, difference=abs(issqn - expected)
    )


class CreditService:
    """Queries, statistics and audits over constituted credits.

    Args:
        repository: Read access to the ``credito`` table.
        cache: Read-through cache for lookup results.
    """

    def __init__(self, repository: CreditRepository, cache: QueryCache) -> None:
        self.repository = repository
        self.cache = cache

    # Lookups

    async def get_credits_by_invoice(self, invoice_number: str) -> list[CreditRecord]:
        """Return every credit constituted from an NFS-e, newest first.

        Raises:
            FieldValidationError: If the number is malformed.
            InvoiceWithoutCreditsError: If no credit exists for the NFS-e.
        """
        validate_invoice_service_number(invoice_number)
        number = normalize_string(invoice_number) or ""
        logger.info("Querying credits by NFS-e {}", number)

        async def load() -> list[CreditRecord]:
            with _data_access("load credits by NFS-e"):
                records = await self.repository.find_by_invoice_number(number)
            if not records:
                logger.info("No credits found for NFS-e {}", number)
                raise InvoiceWithoutCreditsError(number)
            return records

        with trace_operation("credits.get_by_invoice", invoice_number=number):
            key = f"{INVOICE_KEY_PREFIX}{number}"
            records = await self.cache.get_or_load(key, load)
            add_span_attributes(result_count=len(records))

        logger.info(
            "Query by NFS-e {} returned {} credits",
            number,
            len(records),
            result_count=len(records),
        )
        return records

    async def get_credit_by_number(self, credit_number: str) -> CreditRecord:
        """Return the credit with this number.

        When several rows share the number, the oldest one is returned and
        a warning is logged.

        Raises:
            FieldValidationError: If the number is malformed.
            CreditNotFoundError: If no credit has the number.
        """
        validate_credit_number(credit_number)
        number = normalize_string(credit_number) or ""
        logger.info("Querying credit by number {}", number)

        async def load() -> CreditRecord:
            with _data_access("load credit by number"):
                records = await self.repository.find_by_credit_number(number)
            if not records:
                logger.info("Credit {} not found", number)
                raise CreditNotFoundError(number)
            if len(records) > 1:
                logger.warning(
                    "Credit number {} is shared by {} rows; returning the oldest",
                    number,
                    len(records),
                    result_count=len(records),
                )
            return records[0]

        with trace_operation("credits.get_by_number", credit_number=number):
            return await self.cache.get_or_load(f"{CREDIT_KEY_PREFIX}{number}", load)

    async def credit_exists(self, credit_number: str | None) -> bool:
        """Return whether a credit has this number; malformed numbers never do."""
        if not is_valid_credit_number_format(credit_number):
            logger.debug("Malformed credit number {!r} is absent", credit_number)
            return False
        number = normalize_string(credit_number) or ""

        async def load() -> bool:
            with _data_access("check credit existence"):
                return await self.repository.exists_by_credit_number(number)

        exists = await self.cache.get_or_load(
            f"{CREDIT_EXISTS_KEY_PREFIX}{number}", load
        )
        logger.debug("Existence check for credit {}: {}", number, exists)
        return exists

    async def invoice_has_credits(self, invoice_number: str | None) -> bool:
        """Return whether any credit was constituted from this NFS-e."""
        if not is_valid_invoice_service_number_format(invoice_number):
            logger.debug("Malformed NFS-e number {!r} is absent", invoice_number)
            return False
        number = normalize_string(invoice_number) or ""

        async def load() -> bool:
            with _data_access("check NFS-e existence"):
                return await self.repository.exists_by_invoice_number(number)

        exists = await self.cache.get_or_load(
            f"{INVOICE_EXISTS_KEY_PREFIX}{number}", load
        )
        logger.debug("Existence check for NFS-e {}: {}", number, exists)
        return exists

    # Listing

    async def list_all(self) -> list[CreditRecord]:
        """Return every credit ordered by id."""
        records: list[CreditRecord] = []
        async for batch in self._batches():
            records.extend(batch)
        logger.info("Listed {} credits", len(records), result_count=len(records))
        return records

    async def list_page(self, page: int, size: int) -> Page[CreditRecord]:
        """Return one page of credits ordered by id; ``page`` starts at 0.

        Raises:
            FieldValidationError: If ``page`` is negative or ``size`` is not
                between 1 and 100.
        """
        if page < 0:
            raise FieldValidationError(
                FieldViolation(
                    "page", ViolationKind.OUT_OF_RANGE, "cannot be negative", page
                )
            )
        if not 1 <= size <= MAX_PAGE_SIZE:
            raise FieldValidationError(
                FieldViolation(
                    "size",
                    ViolationKind.OUT_OF_RANGE,
                    f"must be between 1 and {MAX_PAGE_SIZE}",
                    size,
                )
            )

        with _data_access("list credits"):
            items = await self.repository.list_records(skip=page * size, limit=size)
            total = await self.repository.count()
        return Page(items=items, page=page, size=size, total=total)

    async def count(self) -> int:
        """Return how many credits are stored."""
        with _data_access("count credits"):
            return await self.repository.count()

    # Searches

    async def search_by_period(self, start: date, end: date) -> list[CreditRecord]:
        """Return credits constituted in the period, at most five years long."""
        validate_date_range(start, end)
        with (
            trace_operation("credits.search_by_period", start=str(start), end=str(end)),
            _data_access("search credits by period"),
        ):
            records = await self.repository.find_by_period(start, end)
        logger.info(
            "Period {} to {} returned {} credits",
            start,
            end,
            len(records),
            result_count=len(records),
        )
        return records

    async def search_by_type(self, credit_type: str) -> list[CreditRecord]:
        """Return credits of one type; the label is case-insensitive."""
        validate_credit_type(credit_type)
        label = credit_type.strip().upper()
        with _data_access("search credits by type"):
            records = await self.repository.find_by_type(label)
        logger.info(
            "Type {} returned {} credits",
            label,
            len(records),
            result_count=len(records),
        )
        return records

    async def search_by_simplified_regime(
        self, simplified_regime: bool
    ) -> list[CreditRecord]:
        """Return credits filtered by the Simples Nacional flag."""
        with _data_access("search credits by Simples Nacional"):
            records = await self.repository.find_by_simplified_regime(simplified_regime)
        logger.info(
            "Simples Nacional={} returned {} credits",
            simplified_regime,
            len(records),
            result_count=len(records),
        )
        return records

    async def search_by_value_range(
        self, minimum: NumericInput, maximum: NumericInput
    ) -> list[CreditRecord]:
        """Return credits whose ISSQN value lies in ``[minimum, maximum]``.

        Raises:
            FieldValidationError: If a bound is not a valid amount or
                ``minimum`` is greater than ``maximum``.
        """
        validate_monetary_value(minimum, MIN_VALUE_FIELD)
        validate_monetary_value(maximum, MAX_VALUE_FIELD)
        low, high = _as_decimal(minimum), _as_decimal(maximum)
        if low > high:
            raise FieldValidationError(
                FieldViolation(
                    MIN_VALUE_FIELD,
                    ViolationKind.INVALID_ORDER,
                    f"must be less than or equal to {MAX_VALUE_FIELD}",
                    minimum,
                )
            )

        with _data_access("search credits by value range"):
            records = await self.repository.find_by_value_range(low, high)
        logger.info(
            "Value range {} to {} returned {} credits",
            low,
            high,
            len(records),
            result_count=len(records),
        )
        return records

    # Statistics

    async def summary(self) -> IssqnSummary:
        """Return count, total, average, minimum and maximum ISSQN value."""
        with trace_operation("credits.summary"), _data_access("summarize credits"):
            return await self.repository.issqn_summary()

    async def statistics_by_type(self) -> list[TypeStatistics]:
        """Return ISSQN aggregates per credit type."""
        with _data_access("compute statistics by type"):
            return await self.repository.statistics_by_type()

    async def monthly_statistics(self, year: int) -> list[MonthlyStatistics]:
        """Return ISSQN aggregates per month of ``year``."""
        with _data_access("compute monthly statistics"):
            return await self.repository.monthly_statistics(year)

    # Data quality

    async def _batches(self) -> AsyncGenerator[list[CreditRecord]]:
        skip = 0
        while True:
            with _data_access("scan credits"):
                batch = await self.repository.list_records(
                    skip=skip, limit=SCAN_BATCH_SIZE
                )
            if batch:
                yield batch
            if len(batch) < SCAN_BATCH_SIZE:
                return
            skip += SCAN_BATCH_SIZE

    async def find_inconsistent_records(self) -> list[InconsistentCredit]:
        """Return stored credits whose ISSQN value disagrees with base and rate."""
        inconsistent: list[InconsistentCredit] = []
        scanned = 0
        with trace_operation("credits.audit_consistency") as span:
            async for batch in self._batches():
                scanned += len(batch)
                inconsistent.extend(
                    finding
                    for record in batch
                    if (finding := _inconsistency(record)) is not None
                )
            span.set_attribute("scanned", scanned)
            span.set_attribute("inconsistent", len(inconsistent))

        log = logger.warning if inconsistent else logger.info
        log(
            "Consistency audit found {} inconsistent credits out of {}",
            len(inconsistent),
            scanned,
            result_count=len(inconsistent),
        )
        return inconsistent

    async def find_duplicates(self) -> DuplicateReport:
        """Return credit and NFS-e numbers appearing on more than one row."""
        with _data_access("find duplicate numbers"):
            credit_numbers = await self.repository.find_duplicate_credit_numbers()
            invoice_numbers = await self.repository.find_duplicate_invoice_numbers()
        if credit_numbers:
            logger.warning(
                "Found {} duplicated credit numbers",
                len(credit_numbers),
                result_count=len(credit_numbers),
            )
        return DuplicateReport(
            credit_numbers=credit_numbers, invoice_numbers=invoice_numbers
        )

    def validate_record(self, record: CreditRecord) -> None:
        """Run the full-record validator over a candidate credit.

        Raises:
            AggregateValidationError: If any field rule or the consistency
                rule fails.
        """
        validate_full_record(record)
        logger.debug("Candidate credit {} is valid", record.credit_number)

    # Cache

    def invalidate_cache(self, key_prefix: str | None = None) -> int:
        """Drop cached results, all of them or those under ``key_prefix``."""
        if key_prefix:
            return self.cache.invalidate_prefix(key_prefix)
        return self.cache.clear()
