"""Unit tests for the credit query service."""

from collections.abc import Callable
from datetime import date
from decimal import Decimal

import pytest
import pytest_check as check
from pytest_mock import MockerFixture, MockType
from sqlalchemy.exc import OperationalError

from src.core.exceptions import (
    AggregateValidationError,
    CreditNotFoundError,
    DataAccessError,
    FieldValidationError,
    InvoiceWithoutCreditsError,
    ViolationKind,
)
from src.domain.credits.models import (
    CreditRecord,
    DuplicateEntry,
    IssqnSummary,
)
from src.domain.credits.service import CreditService
from src.infrastructure.cache import QueryCache
from src.infrastructure.constants import SCAN_BATCH_SIZE
from src.infrastructure.credits.repository import CreditRepository


@pytest.fixture
def repository(mocker: MockerFixture) -> MockType:
    """Provide a repository mock with every query returning nothing."""
    repo = mocker.AsyncMock(spec=CreditRepository)
    repo.find_by_invoice_number.return_value = []
    repo.find_by_credit_number.return_value = []
    repo.exists_by_credit_number.return_value = False
    repo.exists_by_invoice_number.return_value = False
    repo.list_records.return_value = []
    repo.count.return_value = 0
    return repo


@pytest.fixture
def cache() -> QueryCache:
    return QueryCache(max_entries=16)


@pytest.fixture
def service(repository: MockType, cache: QueryCache) -> CreditService:
    return CreditService(repository, cache)


def _db_failure() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("connection refused"))


@pytest.mark.unit
class TestGetCreditsByInvoice:
    """Lookups by NFS-e number."""

    async def test_returns_records_and_caches_them(
        self,
        service: CreditService,
        repository: MockType,
        make_record: Callable[..., CreditRecord],
    ) -> None:
        records = [make_record(), make_record(credit_number="654321", record_id=2)]
        repository.find_by_invoice_number.return_value = records

        first = await service.get_credits_by_invoice("7891011")
        second = await service.get_credits_by_invoice("7891011")

        assert first == records
        assert second == records
        repository.find_by_invoice_number.assert_awaited_once_with("7891011")

    async def test_number_is_trimmed(
        self,
        service: CreditService,
        repository: MockType,
        make_record: Callable[..., CreditRecord],
    ) -> None:
        repository.find_by_invoice_number.return_value = [make_record()]

        await service.get_credits_by_invoice(" 7891011 ")

        repository.find_by_invoice_number.assert_awaited_once_with("7891011")

    async def test_no_credits_raises_and_is_not_cached(
        self, service: CreditService, repository: MockType
    ) -> None:
        with pytest.raises(InvoiceWithoutCreditsError):
            await service.get_credits_by_invoice("999")
        with pytest.raises(InvoiceWithoutCreditsError):
            await service.get_credits_by_invoice("999")

        assert repository.find_by_invoice_number.await_count == 2

    async def test_malformed_number_never_reaches_repository(
        self, service: CreditService, repository: MockType
    ) -> None:
        with pytest.raises(FieldValidationError) as exc_info:
            await service.get_credits_by_invoice("NFS-1")

        assert exc_info.value.field == "numeroNfse"
        repository.find_by_invoice_number.assert_not_awaited()

    async def test_database_failure_becomes_data_access_error(
        self, service: CreditService, repository: MockType
    ) -> None:
        repository.find_by_invoice_number.side_effect = _db_failure()

        with pytest.raises(DataAccessError) as exc_info:
            await service.get_credits_by_invoice("7891011")

        assert exc_info.value.should_alert
        assert isinstance(exc_info.value.cause, OperationalError)


@pytest.mark.unit
class TestGetCreditByNumber:
    """Lookups by credit number."""

    async def test_returns_first_record(
        self,
        service: CreditService,
        repository: MockType,
        make_record: Callable[..., CreditRecord],
    ) -> None:
        oldest = make_record(record_id=1)
        newer = make_record(record_id=7, invoice_number="555")
        repository.find_by_credit_number.return_value = [oldest, newer]

        result = await service.get_credit_by_number("123456")

        assert result is oldest

    async def test_result_is_cached(
        self,
        service: CreditService,
        repository: MockType,
        cache: QueryCache,
        make_record: Callable[..., CreditRecord],
    ) -> None:
        repository.find_by_credit_number.return_value = [make_record()]

        await service.get_credit_by_number("123456")
        await service.get_credit_by_number("123456")

        repository.find_by_credit_number.assert_awaited_once()
        stats = cache.stats()
        check.equal(stats.hits, 1)
        check.equal(stats.misses, 1)
        check.equal(stats.size, 1)

    async def test_missing_credit_raises(
        self, service: CreditService, cache: QueryCache
    ) -> None:
        with pytest.raises(CreditNotFoundError) as exc_info:
            await service.get_credit_by_number("000")

        assert exc_info.value.context == {"numeroCredito": "000"}
        assert cache.stats().size == 0

    @pytest.mark.parametrize("number", ["", "abc", "1" * 51])
    async def test_malformed_number_raises(
        self, service: CreditService, number: str
    ) -> None:
        with pytest.raises(FieldValidationError):
            await service.get_credit_by_number(number)


@pytest.mark.unit
class TestExistence:
    """Existence checks never raise for malformed input."""

    @pytest.mark.parametrize("number", [None, "", "   ", "12a", "1" * 51])
    async def test_malformed_numbers_do_not_exist(
        self, service: CreditService, repository: MockType, number: str | None
    ) -> None:
        assert await service.credit_exists(number) is False
        assert await service.invoice_has_credits(number) is False

        repository.exists_by_credit_number.assert_not_awaited()
        repository.exists_by_invoice_number.assert_not_awaited()

    async def test_credit_exists_is_cached(
        self, service: CreditService, repository: MockType
    ) -> None:
        repository.exists_by_credit_number.return_value = True

        assert await service.credit_exists("123456") is True
        assert await service.credit_exists("123456") is True

        repository.exists_by_credit_number.assert_awaited_once_with("123456")

    async def test_negative_answers_are_cached_too(
        self, service: CreditService, repository: MockType
    ) -> None:
        assert await service.invoice_has_credits("999") is False
        assert await service.invoice_has_credits("999") is False

        repository.exists_by_invoice_number.assert_awaited_once_with("999")

    async def test_database_failure_propagates(
        self, service: CreditService, repository: MockType
    ) -> None:
        repository.exists_by_credit_number.side_effect = _db_failure()

        with pytest.raises(DataAccessError):
            await service.credit_exists("123456")


@pytest.mark.unit
class TestListing:
    async def test_list_page_uses_offset(
        self,
        service: CreditService,
        repository: MockType,
        make_record: Callable[..., CreditRecord],
    ) -> None:
        repository.list_records.return_value = [make_record()]
        repository.count.return_value = 21

        page = await service.list_page(2, 10)

        repository.list_records.assert_awaited_once_with(skip=20, limit=10)
        check.equal(page.page, 2)
        check.equal(page.size, 10)
        check.equal(page.total, 21)
        check.equal(page.total_pages, 3)
        check.equal(len(page.items), 1)

    @pytest.mark.parametrize(
        ("page", "size", "field"),
        [(-1, 10, "page"), (0, 0, "size"), (0, 101, "size")],
    )
    async def test_list_page_rejects_bad_arguments(
        self, service: CreditService, page: int, size: int, field: str
    ) -> None:
        with pytest.raises(FieldValidationError) as exc_info:
            await service.list_page(page, size)

        assert exc_info.value.field == field
        assert exc_info.value.kind is ViolationKind.OUT_OF_RANGE

    async def test_list_all_reads_every_batch(
        self,
        service: CreditService,
        repository: MockType,
        make_record: Callable[..., CreditRecord],
    ) -> None:
        full_batch = [make_record(record_id=i) for i in range(SCAN_BATCH_SIZE)]
        repository.list_records.side_effect = [full_batch, [make_record(record_id=0)]]

        records = await service.list_all()

        assert len(records) == SCAN_BATCH_SIZE + 1
        assert repository.list_records.await_args_list[1].kwargs == {
            "skip": SCAN_BATCH_SIZE,
            "limit": SCAN_BATCH_SIZE,
        }

    async def test_list_all_on_empty_store(self, service: CreditService) -> None:
        assert await service.list_all() == []

    async def test_count(self, service: CreditService, repository: MockType) -> None:
        repository.count.return_value = 5

        assert await service.count() == 5


@pytest.mark.unit
class TestSearches:
    async def test_period_is_validated_first(
        self, service: CreditService, repository: MockType
    ) -> None:
        with pytest.raises(FieldValidationError) as exc_info:
            await service.search_by_period(date(2020, 1, 1), date(2026, 1, 1))

        assert exc_info.value.kind is ViolationKind.PERIOD_TOO_LONG
        repository.find_by_period.assert_not_awaited()

    async def test_period_search(
        self,
        service: CreditService,
        repository: MockType,
        make_record: Callable[..., CreditRecord],
    ) -> None:
        repository.find_by_period.return_value = [make_record()]

        records = await service.search_by_period(date(2024, 1, 1), date(2024, 12, 31))

        assert len(records) == 1
        repository.find_by_period.assert_awaited_once_with(
            date(2024, 1, 1), date(2024, 12, 31)
        )

    async def test_type_label_is_upper_cased(
        self, service: CreditService, repository: MockType
    ) -> None:
        repository.find_by_type.return_value = []

        await service.search_by_type(" iptu ")

        repository.find_by_type.assert_awaited_once_with("IPTU")

    async def test_unknown_type_is_rejected(self, service: CreditService) -> None:
        with pytest.raises(FieldValidationError) as exc_info:
            await service.search_by_type("IPVA")

        assert exc_info.value.kind is ViolationKind.INVALID_CHOICE

    async def test_simplified_regime_search(
        self, service: CreditService, repository: MockType
    ) -> None:
        repository.find_by_simplified_regime.return_value = []

        assert await service.search_by_simplified_regime(False) == []
        repository.find_by_simplified_regime.assert_awaited_once_with(False)

    async def test_value_range_converts_bounds(
        self, service: CreditService, repository: MockType
    ) -> None:
        repository.find_by_value_range.return_value = []

        await service.search_by_value_range("100", Decimal("200.50"))

        repository.find_by_value_range.assert_awaited_once_with(
            Decimal("100"), Decimal("200.50")
        )

    async def test_value_range_rejects_inverted_bounds(
        self, service: CreditService
    ) -> None:
        with pytest.raises(FieldValidationError) as exc_info:
            await service.search_by_value_range(Decimal("500"), Decimal("100"))

        assert exc_info.value.field == "valorMinimo"
        assert exc_info.value.kind is ViolationKind.INVALID_ORDER

    async def test_value_range_rejects_negative_bound(
        self, service: CreditService
    ) -> None:
        with pytest.raises(FieldValidationError) as exc_info:
            await service.search_by_value_range(Decimal("0"), Decimal("-1"))

        assert exc_info.value.field == "valorMaximo"
        assert exc_info.value.kind is ViolationKind.NEGATIVE


@pytest.mark.unit
class TestStatistics:
    async def test_summary_delegates_to_repository(
        self, service: CreditService, repository: MockType
    ) -> None:
        summary = IssqnSummary(
            count=2,
            total=Decimal("100.00"),
            average=Decimal("50.00"),
            minimum=Decimal("40.00"),
            maximum=Decimal("60.00"),
        )
        repository.issqn_summary.return_value = summary

        assert await service.summary() is summary

    async def test_monthly_statistics_passes_year(
        self, service: CreditService, repository: MockType
    ) -> None:
        repository.monthly_statistics.return_value = []

        await service.monthly_statistics(2024)

        repository.monthly_statistics.assert_awaited_once_with(2024)

    async def test_statistics_failure(
        self, service: CreditService, repository: MockType
    ) -> None:
        repository.statistics_by_type.side_effect = _db_failure()

        with pytest.raises(DataAccessError) as exc_info:
            await service.statistics_by_type()

        assert exc_info.value.message == "Failed to compute statistics by type"


@pytest.mark.unit
class TestAudits:
    async def test_inconsistent_records_are_reported(
        self,
        service: CreditService,
        repository: MockType,
        make_record: Callable[..., CreditRecord],
    ) -> None:
        good = make_record()
        bad = make_record(record_id=2, issqn_value=Decimal("1300.00"))
        tolerated = make_record(record_id=3, issqn_value=Decimal("1250.01"))
        repository.list_records.return_value = [good, bad, tolerated]

        findings = await service.find_inconsistent_records()

        assert len(findings) == 1
        finding = findings[0]
        check.equal(finding.record, bad)
        check.equal(finding.expected, Decimal("1250.00"))
        check.equal(finding.difference, Decimal("50.00"))

    async def test_records_with_missing_values_are_skipped(
        self,
        service: CreditService,
        repository: MockType,
        make_record: Callable[..., CreditRecord],
    ) -> None:
        repository.list_records.return_value = [make_record(tax_rate=None)]

        assert await service.find_inconsistent_records() == []

    async def test_duplicates(
        self, service: CreditService, repository: MockType
    ) -> None:
        repository.find_duplicate_credit_numbers.return_value = [
            DuplicateEntry(number="123456", occurrences=2)
        ]
        repository.find_duplicate_invoice_numbers.return_value = []

        report = await service.find_duplicates()

        assert report.credit_numbers == [DuplicateEntry("123456", 2)]
        assert report.invoice_numbers == []


@pytest.mark.unit
class TestValidateRecord:
    def test_valid_record(
        self, service: CreditService, make_record: Callable[..., CreditRecord]
    ) -> None:
        service.validate_record(make_record())

    def test_invalid_record(
        self, service: CreditService, make_record: Callable[..., CreditRecord]
    ) -> None:
        with pytest.raises(AggregateValidationError):
            service.validate_record(make_record(invoice_number=None))


@pytest.mark.unit
class TestInvalidateCache:
    async def test_prefix_invalidation(
        self, service: CreditService, cache: QueryCache
    ) -> None:
        cache.put("credito_1", "a")
        cache.put("credito_2", "b")
        cache.put("nfse_1", "c")

        assert service.invalidate_cache("credito_") == 2
        assert cache.stats().size == 1

    async def test_full_invalidation(
        self, service: CreditService, cache: QueryCache
    ) -> None:
        cache.put("credito_1", "a")
        cache.put("nfse_1", "c")

        assert service.invalidate_cache() == 2
        assert cache.stats().size == 0
