"""Fixtures for API tests: an app wired to a mocked repository."""

from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pytest_mock import MockerFixture, MockType

from src.core.config import ObservabilityConfig, Settings
from src.domain.credits.service import CreditService
from src.infrastructure.cache import QueryCache, get_query_cache
from src.infrastructure.credits.repository import CreditRepository


@pytest.fixture
def repository(mocker: MockerFixture) -> MockType:
    """Repository mock; tests set the return values they need."""
    repo = mocker.AsyncMock(spec=CreditRepository)
    repo.find_by_invoice_number.return_value = []
    repo.find_by_credit_number.return_value = []
    repo.exists_by_credit_number.return_value = False
    repo.exists_by_invoice_number.return_value = False
    repo.list_records.return_value = []
    repo.count.return_value = 0
    return repo


@pytest.fixture
def query_cache() -> QueryCache:
    return QueryCache(max_entries=32)


@pytest.fixture
def app(
    monkeypatch: pytest.MonkeyPatch, repository: MockType, query_cache: QueryCache
) -> FastAPI:
    """Application with tracing disabled and the service over the mock."""
    monkeypatch.setenv("OBSERVABILITY_CONFIG__ENABLE_TRACING", "false")

    from src.api.dependencies import get_credit_service  # noqa: PLC0415
    from src.api.main import create_app  # noqa: PLC0415

    application = create_app(
        Settings(
            debug=False,
            observability_config=ObservabilityConfig(enable_tracing=False),
        )
    )
    application.dependency_overrides[get_credit_service] = lambda: CreditService(
        repository, query_cache
    )
    application.dependency_overrides[get_query_cache] = lambda: query_cache
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Async HTTP client bound to the app without starting its lifespan."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
