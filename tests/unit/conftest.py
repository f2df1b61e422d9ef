"""Shared fixtures for unit tests."""

import os
from collections.abc import Callable, Generator
from datetime import date
from decimal import Decimal
from typing import Any

import pytest
from pytest_mock import MockerFixture, MockType

from src.core.config import LogConfig, Settings, get_settings
from src.core.context import RequestContext
from src.core.error_context import _get_sensitive_fields
from src.domain.credits.models import CreditRecord
from src.infrastructure.cache import reset_query_cache


@pytest.fixture
def mock_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Provide real Settings built from test environment variables."""
    monkeypatch.setenv("APP_NAME", "TestApp")
    monkeypatch.setenv("APP_VERSION", "1.0.0")
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.setenv("API_HOST", "127.0.0.1")
    monkeypatch.setenv("API_PORT", "3000")
    return Settings()


@pytest.fixture(autouse=True)
def clean_lru_cache() -> Generator[None]:
    """Clear cached settings and the query cache around each test."""
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()
    reset_query_cache()
    yield
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()
    reset_query_cache()


@pytest.fixture(autouse=True)
def clean_env(
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[pytest.MonkeyPatch]:
    """Drop application env vars so every test starts from the defaults."""
    original_env = os.environ.copy()

    env_prefixes = [
        "APP_",
        "API_",
        "ENVIRONMENT",
        "DEBUG",
        "CORS_",
        "LOG_CONFIG__",
        "OBSERVABILITY_CONFIG__",
        "DATABASE_CONFIG__",
        "CACHE_CONFIG__",
        "K_SERVICE",
    ]
    for key in list(os.environ.keys()):
        if any(key.startswith(prefix) for prefix in env_prefixes):
            monkeypatch.delenv(key, raising=False)

    yield monkeypatch

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def clean_context() -> Generator[None]:
    """Clear request-scoped identifiers before and after each test."""
    RequestContext.clear()
    yield
    RequestContext.clear()


@pytest.fixture
def mock_get_settings(mocker: MockerFixture) -> MockType:
    """Patch error_context settings with custom sensitive field names."""
    mock_settings = mocker.Mock(spec=Settings)
    mock_log_config = mocker.Mock(spec=LogConfig)
    mock_log_config.sensitive_fields = ["custom_secret", "cpf"]
    mock_settings.log_config = mock_log_config

    mock_get_settings_fn = mocker.patch("src.core.error_context.get_settings")
    mock_get_settings_fn.return_value = mock_settings
    _get_sensitive_fields.cache_clear()

    return mock_get_settings_fn


@pytest.fixture
def make_record() -> Callable[..., CreditRecord]:
    """Return a factory of valid credit records; keyword arguments override fields.

    The defaults are consistent: 25000.00 * 5.00% = 1250.00.
    """

    def factory(**overrides: Any) -> CreditRecord:  # noqa: ANN401
        fields: dict[str, Any] = {
            "credit_number": "123456",
            "invoice_number": "7891011",
            "constitution_date": date(2024, 2, 25),
            "issqn_value": Decimal("1250.00"),
            "credit_type": "ISSQN",
            "simplified_regime": True,
            "tax_rate": Decimal("5.00"),
            "billed_value": Decimal("30000.00"),
            "deduction_value": Decimal("5000.00"),
            "calculation_base": Decimal("25000.00"),
            "record_id": 1,
        }
        fields.update(overrides)
        return CreditRecord(**fields)

    return factory
