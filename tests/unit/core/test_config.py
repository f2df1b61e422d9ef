"""Unit tests for application settings."""

import pytest
import pytest_check as check
from pydantic import ValidationError

from src.core.config import (
    CacheConfig,
    DatabaseConfig,
    LogConfig,
    Settings,
    get_settings,
)


@pytest.mark.unit
class TestSettingsDefaults:
    def test_defaults(self) -> None:
        settings = Settings()

        check.equal(settings.app_name, "Consulta Creditos ISSQN")
        check.equal(settings.environment, "development")
        check.equal(settings.api_port, 8080)
        check.equal(settings.cors_origins, ["*"])
        check.equal(settings.log_config.log_formatter_type, "console")
        check.is_true(settings.cache_config.enabled)
        check.equal(settings.cache_config.max_entries, 1024)

    def test_environment_variables(self, mock_settings: Settings) -> None:
        check.equal(mock_settings.app_name, "TestApp")
        check.equal(mock_settings.api_host, "127.0.0.1")
        check.equal(mock_settings.api_port, 3000)
        check.is_false(mock_settings.debug)

    def test_nested_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CACHE_CONFIG__TTL_SECONDS", "60")
        monkeypatch.setenv("LOG_CONFIG__LOG_LEVEL", "DEBUG")

        settings = Settings()

        assert settings.cache_config.ttl_seconds == 60
        assert settings.log_config.log_level == "DEBUG"

    def test_empty_docs_url_disables_docs(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DOCS_URL", "")

        assert Settings().docs_url is None

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()


@pytest.mark.unit
class TestEnvironmentDetection:
    def test_production_uses_json_logs_and_otlp(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ENVIRONMENT", "production")

        settings = Settings()

        check.equal(settings.log_config.log_formatter_type, "json")
        check.equal(settings.observability_config.exporter_type, "otlp")
        check.equal(settings.observability_config.trace_sample_rate, 0.1)

    def test_cloud_run_uses_gcp(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("K_SERVICE", "consulta-creditos")

        settings = Settings()

        check.equal(settings.log_config.log_formatter_type, "gcp")
        check.equal(settings.observability_config.exporter_type, "gcp")

    def test_explicit_formatter_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("LOG_CONFIG__LOG_FORMATTER_TYPE", "console")

        assert Settings().log_config.log_formatter_type == "console"


@pytest.mark.unit
class TestSectionValidation:
    def test_database_url_requires_asyncpg(self) -> None:
        with pytest.raises(ValidationError, match="postgresql\\+asyncpg"):
            DatabaseConfig(database_url="postgresql://user:pw@localhost/db")

    def test_cache_rejects_zero_entries(self) -> None:
        with pytest.raises(ValidationError):
            CacheConfig(max_entries=0)

    def test_cache_ttl_can_be_disabled(self) -> None:
        assert CacheConfig(ttl_seconds=None).ttl_seconds is None

    def test_log_level_is_restricted(self) -> None:
        with pytest.raises(ValidationError):
            LogConfig(log_level="VERBOSE")  # type: ignore[arg-type]
