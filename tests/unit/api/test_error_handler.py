"""Unit tests for the exception handlers and the response envelope."""

import pytest
import pytest_check as check
from fastapi import FastAPI
from httpx import AsyncClient

from src.api.constants import CORRELATION_ID_HEADER, REQUEST_ID_HEADER
from src.core.config import get_settings
from src.core.exceptions import CreditosError, ErrorCode, Severity


@pytest.fixture
def failing_app(app: FastAPI) -> FastAPI:
    """Add routes that fail in known ways."""

    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("unexpected failure")

    @app.get("/critical")
    async def critical() -> None:
        raise CreditosError(ErrorCode.INTERNAL_ERROR, "broken", Severity.CRITICAL)

    return app


@pytest.mark.unit
class TestCreditosErrorHandler:
    async def test_envelope_carries_trace_identifiers(
        self, client: AsyncClient
    ) -> None:
        response = await client.get(
            "/api/creditos/credito/000",
            headers={CORRELATION_ID_HEADER: "corr-123", REQUEST_ID_HEADER: "req-abc"},
        )

        assert response.status_code == 404
        body = response.json()
        check.equal(body["correlation_id"], "corr-123")
        check.equal(body["request_id"], "req-abc")
        check.equal(body["severity"], "LOW")
        check.equal(body["service_info"]["name"], "Consulta Creditos ISSQN")
        check.is_in("timestamp", body)
        check.equal(response.headers[CORRELATION_ID_HEADER], "corr-123")
        check.equal(response.headers[REQUEST_ID_HEADER], "req-abc")

    async def test_debug_info_in_development(self, client: AsyncClient) -> None:
        body = (await client.get("/api/creditos/credito/000")).json()

        assert body["debug_info"]["exception_type"] == "CreditNotFoundError"

    async def test_no_debug_info_in_production(
        self, client: AsyncClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ENVIRONMENT", "production")
        get_settings.cache_clear()

        body = (await client.get("/api/creditos/credito/000")).json()

        assert body["debug_info"] is None
        assert body["service_info"]["environment"] == "production"

    async def test_non_4xx_domain_error_is_500(
        self, failing_app: FastAPI, client: AsyncClient
    ) -> None:
        response = await client.get("/critical")

        assert response.status_code == 500
        assert response.json()["severity"] == "CRITICAL"


@pytest.mark.unit
class TestOtherHandlers:
    async def test_unknown_route_is_404(self, client: AsyncClient) -> None:
        response = await client.get("/api/nao-existe")

        assert response.status_code == 404
        body = response.json()
        assert body["error_code"] == "NOT_FOUND"
        assert body["severity"] == "LOW"

    async def test_wrong_method_keeps_allow_header(self, client: AsyncClient) -> None:
        response = await client.post("/api/admin/estatisticas")

        assert response.status_code == 405
        assert "GET" in response.headers["allow"]

    async def test_unhandled_exception(
        self, failing_app: FastAPI, client: AsyncClient
    ) -> None:
        response = await client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        check.equal(body["error_code"], "INTERNAL_ERROR")
        check.equal(body["message"], "Internal server error: RuntimeError")
        check.equal(body["details"]["error"], "unexpected failure")
        check.is_true(body["request_id"].startswith("req-"))

    async def test_unhandled_exception_is_hidden_in_production(
        self,
        failing_app: FastAPI,
        client: AsyncClient,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("ENVIRONMENT", "production")
        get_settings.cache_clear()

        body = (await client.get("/boom")).json()

        assert body["message"] == "An internal server error occurred"
        assert body["details"] is None


@pytest.mark.unit
class TestMiddleware:
    async def test_correlation_id_is_generated(self, client: AsyncClient) -> None:
        response = await client.get("/api/creditos/exists/credito/1")

        assert len(response.headers[CORRELATION_ID_HEADER]) == 36
        assert response.headers[REQUEST_ID_HEADER].startswith("req-")

    async def test_cors_preflight(self, client: AsyncClient) -> None:
        response = await client.options(
            "/api/creditos/7891011",
            headers={
                "Origin": "http://localhost:4200",
                "Access-Control-Request-Method": "GET",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
