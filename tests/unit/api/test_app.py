"""Unit tests for application wiring and the operational endpoints."""

import pytest
from fastapi import FastAPI
from httpx import AsyncClient
from pytest_mock import MockerFixture

from src.core.config import ObservabilityConfig, Settings


@pytest.mark.unit
class TestHealth:
    async def test_healthy(self, client: AsyncClient, mocker: MockerFixture) -> None:
        mocker.patch(
            "src.api.main.check_database_connection", return_value=(True, None)
        )
        engine = mocker.patch("src.api.main.get_engine").return_value
        engine.pool.checkedout.return_value = 1
        engine.pool.size.return_value = 10
        engine.pool.overflow.return_value = 0

        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "database": True}

    async def test_degraded_when_database_is_down(
        self, client: AsyncClient, mocker: MockerFixture
    ) -> None:
        mocker.patch(
            "src.api.main.check_database_connection",
            return_value=(False, "connection refused"),
        )

        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "degraded", "database": False}


@pytest.mark.unit
class TestInfo:
    async def test_info(self, client: AsyncClient) -> None:
        response = await client.get("/info")

        assert response.status_code == 200
        assert response.json() == {
            "app_name": "Consulta Creditos ISSQN",
            "version": "1.0.0",
            "environment": "development",
            "debug": True,
            "cache_enabled": True,
        }


@pytest.mark.unit
class TestCreateApp:
    def test_routes_are_registered(self, app: FastAPI) -> None:
        paths = {getattr(route, "path", "") for route in app.routes}

        assert {
            "/api/creditos/{numeroNfse}",
            "/api/creditos/credito/{numeroCredito}",
            "/api/creditos/exists/credito/{numeroCredito}",
            "/api/creditos/exists/nfse/{numeroNfse}",
            "/api/creditos/busca/periodo",
            "/api/admin/creditos/paginado",
            "/api/admin/estatisticas/mensais",
            "/api/admin/creditos/validacao",
            "/api/admin/cache",
            "/health",
            "/info",
        } <= paths

    def test_invoice_route_is_matched_last(self, app: FastAPI) -> None:
        credit_paths = [
            route.path
            for route in app.routes
            if getattr(route, "path", "").startswith("/api/creditos")
        ]

        assert credit_paths[-1] == "/api/creditos/{numeroNfse}"

    def test_tracing_is_skipped_when_disabled(self, mocker: MockerFixture) -> None:
        from src.api.main import create_app  # noqa: PLC0415

        instrumentor = mocker.patch(
            "src.core.observability.FastAPIInstrumentor.instrument_app"
        )

        create_app(
            Settings(observability_config=ObservabilityConfig(enable_tracing=False))
        )

        instrumentor.assert_not_called()

    def test_docs_can_be_disabled(self) -> None:
        from src.api.main import create_app  # noqa: PLC0415

        application = create_app(
            Settings(
                docs_url=None,
                observability_config=ObservabilityConfig(enable_tracing=False),
            )
        )

        assert application.docs_url is None


@pytest.mark.unit
class TestLifespan:
    async def test_startup_fails_without_database(
        self, app: FastAPI, mocker: MockerFixture
    ) -> None:
        from src.api.main import lifespan  # noqa: PLC0415

        mocker.patch(
            "src.api.main.check_database_connection",
            return_value=(False, "connection refused"),
        )

        with pytest.raises(RuntimeError, match="connection refused"):
            async with lifespan(app):
                pass

    async def test_startup_and_shutdown(
        self, app: FastAPI, mocker: MockerFixture
    ) -> None:
        from src.api.main import lifespan  # noqa: PLC0415

        mocker.patch(
            "src.api.main.check_database_connection", return_value=(True, None)
        )
        close = mocker.patch("src.api.main.close_database")

        async with lifespan(app):
            close.assert_not_called()

        close.assert_awaited_once()
