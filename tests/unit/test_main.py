"""Unit tests for the Uvicorn entry point."""

from types import ModuleType

import pytest
from pytest_mock import MockerFixture


@pytest.fixture
def entry_point() -> ModuleType:
    import main  # noqa: PLC0415

    return main


@pytest.mark.unit
class TestMain:
    def test_debug_runs_with_reload(
        self,
        entry_point: ModuleType,
        mocker: MockerFixture,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.delenv("PORT", raising=False)
        run = mocker.patch("main.uvicorn.run")

        entry_point.main()

        args, kwargs = run.call_args
        assert args == ("src.api.main:app",)
        assert kwargs["reload"] is True
        assert kwargs["port"] == 8080

    def test_production_disables_reload(
        self,
        entry_point: ModuleType,
        mocker: MockerFixture,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("DEBUG", "false")
        monkeypatch.setenv("PORT", "9000")
        run = mocker.patch("main.uvicorn.run")

        entry_point.main()

        run.assert_called_once()
        args, kwargs = run.call_args
        assert args == ("src.api.main:app",)
        assert kwargs["reload"] is False
        assert kwargs["port"] == 9000

    def test_startup_is_logged_with_placeholders(
        self,
        entry_point: ModuleType,
        mocker: MockerFixture,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("DEBUG", "false")
        monkeypatch.setenv("API_HOST", "127.0.0.1")
        monkeypatch.setenv("PORT", "9000")
        mocker.patch("main.setup_logging")
        mocker.patch("main.uvicorn.run")
        info = mocker.patch("main.logger.info")

        entry_point.main()

        info.assert_called_once_with(
            "Starting Uvicorn on http://{}:{} (reload: {})", "127.0.0.1", 9000, False
        )

    def test_uvicorn_loggers_are_intercepted(self, entry_point: ModuleType) -> None:
        config = entry_point.uvicorn_log_config()

        assert config["handlers"] == {
            "default": {"class": "src.core.logging.InterceptHandler"}
        }
        assert set(config["loggers"]) == {"uvicorn", "uvicorn.error", "uvicorn.access"}
        assert all(not logger["propagate"] for logger in config["loggers"].values())
