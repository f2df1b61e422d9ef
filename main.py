"""Run the credit query API with Uvicorn."""

import os

import uvicorn
from loguru import logger

from src.core.config import get_settings
from src.core.logging import setup_logging

APP_IMPORT_PATH = "src.api.main:app"
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def uvicorn_log_config() -> dict[str, object]:
    """Route every Uvicorn logger through ``InterceptHandler`` into Loguru."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "handlers": {"default": {"class": "src.core.logging.InterceptHandler"}},
        "loggers": {
            name: {"handlers": ["default"], "level": "INFO", "propagate": False}
            for name in UVICORN_LOGGERS
        },
    }


def main() -> None:
    settings = get_settings()
    setup_logging(settings)

    # Cloud Run injects PORT
    port = int(os.environ.get("PORT", settings.api_port))

    logger.info(
        "Starting Uvicorn on http://{}:{} (reload: {})",
        settings.api_host,
        port,
        settings.debug,
    )
    uvicorn.run(
        APP_IMPORT_PATH,
        host=settings.api_host,
        port=port,
        reload=settings.debug,
        log_config=uvicorn_log_config(),
    )


if __name__ == "__main__":
    main()
