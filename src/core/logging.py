"""Structured logging built on Loguru.

``setup_logging`` installs one sink chosen by ``log_config.log_formatter_type``:

- **console**: human-readable lines with request context inlined (development)
- **json**: one orjson-encoded object per line (self-hosted)
- **gcp**: Google Cloud Logging structured format

Standard library loggers (uvicorn, SQLAlchemy, asyncpg) are intercepted
and routed through Loguru so every line shares the same format and the
context bound with ``logger.contextualize``.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from typing import Any, Final, Protocol, cast

import orjson
from loguru import logger

from src.core.config import get_settings
from src.core.constants import REDACTED


class _LoggingState:
    """Tracks whether logging has been configured."""

    def __init__(self) -> None:
        self.configured = False


_state = _LoggingState()


class LogConfigProtocol(Protocol):
    """Protocol for log configuration objects."""

    @property
    def log_level(self) -> str:
        """Logging level."""
        ...

    @property
    def log_formatter_type(self) -> str | None:
        """Log formatter type."""
        ...


class SettingsProtocol(Protocol):
    """Protocol for settings objects that setup_logging can accept."""

    @property
    def debug(self) -> bool:
        """Debug mode flag."""
        ...

    @property
    def log_config(self) -> LogConfigProtocol:
        """Log configuration."""
        ...


DEFAULT_LOG_FORMAT: Final[str] = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{message}"
)
CORRELATION_ID_DISPLAY_LENGTH: Final[int] = 8
MAX_FIELD_VALUE_LENGTH: Final[int] = 100

# Context fields shown first, in this order, by the console formatter
PRIORITY_FIELDS: Final[tuple[str, ...]] = (
    "correlation_id",
    "request_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "cache_key",
    "result_count",
)


def _escape(value: object) -> str:
    """Escape braces so Loguru does not treat them as format fields."""
    return str(value).replace("{", "{{").replace("}", "}}")


def _format_priority_field(field: str, value: object) -> str:
    if field == "correlation_id" and len(str(value)) > CORRELATION_ID_DISPLAY_LENGTH:
        value = str(value)[:CORRELATION_ID_DISPLAY_LENGTH]
    elif field == "duration_ms":
        value = f"{value}ms"
    elif field == "status_code":
        status_str = str(value)
        if status_str.startswith("2"):
            value = f"<green>{value}</green>"
        elif status_str.startswith("4"):
            value = f"<red>{value}</red>"
        elif status_str.startswith("5"):
            value = f"<red><bold>{value}</bold></red>"
    return _escape(value)


def _format_extra_field(key: str, value: object) -> str:
    str_value = str(value)
    if key in get_settings().log_config.sensitive_fields:
        str_value = REDACTED
    elif len(str_value) > MAX_FIELD_VALUE_LENGTH:
        str_value = str_value[: MAX_FIELD_VALUE_LENGTH - 3] + "..."
    return f"{_escape(key)}={_escape(str_value)}"


def _format_context_fields(extra: dict[str, Any]) -> list[str]:
    """Render bound context, priority fields first.

    Args:
        extra: Extra fields from the log record.

    Returns:
        list[str]: Formatted context parts with Loguru color markup.
    """
    parts = [
        f"<yellow>{_format_priority_field(field, extra[field])}</yellow>"
        for field in PRIORITY_FIELDS
        if extra.get(field) is not None
    ]
    parts.extend(
        f"<dim>{_format_extra_field(key, value)}</dim>"
        for key, value in extra.items()
        if key not in PRIORITY_FIELDS and not key.startswith("_") and value is not None
    )
    return parts


def format_console_with_context(record: dict[str, Any]) -> str:
    """Format a log record for the console with all context fields visible.

    Args:
        record: Loguru record to format.

    Returns:
        str: Loguru format string for this record.
    """
    try:
        timestamp = record["time"].strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        location = f"{record['name']}:{record['function']}:{record['line']}"
        parts = [
            f"<green>{timestamp}</green>",
            f"<level>{record['level'].name: <8}</level>",
            f"<cyan>{_escape(location)}</cyan>",
        ]

        if context_parts := _format_context_fields(record.get("extra", {})):
            parts.append(" ".join(f"[{part}]" for part in context_parts))

        parts.append(_escape(record.get("message", "")))
        if record.get("exception"):
            parts.append("\n{exception}")

        return " | ".join(parts) + "\n"
    except (AttributeError, TypeError, ValueError, KeyError):
        return DEFAULT_LOG_FORMAT + "\n"


class InterceptHandler(logging.Handler):
    """Redirect standard library log records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        """Forward a log record to Loguru, preserving the caller location.

        Args:
            record: Standard library LogRecord to forward.
        """
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk out of the logging module so Loguru reports the real caller
        try:
            frame, depth = sys._getframe(6), 6
            while frame.f_code.co_filename == logging.__file__ and frame.f_back:
                frame = frame.f_back
                depth += 1
        except ValueError:
            # Not enough frames on the stack
            depth = 1

        extra: dict[str, Any] = {}
        if record.name == "uvicorn.access" and hasattr(record, "scope"):
            scope = record.scope
            extra["method"] = scope.get("method", "")
            extra["path"] = scope.get("path", "")

        logger.opt(depth=depth, exception=record.exc_info).bind(**extra).log(
            level, record.getMessage()
        )


def _dumps(entry: dict[str, Any]) -> str:
    return (
        orjson.dumps(entry, default=str, option=orjson.OPT_NON_STR_KEYS).decode()
        + "\n"
    )


def serialize_for_json(record: dict[str, Any]) -> str:
    """Format a log record as a single JSON line.

    Args:
        record: Loguru record to format.

    Returns:
        str: JSON-formatted log entry with newline.
    """
    log_entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
    }

    extra = record.get("extra", {})
    log_entry.update({k: v for k, v in extra.items() if not k.startswith("_")})

    if exc := record.get("exception"):
        log_entry["exception"] = {
            "type": exc.type.__name__ if exc.type else None,
            "value": str(exc.value) if exc.value else None,
        }

    return _dumps(log_entry)


# Loguru level name to Cloud Logging severity
GCP_SEVERITY: Final[dict[str, str]] = {
    "TRACE": "DEBUG",
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "SUCCESS": "INFO",
    "WARNING": "WARNING",
    "ERROR": "ERROR",
    "CRITICAL": "CRITICAL",
}


def serialize_for_gcp(record: dict[str, Any]) -> str:
    """Format a log record for GCP Cloud Logging.

    Follows https://cloud.google.com/logging/docs/structured-logging

    Args:
        record: Loguru record to format.

    Returns:
        str: JSON-formatted log entry for GCP with newline.
    """
    settings = get_settings()
    level_name = record["level"].name
    log_entry: dict[str, Any] = {
        "severity": GCP_SEVERITY.get(level_name, "INFO"),
        "message": record["message"],
        "timestamp": record["time"].isoformat(),
        "serviceContext": {
            "service": settings.app_name,
            "version": settings.app_version,
        },
    }

    labels = {"function": record["function"], "line": str(record["line"])}
    extra = record.get("extra", {})
    if correlation_id := extra.get("correlation_id"):
        log_entry["logging.googleapis.com/trace"] = correlation_id
    if request_id := extra.get("request_id"):
        labels["request_id"] = request_id
    if fingerprint := extra.get("fingerprint"):
        # Label values are length limited
        labels["error_fingerprint"] = fingerprint[:8]

    json_payload = {
        k: v
        for k, v in extra.items()
        if k not in {"correlation_id", "request_id"} and not k.startswith("_")
    }
    if json_payload:
        log_entry["jsonPayload"] = json_payload
    log_entry["logging.googleapis.com/labels"] = labels

    if record.get("exception") or level_name in {"ERROR", "CRITICAL"}:
        log_entry["logging.googleapis.com/sourceLocation"] = {
            "file": record["file"].path,
            "line": str(record["line"]),
            "function": record["function"],
        }

    return _dumps(log_entry)


LOG_FORMATTERS: dict[str, Callable[[dict[str, Any]], str] | None] = {
    "console": None,
    "json": serialize_for_json,
    "gcp": serialize_for_gcp,
}


def setup_logging(settings: SettingsProtocol) -> None:
    """Configure Loguru once for the whole process.

    Args:
        settings: Application settings containing log configuration.
    """
    if _state.configured:
        return

    logger.remove()

    formatter_type = settings.log_config.log_formatter_type or "console"
    formatter = LOG_FORMATTERS.get(formatter_type)

    if formatter is None:
        logger.add(
            sys.stdout,
            format=cast("Any", format_console_with_context),
            level=settings.log_config.log_level,
            enqueue=True,
            colorize=True,
            diagnose=settings.debug,
            backtrace=settings.debug,
        )
    else:

        def structured_sink(message: Any) -> None:  # noqa: ANN401 - loguru Message
            sys.stdout.write(formatter(message.record))
            sys.stdout.flush()

        logger.add(
            structured_sink,
            level=settings.log_config.log_level,
            enqueue=True,
            diagnose=False,
            backtrace=False,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.handlers = [InterceptHandler()]
        uvicorn_logger.propagate = False

    logger.info(
        "Logging configured with {} formatter",
        formatter_type,
        log_level=settings.log_config.log_level,
    )
    _state.configured = True
