"""Sensitive data sanitization for error logging and SQL parameter logging.

Error contexts and query parameters pass through here before they reach a
log sink. Field names matching the default pattern or the configured
``log_config.sensitive_fields`` are replaced with ``[REDACTED]``. Only the
logged copy is changed; the original data is left untouched.
"""

from __future__ import annotations

import re
from decimal import Decimal
from functools import lru_cache
from re import Pattern
from typing import Any, Final

from src.core.config import get_settings
from src.core.constants import REDACTED

# Values we know how to walk through
SanitizableValue = (
    str
    | int
    | float
    | bool
    | Decimal
    | None
    | dict[str, Any]
    | list[Any]
    | tuple[Any, ...]
)

DEFAULT_SENSITIVE_PATTERN: Final[Pattern[str]] = re.compile(
    r"(password|passwd|pwd|secret|token|api[_-]?key|apikey|authorization|"
    r"credential|private[_-]?key|access[_-]?key|session|connection[_-]?string)",
    re.IGNORECASE,
)

# Maximum depth for nested structure sanitization
MAX_DEPTH: Final[int] = 10


@lru_cache(maxsize=1)
def _get_sensitive_fields() -> tuple[str, ...]:
    """Return the configured sensitive field names, lower-cased."""
    settings = get_settings()
    return tuple(field.lower() for field in settings.log_config.sensitive_fields)


def is_sensitive_field(field_name: str) -> bool:
    """Check if a field name indicates sensitive data.

    Args:
        field_name: The field name to check.

    Returns:
        bool: True if the default pattern or a configured name matches.
    """
    if DEFAULT_SENSITIVE_PATTERN.search(field_name):
        return True

    field_lower = field_name.lower()
    return any(sensitive in field_lower for sensitive in _get_sensitive_fields())


def sanitize_value(
    value: SanitizableValue, field_name: str = "", depth: int = 0
) -> SanitizableValue:
    """Sanitize a value, recursing into dicts, lists and tuples.

    Args:
        value: The value to potentially sanitize.
        field_name: The field name for context.
        depth: Current recursion depth.

    Returns:
        SanitizableValue: Sanitized value or original if not sensitive.
    """
    if depth > MAX_DEPTH:
        return REDACTED

    if field_name and is_sensitive_field(field_name):
        return REDACTED

    if isinstance(value, dict):
        return {k: sanitize_value(v, k, depth + 1) for k, v in value.items()}

    if isinstance(value, list):
        return [sanitize_value(item, "", depth + 1) for item in value]

    if isinstance(value, tuple):
        return tuple(sanitize_value(item, "", depth + 1) for item in value)

    return value


def sanitize_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with sensitive values redacted."""
    return {key: sanitize_value(value, key) for key, value in data.items()}


def sanitize_error_context(
    error: Exception, context: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Create sanitized error context for logging.

    Args:
        error: The exception to create context for.
        context: Additional context to include (will be sanitized).

    Returns:
        dict[str, Any]: Sanitized error context safe for logging.
    """
    error_context: dict[str, Any] = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }

    if context:
        error_context.update(sanitize_dict(context))

    # Stack traces are logged separately; keep the attribute dump small
    error_attrs = {
        k: v
        for k, v in vars(error).items()
        if not k.startswith("_") and k != "stack_trace"
    }
    if error_attrs:
        error_context["error_attributes"] = sanitize_dict(error_attrs)

    return error_context


def sanitize_sql_params(params: object) -> object:
    """Sanitize SQL query parameters for safe logging.

    Named parameters are sanitized by key. Positional parameters carry no
    names and are returned as-is. Anything else is redacted.

    Args:
        params: SQL query parameters in any SQLAlchemy format.

    Returns:
        object: Sanitized parameters in the same format as input.
    """
    if params is None:
        return None

    if isinstance(params, dict):
        return sanitize_dict(params)
    if isinstance(params, (list, tuple)):
        return params

    return REDACTED
