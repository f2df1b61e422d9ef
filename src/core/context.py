"""Request-scoped identifiers shared across async boundaries."""

import uuid
from contextvars import ContextVar

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


class RequestContext:
    """Async-safe storage for the identifiers of the request being served.

    The correlation ID may come from the caller and span several services;
    the request ID is minted per request by the logging middleware.
    """

    @staticmethod
    def set_correlation_id(correlation_id: str) -> None:
        """Store the correlation ID for the current context."""
        _correlation_id_var.set(correlation_id)

    @staticmethod
    def get_correlation_id() -> str | None:
        """Return the correlation ID of the current context, if any."""
        return _correlation_id_var.get()

    @staticmethod
    def set_request_id(request_id: str) -> None:
        """Store the request ID for the current context."""
        _request_id_var.set(request_id)

    @staticmethod
    def get_request_id() -> str | None:
        """Return the request ID of the current context, if any."""
        return _request_id_var.get()

    @staticmethod
    def clear() -> None:
        """Reset every request-scoped identifier."""
        _correlation_id_var.set(None)
        _request_id_var.set(None)


def generate_correlation_id() -> str:
    """Return a new UUID4 string for cross-service correlation.

    Examples:
        >>> len(generate_correlation_id())
        36
    """
    return str(uuid.uuid4())


def generate_request_id() -> str:
    """Return a new request identifier in the form ``req-<uuid4>``.

    Examples:
        >>> generate_request_id().startswith("req-")
        True
    """
    return f"req-{uuid.uuid4()}"
