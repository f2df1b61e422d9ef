"""HTTP request/response logging with timings.

Every request outside the excluded paths gets a request ID (taken from
``X-Request-ID`` or minted), a "Request started" and a "Request completed"
record carrying status, duration and sizes, and a warning when it runs
longer than ``slow_request_threshold_ms``. Failures are logged and
re-raised so the exception handlers still answer.
"""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.api.constants import MAX_USER_AGENT_LENGTH, REQUEST_ID_HEADER
from src.core.config import LogConfig, get_settings
from src.core.constants import MILLISECONDS_PER_SECOND
from src.core.context import RequestContext, generate_request_id


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * MILLISECONDS_PER_SECOND


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests and responses.

    Args:
        app: The ASGI application.
        log_config: Logging configuration.
    """

    def __init__(self, app: ASGIApp, *, log_config: LogConfig) -> None:
        super().__init__(app)
        self.log_config = log_config
        self.excluded_paths = set(log_config.excluded_paths)
        self.settings = get_settings()

    def _get_client_ip(self, request: Request) -> str:
        """Return the client IP, trusting proxy headers only in production."""
        if self.settings.environment == "production":
            forwarded_for = request.headers.get("x-forwarded-for")
            if forwarded_for:
                return forwarded_for.split(",")[0].strip()

            real_ip = request.headers.get("x-real-ip")
            if real_ip:
                return real_ip.strip()

        if request.client:
            return request.client.host
        return "unknown"

    def _get_user_agent(self, request: Request) -> str:
        ua = request.headers.get("user-agent", "")
        return ua[:MAX_USER_AGENT_LENGTH] if ua else "unknown"

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process the request and log details.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: The response from the application.

        Raises:
            Exception: Any exception raised by the application is re-raised
                after logging.
        """
        if request.url.path in self.excluded_paths:
            return await call_next(request)

        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        RequestContext.set_request_id(request_id)

        with logger.contextualize(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_host=self._get_client_ip(request),
            user_agent=self._get_user_agent(request),
        ):
            logger.info(
                "Request started",
                query_params=(
                    dict(request.query_params) if request.query_params else None
                ),
            )
            start_time = time.perf_counter()

            try:
                response = await call_next(request)
            except Exception as exc:
                duration_ms = _elapsed_ms(start_time)
                logger.error(
                    "Request failed",
                    duration_ms=round(duration_ms, 2),
                    error_type=type(exc).__name__,
                )
                raise

            duration_ms = _elapsed_ms(start_time)
            logger.info(
                "Request completed",
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
                response_size=int(response.headers.get("content-length", 0)),
            )
            response.headers[REQUEST_ID_HEADER] = request_id

            if duration_ms > self.log_config.slow_request_threshold_ms:
                logger.warning(
                    "Slow request detected",
                    duration_ms=round(duration_ms, 2),
                    threshold_ms=self.log_config.slow_request_threshold_ms,
                )

            return response
