"""Global exception handlers for the FastAPI application.

Every failure is answered with an ``ErrorResponse``:

- ``ValidationError`` (field, consistency and aggregate failures): 400
- ``NotFoundError`` (unknown credit, NFS-e without credits): 404
- ``DataAccessError`` and any other ``CreditosError``: 500
- FastAPI request validation (unparseable dates, booleans...): 422
- ``HTTPException``: its own status code
- anything else: 500, with details hidden in production
"""

import traceback

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from loguru import logger
from starlette.exceptions import HTTPException

from src.api.constants import HTTP_500_INTERNAL_SERVER_ERROR
from src.api.schemas.errors import ErrorResponse, ServiceInfo
from src.api.utils.responses import ORJSONResponse
from src.core.config import Settings, get_settings
from src.core.context import RequestContext, generate_request_id
from src.core.error_context import sanitize_error_context
from src.core.exceptions import (
    CreditosError,
    ErrorCode,
    NotFoundError,
    Severity,
    ValidationError,
)


def get_service_info(settings: Settings) -> ServiceInfo:
    """Create ServiceInfo from application settings."""
    return ServiceInfo(
        name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )


def _current_request_id() -> str:
    """Return the request ID set by the logging middleware, or a fresh one."""
    return RequestContext.get_request_id() or generate_request_id()


def _status_for(exc: CreditosError) -> int:
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def creditos_error_handler(request: Request, exc: Exception) -> Response:
    """Handle CreditosError exceptions.

    Args:
        request: The FastAPI request that caused the exception
        exc: The CreditosError exception to handle

    Returns:
        Response: ORJSONResponse with error details

    Raises:
        TypeError: If exc is not a CreditosError instance
    """
    if not isinstance(exc, CreditosError):
        raise TypeError(f"Expected CreditosError, got {type(exc).__name__}")

    settings = get_settings()
    correlation_id = RequestContext.get_correlation_id()
    status_code = _status_for(exc)

    error_context = sanitize_error_context(
        exc,
        {
            "request_method": request.method,
            "request_path": str(request.url.path),
            "error_code": exc.error_code,
            "fingerprint": exc.fingerprint,
        },
    )

    # Rejected input is routine; failing infrastructure is not
    log = logger.warning if exc.is_expected else logger.error
    log(
        "Handling {exception_type}: {message}",
        exception_type=type(exc).__name__,
        message=exc.message,
        correlation_id=correlation_id,
        status_code=status_code,
        **error_context,
    )

    debug_info = None
    if settings.environment == "development":
        debug_info = {
            "stack_trace": exc.stack_trace,
            "error_context": exc.context,
            "exception_type": type(exc).__name__,
        }
        if exc.cause:
            debug_info["cause"] = {
                "type": type(exc.cause).__name__,
                "message": str(exc.cause),
            }

    error_response = ErrorResponse(
        error_code=exc.error_code,
        message=exc.message,
        details=exc.context or None,
        correlation_id=correlation_id,
        request_id=_current_request_id(),
        severity=exc.severity.value,
        service_info=get_service_info(settings),
        debug_info=debug_info,
    )

    return ORJSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json"),
    )


async def validation_error_handler(request: Request, exc: Exception) -> Response:
    """Handle FastAPI RequestValidationError exceptions.

    Groups the parser's messages by parameter name so clients see, for
    example, ``{"dataInicio": ["Input should be a valid date ..."]}``.

    Raises:
        TypeError: If exc is not a RequestValidationError instance
    """
    if not isinstance(exc, RequestValidationError):
        raise TypeError(f"Expected RequestValidationError, got {type(exc).__name__}")

    settings = get_settings()
    correlation_id = RequestContext.get_correlation_id()

    field_errors: dict[str, list[str]] = {}
    for error in exc.errors():
        # ('query', 'dataInicio') -> 'dataInicio'
        field_path = error.get("loc", ())
        field_name = ".".join(str(loc) for loc in field_path[1:] if loc != "__root__")
        field_errors.setdefault(field_name or "root", []).append(
            error.get("msg", "Invalid value")
        )

    error_context = sanitize_error_context(
        exc,
        {
            "path": str(request.url.path),
            "method": request.method,
            "validation_errors": field_errors,
        },
    )
    logger.warning(
        "Request validation failed",
        correlation_id=correlation_id,
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        **error_context,
    )

    error_response = ErrorResponse(
        error_code=ErrorCode.VALIDATION_ERROR.value,
        message="Request validation failed",
        details={"validation_errors": field_errors},
        correlation_id=correlation_id,
        request_id=_current_request_id(),
        severity=Severity.LOW.value,
        service_info=get_service_info(settings),
    )

    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response.model_dump(mode="json"),
    )


async def http_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle Starlette HTTPException (unknown routes, wrong methods...).

    Raises:
        TypeError: If exc is not an HTTPException instance
    """
    if not isinstance(exc, HTTPException):
        raise TypeError(f"Expected HTTPException, got {type(exc).__name__}")

    settings = get_settings()
    correlation_id = RequestContext.get_correlation_id()

    error_code = ErrorCode.INTERNAL_ERROR.value
    severity = Severity.MEDIUM

    if exc.status_code == status.HTTP_400_BAD_REQUEST:
        error_code = ErrorCode.VALIDATION_ERROR.value
        severity = Severity.LOW
    elif exc.status_code == status.HTTP_404_NOT_FOUND:
        error_code = ErrorCode.NOT_FOUND.value
        severity = Severity.LOW
    elif exc.status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        severity = Severity.HIGH

    error_context = sanitize_error_context(
        exc,
        {
            "status": exc.status_code,
            "method": request.method,
            "path": str(request.url.path),
            "detail": exc.detail,
        },
    )
    logger.warning("HTTP exception", correlation_id=correlation_id, **error_context)

    error_response = ErrorResponse(
        error_code=error_code,
        message=str(exc.detail),
        correlation_id=correlation_id,
        request_id=_current_request_id(),
        severity=severity.value,
        service_info=get_service_info(settings),
    )

    return ORJSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(mode="json"),
        headers=exc.headers,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle any exception no other handler claimed.

    In production the response only says an internal error occurred; the
    full traceback goes to the logs.
    """
    settings = get_settings()
    correlation_id = RequestContext.get_correlation_id()

    error_context = sanitize_error_context(
        exc,
        {
            "request_method": request.method,
            "request_path": str(request.url.path),
        },
    )
    logger.exception(
        "Unhandled exception: {exception_type}",
        exception_type=type(exc).__name__,
        correlation_id=correlation_id,
        **error_context,
    )

    if settings.environment == "production":
        message = "An internal server error occurred"
        details = None
        debug_info = None
    else:
        message = f"Internal server error: {type(exc).__name__}"
        details = {"error": str(exc), "type": type(exc).__name__}
        debug_info = {
            "stack_trace": traceback.format_tb(exc.__traceback__),
            "error_context": {"error_message": str(exc), "error_args": exc.args},
            "exception_type": type(exc).__name__,
        }

    error_response = ErrorResponse(
        error_code=ErrorCode.INTERNAL_ERROR.value,
        message=message,
        details=details,
        correlation_id=correlation_id,
        request_id=_current_request_id(),
        severity=Severity.CRITICAL.value,
        service_info=get_service_info(settings),
        debug_info=debug_info,
    )

    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.model_dump(mode="json"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""
    app.add_exception_handler(CreditosError, creditos_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers registered")
