"""Standardized error response schemas.

Every failure the API reports, whether raised by the validation core, by
a lookup that found nothing, by FastAPI's request parsing or by an
unexpected bug, is rendered as an ``ErrorResponse`` so clients can branch
on ``error_code`` and trace the request through ``correlation_id`` and
``request_id``.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


class ServiceInfo(BaseModel):
    """Service information for error context."""

    name: str = Field(
        ...,
        description="Name of the service",
        examples=["Consulta Creditos ISSQN"],
    )

    version: str = Field(
        ...,
        description="Version of the service",
        examples=["1.0.0"],
    )

    environment: str = Field(
        ...,
        description="Environment where the service is running",
        examples=["development", "staging", "production"],
    )


class ErrorResponse(BaseModel):
    """Standardized error response model for API errors."""

    error_code: str = Field(
        ...,
        description="Unique error code identifying the error type",
        examples=["INVALID_PARAMETER", "CREDIT_NOT_FOUND", "DATA_ACCESS_ERROR"],
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=[
            "numeroCredito must contain only digits",
            "ISSQN credit not found",
        ],
    )

    details: dict[str, Any] | None = Field(
        default=None,
        description="Additional error details (offending field, rule, value)",
        examples=[
            {
                "field": "numeroCredito",
                "kind": "INVALID_FORMAT",
                "reason": "must contain only digits",
                "value": "12a",
            }
        ],
    )

    correlation_id: str | None = Field(
        default=None,
        description="Request correlation ID for tracing and debugging",
        examples=["550e8400-e29b-41d4-a716-446655440000"],
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Timestamp when the error occurred (with timezone)",
        examples=["2024-06-14T12:00:00+00:00"],
    )

    severity: str | None = Field(
        default=None,
        description="Error severity level (LOW, MEDIUM, HIGH, CRITICAL)",
        examples=["LOW", "HIGH"],
    )

    service_info: ServiceInfo | None = Field(
        default=None,
        description="Information about the service that generated the error",
    )

    request_id: str | None = Field(
        default=None,
        description=(
            "Unique request identifier (different from correlation_id "
            "which can span multiple services)"
        ),
        examples=["req-550e8400-e29b-41d4-a716-446655440000"],
    )

    debug_info: dict[str, Any] | None = Field(
        default=None,
        description="Debug information (only populated in development environments)",
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "error_code": "INVALID_PARAMETER",
                    "message": "numeroNfse must contain only digits",
                    "details": {
                        "field": "numeroNfse",
                        "kind": "INVALID_FORMAT",
                        "reason": "must contain only digits",
                        "value": "78A1011",
                    },
                    "correlation_id": "550e8400-e29b-41d4-a716-446655440000",
                    "request_id": "req-660e8400-e29b-41d4-a716-446655440000",
                    "timestamp": "2024-06-14T12:00:00+00:00",
                    "severity": "LOW",
                },
                {
                    "error_code": "INVOICE_WITHOUT_CREDITS",
                    "message": "No constituted credits found for this NFS-e",
                    "details": {"numeroNfse": "7891011"},
                    "correlation_id": "550e8400-e29b-41d4-a716-446655440001",
                    "request_id": "req-660e8400-e29b-41d4-a716-446655440001",
                    "timestamp": "2024-06-14T12:00:01+00:00",
                    "severity": "LOW",
                },
                {
                    "error_code": "DATA_ACCESS_ERROR",
                    "message": "Failed to load credits by NFS-e",
                    "details": {"operation": "load credits by NFS-e"},
                    "timestamp": "2024-06-14T12:00:02+00:00",
                    "severity": "HIGH",
                },
            ]
        }
    }
