"""OpenTelemetry tracing with pluggable exporters.

Spans go to Loguru in development, to GCP Cloud Trace on Cloud Run, or to
any OTLP collector (Jaeger, Tempo, ...) otherwise.
"""

from __future__ import annotations

import importlib
import os
from contextlib import contextmanager
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Final

from loguru import logger
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from src.core.context import RequestContext

if TYPE_CHECKING:
    from collections.abc import Generator, Sequence

    from fastapi import FastAPI

    from src.core.config import Settings

SERVICE_NAME_KEY: Final[str] = "service.name"
SERVICE_VERSION_KEY: Final[str] = "service.version"
ENVIRONMENT_KEY: Final[str] = "deployment.environment"

DEFAULT_OTLP_ENDPOINT: Final[str] = "http://localhost:4317"
EXCLUDED_TRACE_URLS: Final[str] = "/health,/docs,/redoc,/openapi.json"

# Driver-level spans that only add noise to development logs
NOISY_SPAN_NAMES: Final[frozenset[str]] = frozenset(
    {"connect", "http send", "http receive", "cursor.execute"}
)


class LoguruSpanExporter(SpanExporter):
    """Span exporter that writes finished spans through Loguru."""

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        """Log each finished span at DEBUG level."""
        for span in spans:
            span_context = span.get_span_context()
            if not span_context or span.name in NOISY_SPAN_NAMES:
                continue

            attributes = dict(span.attributes or {})
            duration_ms = None
            if span.end_time and span.start_time:
                duration_ms = (span.end_time - span.start_time) // 1_000_000

            logger.bind(
                trace_id=f"0x{span_context.trace_id:032x}",
                span_id=f"0x{span_context.span_id:016x}",
                correlation_id=attributes.get(
                    "correlation_id", RequestContext.get_correlation_id()
                ),
                span_name=span.name,
                duration_ms=duration_ms,
                attributes=attributes,
                status=span.status.status_code.name,
            ).debug("Trace span completed: {}", span.name)

        return SpanExportResult.SUCCESS


def get_span_exporter(settings: Settings) -> SpanExporter | None:
    """Return the exporter configured in ``observability_config``.

    Args:
        settings: Application settings.

    Returns:
        SpanExporter | None: Configured exporter or None if disabled.
    """
    exporter_type = settings.observability_config.exporter_type

    if exporter_type == "console":
        logger.info("Using Loguru span exporter for development")
        return LoguruSpanExporter()

    if exporter_type == "gcp":
        return _get_gcp_exporter(settings)

    if exporter_type == "otlp":
        endpoint = (
            settings.observability_config.exporter_endpoint or DEFAULT_OTLP_ENDPOINT
        )
        logger.info("Using OTLP exporter at {}", endpoint)
        return OTLPSpanExporter(
            endpoint=endpoint,
            insecure=settings.environment == "development",
        )

    logger.info("Tracing explicitly disabled")
    return None


def _get_gcp_exporter(settings: Settings) -> SpanExporter | None:
    """Return a Cloud Trace exporter when its optional package is installed."""
    project_id = settings.observability_config.gcp_project_id or os.getenv(
        "GOOGLE_CLOUD_PROJECT"
    )
    if not project_id:
        logger.warning("GCP project ID not configured, disabling tracing")
        return None

    try:
        module = importlib.import_module("opentelemetry.exporter.cloud_trace")
    except ImportError:
        logger.error(
            "GCP exporter requested but opentelemetry-exporter-gcp-trace "
            "is not installed"
        )
        return None

    logger.info("Using GCP Cloud Trace exporter for project {}", project_id)
    exporter: SpanExporter = module.CloudTraceSpanExporter(project_id=project_id)
    return exporter


@lru_cache(maxsize=1)
def get_tracer(name: str) -> trace.Tracer:
    """Return a tracer for the given component."""
    return trace.get_tracer(name)


def setup_tracing(settings: Settings) -> None:
    """Install a global tracer provider with ratio sampling.

    Args:
        settings: Application settings.
    """
    if not settings.observability_config.enable_tracing:
        logger.info("Tracing disabled by configuration")
        return

    resource = Resource.create(
        {
            SERVICE_NAME_KEY: settings.app_name,
            SERVICE_VERSION_KEY: settings.app_version,
            ENVIRONMENT_KEY: settings.environment,
        }
    )
    tracer_provider = TracerProvider(
        resource=resource,
        sampler=TraceIdRatioBased(settings.observability_config.trace_sample_rate),
    )

    if exporter := get_span_exporter(settings):
        tracer_provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(tracer_provider)

    logger.info(
        "Tracing configured",
        exporter_type=settings.observability_config.exporter_type,
        sample_rate=settings.observability_config.trace_sample_rate,
    )


def instrument_app(app: FastAPI, settings: Settings) -> None:
    """Instrument the FastAPI application and SQLAlchemy for tracing.

    Args:
        app: FastAPI application to instrument.
        settings: Application settings.
    """
    if not settings.observability_config.enable_tracing:
        return

    FastAPIInstrumentor.instrument_app(
        app,
        excluded_urls=EXCLUDED_TRACE_URLS,
        server_request_hook=add_correlation_id_to_span,
    )
    SQLAlchemyInstrumentor().instrument(enable_commenter=True)

    logger.info("Application instrumented for tracing")


def add_correlation_id_to_span(span: trace.Span, scope: dict[str, Any]) -> None:
    """Copy the correlation and request IDs onto the server span.

    Args:
        span: The current span.
        scope: ASGI scope dict containing request information.
    """
    if correlation_id := RequestContext.get_correlation_id():
        span.set_attribute("correlation_id", correlation_id)

    headers = dict(scope.get("headers", []))
    if request_id := headers.get(b"x-request-id", b"").decode("utf-8"):
        span.set_attribute("request_id", request_id)


def add_span_attributes(**attributes: str | int | float | bool) -> None:
    """Add attributes to the current span, if it is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        for key, value in attributes.items():
            span.set_attribute(key, str(value))


@contextmanager
def trace_operation(
    name: str, **attributes: str | int | float | bool
) -> Generator[trace.Span]:
    """Run a block inside a new span.

    Args:
        name: Operation name for the span.
        **attributes: Initial attributes for the span.

    Yields:
        trace.Span: The created span for the operation.

    Example:
        >>> with trace_operation("credits.get_by_number", credit_number="123"):
        ...     record = await repository.find_by_credit_number("123")
    """
    tracer = get_tracer(__name__)
    span = tracer.start_span(name)

    for key, value in attributes.items():
        span.set_attribute(key, str(value))

    if correlation_id := RequestContext.get_correlation_id():
        span.set_attribute("correlation_id", correlation_id)

    with trace.use_span(span, end_on_exit=True):
        yield span
