"""Observability setup for OpenTelemetry, metrics, and structured logging."""

import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.resources import Resource
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CollectorRegistry
import structlog

from .config import settings

SERVICE_NAME = "rental-booking-quote"
SERVICE_VERSION = "1.0.0"

# Prometheus metrics
REGISTRY = CollectorRegistry()

# Request metrics
REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=REGISTRY
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=REGISTRY
)

# Business metrics
QUOTES_COMPUTED = Counter(
    'booking_pricing_computed_total',
    'Total pricing breakdowns computed',
    registry=REGISTRY
)

STALE_QUOTES_DISCARDED = Counter(
    'booking_pricing_quotes_stale_total',
    'Vehicle pricing quote responses discarded because a newer fetch was issued',
    registry=REGISTRY
)

UPSTREAM_FETCH_FAILURES = Counter(
    'rental_api_fetch_failures_total',
    'Failed rental backend lookups by draft section',
    ['section'],
    registry=REGISTRY
)

SUBMISSIONS = Counter(
    'booking_submissions_total',
    'Booking submissions by outcome',
    ['outcome'],
    registry=REGISTRY
)

ACTIVE_DRAFTS = Gauge(
    'booking_drafts_active',
    'Number of booking drafts held in memory',
    registry=REGISTRY
)

DRAFTS_EXPIRED = Counter(
    'booking_drafts_expired_total',
    'Total booking drafts discarded after going idle',
    registry=REGISTRY
)


def setup_structured_logging():
    """Configure structured logging with structlog."""

    def add_trace_context(logger, method_name, event_dict):
        """Add trace context to log events."""
        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            event_dict['trace_id'] = format(ctx.trace_id, '032x')
            event_dict['span_id'] = format(ctx.span_id, '016x')
        return event_dict

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def setup_tracing(app_name: str = SERVICE_NAME):
    """Setup OpenTelemetry tracing."""

    resource = Resource.create({
        "service.name": app_name,
        "service.version": SERVICE_VERSION,
        "environment": settings.environment,
    })

    provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(provider)

    # Only export spans when a collector is configured
    if settings.otlp_endpoint:
        otlp_exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    return trace.get_tracer(__name__)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


class MetricsCollector:
    """Collector for booking quote metrics."""

    @staticmethod
    def record_request(method: str, endpoint: str, status_code: int, duration_seconds: float):
        """Record one HTTP request."""
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration_seconds)

    @staticmethod
    def record_pricing_computed():
        """Record a pricing breakdown computation."""
        QUOTES_COMPUTED.inc()

    @staticmethod
    def record_stale_quote():
        """Record a discarded out-of-order pricing quote."""
        STALE_QUOTES_DISCARDED.inc()

    @staticmethod
    def record_fetch_failure(section: str):
        """Record a failed rental backend lookup."""
        UPSTREAM_FETCH_FAILURES.labels(section=section).inc()

    @staticmethod
    def record_submission(outcome: str):
        """Record a submission outcome (created, validation_failed, rejected, in_progress)."""
        SUBMISSIONS.labels(outcome=outcome).inc()

    @staticmethod
    def set_active_drafts(count: int):
        """Set the number of drafts in memory."""
        ACTIVE_DRAFTS.set(count)

    @staticmethod
    def record_drafts_expired(count: int):
        """Record drafts discarded by the expiry worker."""
        DRAFTS_EXPIRED.inc(count)


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()


class StructuredLogger:
    """Structured logger with business context."""

    def __init__(self, name_or_logger):
        if isinstance(name_or_logger, str):
            self.logger = structlog.get_logger(name_or_logger)
        else:
            self.logger = name_or_logger

    def info(self, message: str, **kwargs):
        """Log info message with context."""
        self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with context."""
        self.logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with context."""
        self.logger.error(message, **kwargs)

    def debug(self, message: str, **kwargs):
        """Log debug message with context."""
        self.logger.debug(message, **kwargs)

    def with_context(self, **kwargs):
        """Add context to logger."""
        return StructuredLogger(self.logger.bind(**kwargs))


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(name)
