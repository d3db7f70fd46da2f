"""Observability setup for OpenTelemetry, metrics, and structured logging."""

import logging

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

from .config import settings

SERVICE_NAME = "excursion-booking-api"

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
BOOKINGS_CREATED = Counter(
    'bookings_created_total',
    'Total bookings created',
    ['excursion_id'],
    registry=REGISTRY
)

BOOKINGS_UPDATED = Counter(
    'bookings_updated_total',
    'Total bookings edited',
    registry=REGISTRY
)

BOOKINGS_CANCELLED = Counter(
    'bookings_cancelled_total',
    'Total bookings cancelled',
    registry=REGISTRY
)

BOOKINGS_COMPLETED = Counter(
    'bookings_completed_total',
    'Total bookings marked completed by the sweep',
    registry=REGISTRY
)

RESERVATIONS_REJECTED = Counter(
    'slot_reservations_rejected_total',
    'Slot reservations rejected',
    ['reason'],
    registry=REGISTRY
)

INTEGRITY_FAULTS = Counter(
    'slot_integrity_faults_total',
    'Observed negative remaining capacity or release underflow',
    ['kind'],
    registry=REGISTRY
)

NOTIFICATION_FAILURES = Counter(
    'notification_failures_total',
    'Notifications that could not be stored',
    registry=REGISTRY
)

WORKERS_RUNNING = Gauge(
    'background_worker_running',
    'Whether a background worker loop is running (1) or not (0)',
    ['worker'],
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
            # request_id is bound by RequestIDMiddleware
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def setup_tracing(app_name: str = SERVICE_NAME):
    """Setup OpenTelemetry tracing, exporting over OTLP when configured."""
    resource = Resource.create({
        "service.name": app_name,
        "service.version": "1.0.0",
        "environment": settings.environment,
    })

    provider = TracerProvider(resource=resource)
    if settings.otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint))
        )
    trace.set_tracer_provider(provider)

    return trace.get_tracer(__name__)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine):
    """Instrument an async SQLAlchemy engine with OpenTelemetry."""
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


class MetricsCollector:
    """Collector for business metrics."""

    @staticmethod
    def record_booking_created(excursion_id: int):
        """Record a booking creation."""
        BOOKINGS_CREATED.labels(excursion_id=str(excursion_id)).inc()

    @staticmethod
    def record_booking_updated():
        BOOKINGS_UPDATED.inc()

    @staticmethod
    def record_booking_cancelled():
        BOOKINGS_CANCELLED.inc()

    @staticmethod
    def record_bookings_completed(count: int):
        """Record bookings promoted to completed by the sweep."""
        BOOKINGS_COMPLETED.inc(count)

    @staticmethod
    def record_reservation_rejected(reason: str):
        """Record a rejected slot reservation (``no_slot`` or ``sold_out``)."""
        RESERVATIONS_REJECTED.labels(reason=reason).inc()

    @staticmethod
    def record_integrity_fault(kind: str):
        """Record an inventory integrity fault (``negative_remaining`` or ``release_underflow``)."""
        INTEGRITY_FAULTS.labels(kind=kind).inc()

    @staticmethod
    def record_notification_failure():
        NOTIFICATION_FAILURES.inc()

    @staticmethod
    def record_worker_status(statuses: dict[str, bool]):
        """Publish the running state of each background worker."""
        for worker, running in statuses.items():
            WORKERS_RUNNING.labels(worker=worker).set(1 if running else 0)


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()


def get_logger(name: str):
    """Get a structlog logger bound to a component name."""
    return structlog.get_logger(name).bind(component=name)
