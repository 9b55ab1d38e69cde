"""Monitoring and observability setup.

Tracing and metrics go to an OTLP collector when ``OTEL_EXPORT_ENABLED`` is
set; otherwise the SDK providers are installed without exporters so that
instruments and spans still work (tests, local runs without a collector).
"""
import logging
from opentelemetry import trace, metrics
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
import pyroscope

from storefront.config import (
    OTEL_EXPORTER_OTLP_ENDPOINT,
    OTEL_EXPORT_ENABLED,
    PROFILING_ENABLED,
    PYROSCOPE_SERVER,
    SERVICE_NAME,
)

logger = logging.getLogger(__name__)


def init_tracing() -> trace.Tracer:
    """
    Initialize OpenTelemetry tracing.

    Returns:
        Tracer instance
    """
    resource = Resource.create({"service.name": SERVICE_NAME})

    tracer_provider = TracerProvider(resource=resource)
    if OTEL_EXPORT_ENABLED:
        otlp_span_exporter = OTLPSpanExporter(
            endpoint=OTEL_EXPORTER_OTLP_ENDPOINT,
            insecure=True
        )
        tracer_provider.add_span_processor(BatchSpanProcessor(otlp_span_exporter))
        logger.info(f"Tracing initialized with endpoint: {OTEL_EXPORTER_OTLP_ENDPOINT}")
    trace.set_tracer_provider(tracer_provider)

    return trace.get_tracer(__name__)


def init_metrics() -> metrics.Meter:
    """
    Initialize OpenTelemetry metrics.

    Returns:
        Meter instance
    """
    resource = Resource.create({"service.name": SERVICE_NAME})

    metric_readers = []
    if OTEL_EXPORT_ENABLED:
        otlp_metric_exporter = OTLPMetricExporter(
            endpoint=OTEL_EXPORTER_OTLP_ENDPOINT,
            insecure=True
        )
        metric_readers.append(PeriodicExportingMetricReader(
            otlp_metric_exporter,
            export_interval_millis=5000
        ))
        logger.info("Metrics initialized with OTLP exporter")

    meter_provider = MeterProvider(
        resource=resource,
        metric_readers=metric_readers
    )
    metrics.set_meter_provider(meter_provider)

    return metrics.get_meter(__name__)


def init_profiling() -> None:
    """Initialize Pyroscope profiling."""
    if not PROFILING_ENABLED:
        return
    try:
        pyroscope.configure(
            application_name=SERVICE_NAME,
            server_address=PYROSCOPE_SERVER,
            tags={"env": "production"}
        )
        logger.info(f"Profiling initialized with server: {PYROSCOPE_SERVER}")
    except Exception as e:
        logger.warning(f"Failed to initialize profiling: {e}")


# Initialize tracer and meter
tracer = init_tracing()
meter = init_metrics()

# Catalog metrics
catalog_views_counter = meter.create_counter(
    "storefront.catalog.views",
    description="Total number of catalog listing views by listing kind",
    unit="1"
)

product_detail_views_counter = meter.create_counter(
    "storefront.products.detail_views",
    description="Total number of individual product page views",
    unit="1"
)

# Cart metrics
cart_additions_counter = meter.create_counter(
    "storefront.cart.additions",
    description="Total number of add-to-cart actions",
    unit="1"
)

cart_removals_counter = meter.create_counter(
    "storefront.cart.removals",
    description="Total number of remove-from-cart actions",
    unit="1"
)

cart_token_rejections_counter = meter.create_counter(
    "storefront.cart.token_rejections",
    description="Total number of malformed cart cookies that were cleared",
    unit="1"
)

# Order metrics
orders_placed_counter = meter.create_counter(
    "storefront.orders.placed",
    description="Total number of submitted orders",
    unit="1"
)

order_notification_failures_counter = meter.create_counter(
    "storefront.orders.notification_failures",
    description="Total number of order notifications that could not be delivered",
    unit="1"
)

# Back office metrics
currency_updates_counter = meter.create_counter(
    "storefront.currency.updates",
    description="Total number of currency coefficient changes",
    unit="1"
)

# Security monitoring metrics
auth_failures_counter = meter.create_counter(
    "storefront.auth.failures",
    description="Total number of authentication failures",
    unit="1"
)

auth_attempts_counter = meter.create_counter(
    "storefront.auth.attempts",
    description="Total number of authentication attempts",
    unit="1"
)

rate_limit_exceeded_counter = meter.create_counter(
    "storefront.rate_limit.exceeded",
    description="Total number of rate limit violations",
    unit="1"
)

# External service call metrics
external_address_lookup_duration_histogram = meter.create_histogram(
    "storefront.external.address_lookup.duration",
    description="Duration of shipping address lookup calls",
    unit="s"
)
