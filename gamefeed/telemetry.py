"""
Observability setup:
  - OpenTelemetry distributed tracing → Jaeger (via OTLP gRPC)
  - Prometheus metrics for the feed, the follow graph and the rating aggregate

Both are initialised once at startup and injected into FastAPI via middleware.
"""
import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import Counter, Histogram

from gamefeed.config import settings

logger = logging.getLogger(__name__)

# ─────────────────────────── Prometheus Metrics ───────────────────────────
FEED_LATENCY = Histogram(
    "feed_latency_seconds",
    "End-to-end latency of the activity feed merge",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

FEED_SOURCE_ITEMS_TOTAL = Counter(
    "feed_source_items_total",
    "Activity items fetched per feed source",
    ["source"],  # 'review' or 'follow'
)

FEED_SOURCE_DEGRADED_TOTAL = Counter(
    "feed_source_degraded_total",
    "Feed requests served without a source because it missed its deadline",
    ["source"],
)

RATING_RECOMPUTE_TOTAL = Counter(
    "rating_recompute_total",
    "Game rating aggregate recomputations",
    ["trigger"],  # 'create' | 'update' | 'delete' | 'manual'
)

FOLLOW_EVENTS_TOTAL = Counter(
    "follow_events_total",
    "Follow graph edge changes",
    ["action"],  # 'follow' | 'unfollow'
)


# ─────────────────────────── OpenTelemetry Setup ──────────────────────────
def setup_tracing() -> None:
    """Configure the global OTel TracerProvider with OTLP/Jaeger export."""
    if not settings.tracing_enabled:
        logger.info("Tracing disabled")
        return

    resource = Resource.create(
        {
            "service.name": settings.service_name,
            "deployment.environment": settings.environment,
        }
    )

    provider = TracerProvider(resource=resource)

    try:
        otlp_exporter = OTLPSpanExporter(
            endpoint=settings.otel_exporter_otlp_endpoint,
            insecure=True,
        )
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
        logger.info(
            "OTel tracing configured → %s", settings.otel_exporter_otlp_endpoint
        )
    except Exception as exc:
        logger.warning("Could not connect to OTLP exporter: %s — traces disabled", exc)

    trace.set_tracer_provider(provider)

    SQLAlchemyInstrumentor().instrument()


def instrument_app(app) -> None:  # noqa: ANN001
    """Call after app is created to add FastAPI request spans."""
    if settings.tracing_enabled:
        FastAPIInstrumentor.instrument_app(app)
