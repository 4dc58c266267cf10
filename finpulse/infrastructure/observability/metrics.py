"""Prometheus metrics for rate lookups, provider health, and aggregation runs"""

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Exchange rate metrics
rate_lookup_counter = Counter(
    "finpulse_rate_lookups_total",
    "Exchange rate lookups by the path that served them",
    ["source"],  # internal | cache | api | stale-cache | fallback | mock
)

rate_provider_failure_counter = Counter(
    "rate_provider_failures_total",
    "Failed exchange rate provider attempts",
)

rate_provider_latency_histogram = Histogram(
    "rate_provider_latency_seconds",
    "Exchange rate provider response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Aggregation metrics
aggregation_counter = Counter(
    "finpulse_aggregations_total",
    "Aggregation runs by entity kind",
    ["kind"],  # income | expense | loan | investment
)

conversion_fallback_counter = Counter(
    "finpulse_conversion_fallbacks_total",
    "Entities aggregated with their unconverted native amount",
    ["kind"],
)

# Quote refresh metrics
quote_batch_counter = Counter(
    "quote_refresh_batches_total",
    "Quote refresh batches issued to the market data provider",
)


def record_rate_lookup(source: str) -> None:
    rate_lookup_counter.labels(source=source).inc()


def record_aggregation(kind: str, degraded_count: int) -> None:
    """Record an aggregation run and how many entities fell back to native amounts"""
    aggregation_counter.labels(kind=kind).inc()
    if degraded_count:
        conversion_fallback_counter.labels(kind=kind).inc(degraded_count)


def render_metrics() -> tuple[bytes, str]:
    """Prometheus exposition payload and its content type, for whatever serves /metrics"""
    return generate_latest(), CONTENT_TYPE_LATEST
