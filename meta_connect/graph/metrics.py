from __future__ import annotations

from prometheus_client import Counter, Histogram


GRAPH_API_REQUESTS = Counter(
    "meta_graph_requests_total",
    "Total requests sent to Meta Graph / OAuth hosts",
    labelnames=("host", "method", "result"),
)

GRAPH_API_LATENCY = Histogram(
    "meta_graph_request_latency_seconds",
    "Latency for Meta Graph / OAuth requests",
    labelnames=("host", "method"),
    buckets=(0.05, 0.1, 0.2, 0.5, 1.0, 2.0, 5.0, 10.0),
)

GRAPH_API_ERRORS = Counter(
    "meta_graph_errors_total",
    "Total failed requests to Meta Graph / OAuth hosts",
    labelnames=("host", "method", "status"),
)
