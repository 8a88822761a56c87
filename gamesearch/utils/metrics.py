"""Prometheus metrics for the search orchestration layer.

All metric objects are defined at import time. Failed writes and queries are
swallowed by the degraded paths, so these counters are how an outage shows
up while callers only see empty results.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

search_queries_total = Counter(
    "search_queries_total",
    "Number of read requests sent to the search index",
    ["operation", "status"],
)
search_query_duration_seconds = Histogram(
    "search_query_duration_seconds",
    "Duration of read requests sent to the search index",
    ["operation"],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
)
search_index_writes_total = Counter(
    "search_index_writes_total",
    "Number of document writes sent to the search index",
    ["operation", "status"],
)
search_index_ready = Gauge(
    "search_index_ready",
    "1 when the target index is known to exist with its mapping",
    ["index"],
)

__all__ = [
    "search_queries_total",
    "search_query_duration_seconds",
    "search_index_writes_total",
    "search_index_ready",
]
