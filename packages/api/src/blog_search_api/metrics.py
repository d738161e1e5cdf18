"""Prometheus metrics for the search API.

HTTP traffic is recorded by the middleware in main.py through
instrument_request() and track_request_status(). Search outcomes are
recorded by the service layer: degradations arrive through the engine's
degradation callback, fatal failures and result totals after each search.

All metrics live in the default registry and are served by /metrics.
"""

import time
from contextlib import contextmanager
from typing import Iterator, Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.requests import Request
from starlette.responses import Response

from blog_search_contracts import UnifiedSearchResult

_LATENCY_BUCKETS = (0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
_TOTAL_BUCKETS = (0, 1, 5, 10, 25, 50, 100, 500, 1000)

# HTTP
REQUEST_COUNT = Counter(
    "blog_search_requests_total",
    "HTTP requests by endpoint, method and status",
    ["endpoint", "method", "status"],
)
REQUEST_DURATION = Histogram(
    "blog_search_request_duration_seconds",
    "HTTP request latency",
    ["endpoint", "method"],
    buckets=_LATENCY_BUCKETS,
)
REQUESTS_IN_PROGRESS = Gauge(
    "blog_search_requests_in_progress",
    "HTTP requests being served",
    ["endpoint"],
)

# Search
DEGRADATIONS_TOTAL = Counter(
    "blog_search_degradations_total",
    "Entity operations that fell back from full-text to substring matching",
    ["entity", "operation"],
)
FATAL_FAILURES_TOTAL = Counter(
    "blog_search_fatal_failures_total",
    "Entity operations that failed in both matching modes",
    ["entity", "operation"],
)
OVERALL_TOTAL = Histogram(
    "blog_search_overall_total",
    "Matches per search across all entity types",
    buckets=_TOTAL_BUCKETS,
)
ENTITY_TOTAL = Histogram(
    "blog_search_entity_total",
    "Matches per search for one entity type",
    ["entity"],
    buckets=_TOTAL_BUCKETS,
)
EMPTY_SEARCHES = Counter(
    "blog_search_empty_total",
    "Searches that matched nothing at all",
)
SEARCH_DURATION = Histogram(
    "blog_search_duration_seconds",
    "Unified search latency by requested scope",
    ["entity_scope"],
    buckets=_LATENCY_BUCKETS[:-1],
)


@contextmanager
def instrument_request(endpoint: str, method: str) -> Iterator[None]:
    """Track in-flight count and latency around one HTTP request."""
    in_progress = REQUESTS_IN_PROGRESS.labels(endpoint=endpoint)
    in_progress.inc()
    start = time.perf_counter()
    try:
        yield
    finally:
        REQUEST_DURATION.labels(endpoint=endpoint, method=method).observe(
            time.perf_counter() - start
        )
        in_progress.dec()


def track_request_status(endpoint: str, method: str, status: int) -> None:
    REQUEST_COUNT.labels(endpoint=endpoint, method=method, status=str(status)).inc()


def track_degradation(entity: str, operation: str) -> None:
    DEGRADATIONS_TOTAL.labels(entity=entity, operation=operation).inc()


def track_fatal_failure(entity: str, operation: str) -> None:
    FATAL_FAILURES_TOTAL.labels(entity=entity, operation=operation).inc()


def track_search_results(result: UnifiedSearchResult, duration: Optional[float] = None) -> None:
    """Record totals of a completed search.

    Per-entity totals are recorded for every bucket, in scope or not,
    since counts always run for all four entity types.
    """
    OVERALL_TOTAL.observe(result.overall_total)
    for entity, bucket in (
        ("articles", result.articles),
        ("activities", result.activities),
        ("users", result.users),
        ("tags", result.tags),
    ):
        ENTITY_TOTAL.labels(entity=entity).observe(bucket.total)
    if result.overall_total == 0:
        EMPTY_SEARCHES.inc()
    if duration is not None:
        SEARCH_DURATION.labels(entity_scope=result.entity_scope.value).observe(duration)


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus text exposition of the default registry."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
