"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNTER = Counter(
	"murmur_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"murmur_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SEARCH_QUERIES = Counter(
	"murmur_search_queries_total",
	"Feed and search queries executed",
	["kind"],
)

SEARCH_LATENCY = Histogram(
	"murmur_search_latency_seconds",
	"Feed and search query latency",
	["kind"],
	buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

SEARCH_TERMS = Counter(
	"murmur_search_terms_total",
	"Compiled query terms by outcome",
	["outcome"],
)

SEARCH_STORE_FAILURES = Counter(
	"murmur_search_store_failures_total",
	"Data store fetch failures by domain",
	["domain"],
)

SAVED_FEEDS_CACHE = Counter(
	"murmur_saved_feeds_cache_total",
	"Saved feed list cache lookups",
	["result"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_search_query(kind: str) -> None:
	SEARCH_QUERIES.labels(kind=kind).inc()


def observe_search_latency(kind: str, latency_seconds: float) -> None:
	SEARCH_LATENCY.labels(kind=kind).observe(latency_seconds)


def inc_search_term(outcome: str) -> None:
	SEARCH_TERMS.labels(outcome=outcome).inc()


def inc_store_failure(domain: str) -> None:
	SEARCH_STORE_FAILURES.labels(domain=domain).inc()


def saved_feeds_cache(result: str) -> None:
	SAVED_FEEDS_CACHE.labels(result=result).inc()
