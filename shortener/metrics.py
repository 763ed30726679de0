"""Prometheus metrics for the URL shortener.

Cache counters are labelled by operation (get / set / delete) so read-path
misses and write-path failures can be told apart.
"""

from prometheus_client import Counter, Histogram

__all__ = [
    "CACHE_HITS_TOTAL",
    "CACHE_MISSES_TOTAL",
    "CACHE_ERRORS_TOTAL",
    "DATABASE_READS_TOTAL",
    "DATABASE_WRITES_TOTAL",
    "URL_CREATION_REQUESTS_TOTAL",
    "URL_LOOKUP_REQUESTS_TOTAL",
    "URL_LOOKUP_DURATION",
]

CACHE_HITS_TOTAL = Counter(
    "url_shortener_cache_hits_total",
    "Total cache hits",
    ["operation"],
)
CACHE_MISSES_TOTAL = Counter(
    "url_shortener_cache_misses_total",
    "Total cache misses",
    ["operation"],
)
CACHE_ERRORS_TOTAL = Counter(
    "url_shortener_cache_errors_total",
    "Total cache errors (connectivity or serialization)",
    ["operation"],
)

DATABASE_READS_TOTAL = Counter(
    "url_shortener_database_reads_total",
    "Total database read operations",
)
DATABASE_WRITES_TOTAL = Counter(
    "url_shortener_database_writes_total",
    "Total database write operations",
)

URL_CREATION_REQUESTS_TOTAL = Counter(
    "url_shortener_creation_requests_total",
    "Total URL creation requests",
    ["status"],
)
URL_LOOKUP_REQUESTS_TOTAL = Counter(
    "url_shortener_lookup_requests_total",
    "Total URL lookup requests",
    ["status", "cache_hit"],
)
URL_LOOKUP_DURATION = Histogram(
    "url_shortener_lookup_duration_seconds",
    "Time taken to resolve short codes",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)
