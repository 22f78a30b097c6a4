"""Prometheus metrics registry and metric objects used across the app."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, REGISTRY


REQUESTS_RECEIVED = Counter(
    "wachecker_requests_total", "Batch requests received from chat"
)

REQUESTS_REJECTED = Counter(
    "wachecker_requests_rejected_total",
    "Batch requests rejected before checking",
    ["reason"],
)

REQUESTS_IGNORED = Counter(
    "wachecker_requests_ignored_total",
    "Batch requests dropped because the WhatsApp session was not ready",
)

CHECKS = Counter(
    "wachecker_checks_total", "Identifier checks by result", ["result"]
)

CHECK_SECONDS = Histogram(
    "wachecker_check_seconds", "Latency of a single WhatsApp registration check"
)

BATCHES = Counter(
    "wachecker_batches_total", "Uncached check batches issued"
)

CACHE_HITS = Counter(
    "wachecker_cache_hits_total", "Verification cache hits"
)

CACHE_MISSES = Counter(
    "wachecker_cache_misses_total", "Verification cache misses"
)

CACHE_ENTRIES = Gauge(
    "wachecker_cache_entries", "Identifiers held in the verification cache"
)

# WhatsApp session
SESSION_READY = Gauge(
    "wachecker_session_ready", "1 when the WhatsApp session can serve checks"
)
SESSION_FAILURES = Counter(
    "wachecker_session_failures_total", "WhatsApp session initialization failures"
)
SESSION_RECONNECTS = Counter(
    "wachecker_session_reconnects_total", "WhatsApp session reconnects performed"
)
