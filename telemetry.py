from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import Counter, Histogram


FETCH_TOTAL = Counter(
    "go2web_fetches_total",
    "Total number of top-level fetches, by outcome.",
    ["outcome"],
)

FETCH_LATENCY = Histogram(
    "go2web_fetch_latency_seconds",
    "Latency of top-level fetches including all redirect hops.",
    buckets=(0.1, 0.25, 0.5, 1, 2, 4, 8, 15, 30),
)

REDIRECT_HOPS = Counter(
    "go2web_redirect_hops_total",
    "Number of redirect hops followed.",
)

CACHE_LOOKUPS = Counter(
    "go2web_cache_lookups_total",
    "Cache lookups, by result.",
    ["result"],
)


class Telemetry:
    """Facade around Prometheus metrics helpers."""

    def record_redirect(self) -> None:
        REDIRECT_HOPS.inc()

    def record_cache_lookup(self, hit: bool) -> None:
        CACHE_LOOKUPS.labels(result="hit" if hit else "miss").inc()

    def record_fetch(self, outcome: str, duration_seconds: float) -> None:
        FETCH_TOTAL.labels(outcome=outcome).inc()
        FETCH_LATENCY.observe(duration_seconds)

    @contextmanager
    def measure_fetch(self) -> Iterator[None]:
        """Context manager to time a fetch and count its outcome."""
        start = time.monotonic()
        outcome = "error"
        try:
            yield
            outcome = "ok"
        finally:
            self.record_fetch(outcome, time.monotonic() - start)
