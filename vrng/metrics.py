"""
Prometheus metrics for the VRNG consumer.

Instruments
-----------
  • requests_total      : requests accepted by a coordinator
  • fulfillments_total  : fulfillments committed, per normalization method
  • rejections_total    : protocol failures, per error code
  • hook_seconds        : time spent in the host's on_fulfilled hook
  • pending_requests    : requests awaiting fulfillment, per consumer

Design notes
------------
- Label cardinality stays low: ``method`` and ``code`` come from small closed
  vocabularies, ``consumer`` is the coordinator's configured name.
- Construct your own ``Metrics`` with a fresh ``CollectorRegistry`` in tests
  to avoid duplicate registration on the process-wide registry.

Usage
-----
    from vrng.metrics import get_metrics

    m = get_metrics()
    m.record_request("dice")
    with m.hook_timer():
        on_fulfilled(rid, value)
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from time import perf_counter
from typing import Iterable, Iterator, Optional

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, start_http_server

log = logging.getLogger("vrng.metrics")

# Hook latency buckets (seconds): hooks are expected to be quick.
_HOOK_BUCKETS = (
    0.0001, 0.0005, 0.001, 0.005,
    0.01, 0.05, 0.1, 0.5, 1.0,
)


class Metrics:
    """
    Container for the coordinator's Prometheus instruments.

    Args:
        namespace: Prometheus metric namespace (prefix).
        subsystem: Prometheus metric subsystem.
        registry:  Registry to register the metrics with.
    """

    def __init__(
        self,
        *,
        namespace: str = "vrng",
        subsystem: str = "consumer",
        registry=REGISTRY,
        hook_buckets: Iterable[float] = _HOOK_BUCKETS,
    ) -> None:
        self.requests_total = Counter(
            "requests_total",
            "Randomness requests accepted by the coordinator.",
            labelnames=("consumer",),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.fulfillments_total = Counter(
            "fulfillments_total",
            "Fulfillments committed, labeled by normalization method.",
            labelnames=("consumer", "method"),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.rejections_total = Counter(
            "rejections_total",
            "Request/fulfill attempts rejected, labeled by error code.",
            labelnames=("consumer", "code"),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.hook_seconds = Histogram(
            "hook_seconds",
            "Time spent in the on_fulfilled hook (seconds).",
            buckets=tuple(hook_buckets),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.pending_requests = Gauge(
            "pending_requests",
            "Requests awaiting fulfillment.",
            labelnames=("consumer",),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )

    # ---------------- helpers ----------------

    def record_request(self, consumer: str) -> None:
        self.requests_total.labels(consumer=consumer).inc()
        self.pending_requests.labels(consumer=consumer).inc()

    def record_fulfillment(self, consumer: str, method: str) -> None:
        self.fulfillments_total.labels(consumer=consumer, method=method).inc()
        self.pending_requests.labels(consumer=consumer).dec()

    def record_rejection(self, consumer: str, code: str) -> None:
        self.rejections_total.labels(consumer=consumer, code=code).inc()

    @contextmanager
    def hook_timer(self) -> Iterator[None]:
        t0 = perf_counter()
        try:
            yield
        finally:
            self.hook_seconds.observe(perf_counter() - t0)


_DEFAULT: Optional[Metrics] = None


def get_metrics() -> Metrics:
    """Process-wide instance registered on the default Prometheus registry."""
    global _DEFAULT
    if _DEFAULT is None:
        _DEFAULT = Metrics()
    return _DEFAULT


_server_started = False


def ensure_metrics_server(port: Optional[int] = None, addr: str = "0.0.0.0") -> bool:
    """
    Start a Prometheus /metrics HTTP server once per process.

    Port resolution: argument, then $VRNG_METRICS_PORT. A missing or
    non-positive port leaves the server disabled. Returns True if a server
    is (or already was) running.
    """
    global _server_started

    if _server_started:
        return True

    chosen: Optional[int] = port
    if chosen is None:
        env_port = os.getenv("VRNG_METRICS_PORT", "").strip()
        if env_port:
            try:
                chosen = int(env_port)
            except ValueError:
                log.warning("Invalid VRNG_METRICS_PORT=%r; metrics server disabled", env_port)
                return False

    if not chosen or chosen <= 0:
        return False

    start_http_server(chosen, addr=addr)
    _server_started = True
    log.info("Metrics server started on http://%s:%d/metrics", addr, chosen)
    return True


__all__ = ["Metrics", "get_metrics", "ensure_metrics_server"]
