# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Prometheus metrics for the gateway and rate limiter.

GatewayMetrics registers its collectors on its own CollectorRegistry, so two
gateways (or two tests) in one process never collide on metric names. Pass
``prometheus_client.REGISTRY`` explicitly to expose them on the global
registry instead.

Usage:
    >>> metrics = GatewayMetrics()
    >>> metrics.record_request("openai", "chat", "success")
    >>> metrics.get_stats()["requests"]["openai:chat:success"]
    1
"""

import logging
import threading
from collections import Counter as Tally
from typing import Any

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from ..types import Cost, Usage
from .constants import (
    COST_TOTAL,
    LATENCY_BUCKETS,
    RATE_LIMIT_DECISIONS_TOTAL,
    REQUESTS_TOTAL,
    RETRIES_TOTAL,
    STREAM_BYTES_TOTAL,
    STREAMS_CLOSED_TOTAL,
    STREAMS_OPENED_TOTAL,
    SWEEP_REMOVED_TOTAL,
    TOKENS_TOTAL,
    UPSTREAM_LATENCY_SECONDS,
    VISITORS_TRACKED,
)

logger = logging.getLogger(__name__)


class GatewayMetrics:
    """
    Prometheus counters, gauges and histograms for one gateway.

    Alongside the Prometheus collectors, a plain tally of every counter is
    kept so ``get_stats()`` can return a JSON-serialisable snapshot without
    scraping.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """
        Initialize gateway metrics.

        Args:
            registry: CollectorRegistry to register on. A fresh registry is
                created when omitted.
        """
        self.registry = registry if registry is not None else CollectorRegistry()
        self._lock = threading.Lock()
        self._tallies: dict[str, Tally[str]] = {
            "requests": Tally(),
            "rate_limit_decisions": Tally(),
            "retries": Tally(),
            "tokens": Tally(),
            "streams_opened": Tally(),
            "streams_closed": Tally(),
        }
        self._sweep_removed = 0
        self._stream_bytes = 0
        self._visitors = 0
        self._cost: dict[str, float] = {}

        self.requests_total = Counter(
            REQUESTS_TOTAL,
            "Gateway calls by provider, operation and outcome",
            ["provider", "operation", "outcome"],
            registry=self.registry,
        )
        self.upstream_latency_seconds = Histogram(
            UPSTREAM_LATENCY_SECONDS,
            "Time spent waiting on a provider per call",
            ["provider", "operation"],
            buckets=LATENCY_BUCKETS,
            registry=self.registry,
        )
        self.retries_total = Counter(
            RETRIES_TOTAL,
            "Upstream calls repeated after a retryable failure",
            ["provider", "operation"],
            registry=self.registry,
        )
        self.tokens_total = Counter(
            TOKENS_TOTAL,
            "Tokens reported by providers",
            ["provider", "direction"],  # Values: prompt, completion
            registry=self.registry,
        )
        self.cost_total = Counter(
            COST_TOTAL,
            "Estimated spend in the provider's pricing currency",
            ["provider", "currency"],
            registry=self.registry,
        )
        self.rate_limit_decisions_total = Counter(
            RATE_LIMIT_DECISIONS_TOTAL,
            "Admission decisions",
            ["scope", "result"],  # Values: client|provider, allowed|rejected|error
            registry=self.registry,
        )
        self.visitors_tracked = Gauge(
            VISITORS_TRACKED,
            "Client keys currently held by the limiter backend",
            registry=self.registry,
        )
        self.sweep_removed_total = Counter(
            SWEEP_REMOVED_TOTAL,
            "Idle visitors removed by the background sweep",
            registry=self.registry,
        )
        self.streams_opened_total = Counter(
            STREAMS_OPENED_TOTAL,
            "Upstream streams opened",
            ["provider"],
            registry=self.registry,
        )
        self.streams_closed_total = Counter(
            STREAMS_CLOSED_TOTAL,
            "Upstream streams closed",
            ["provider", "reason"],  # Values: complete, error, closed_early
            registry=self.registry,
        )
        self.stream_bytes_total = Counter(
            STREAM_BYTES_TOTAL,
            "Raw bytes forwarded from upstream streams",
            ["provider"],
            registry=self.registry,
        )

    def record_request(self, provider: str, operation: str, outcome: str) -> None:
        self.requests_total.labels(
            provider=provider, operation=operation, outcome=outcome
        ).inc()
        with self._lock:
            self._tallies["requests"][f"{provider}:{operation}:{outcome}"] += 1

    def observe_latency(self, provider: str, operation: str, seconds: float) -> None:
        self.upstream_latency_seconds.labels(
            provider=provider, operation=operation
        ).observe(seconds)

    def record_retry(self, provider: str, operation: str) -> None:
        self.retries_total.labels(provider=provider, operation=operation).inc()
        with self._lock:
            self._tallies["retries"][f"{provider}:{operation}"] += 1

    def record_usage(self, provider: str, usage: Usage, cost: Cost | None = None) -> None:
        """Count tokens and, when priced, spend for one successful call."""
        self.tokens_total.labels(provider=provider, direction="prompt").inc(
            usage.prompt_tokens
        )
        self.tokens_total.labels(provider=provider, direction="completion").inc(
            usage.completion_tokens
        )
        if cost is not None:
            self.cost_total.labels(provider=provider, currency=cost.currency).inc(
                cost.total
            )
        with self._lock:
            self._tallies["tokens"][f"{provider}:prompt"] += usage.prompt_tokens
            self._tallies["tokens"][f"{provider}:completion"] += usage.completion_tokens
            if cost is not None:
                key = f"{provider}:{cost.currency}"
                self._cost[key] = self._cost.get(key, 0.0) + cost.total

    def record_rate_limit(self, scope: str, result: str) -> None:
        self.rate_limit_decisions_total.labels(scope=scope, result=result).inc()
        with self._lock:
            self._tallies["rate_limit_decisions"][f"{scope}:{result}"] += 1

    def set_visitors(self, count: int) -> None:
        self.visitors_tracked.set(count)
        with self._lock:
            self._visitors = count

    def record_sweep(self, removed: int) -> None:
        if removed:
            self.sweep_removed_total.inc(removed)
        with self._lock:
            self._sweep_removed += removed

    def record_stream_opened(self, provider: str) -> None:
        self.streams_opened_total.labels(provider=provider).inc()
        with self._lock:
            self._tallies["streams_opened"][provider] += 1

    def record_stream_closed(
        self, provider: str, reason: str, bytes_forwarded: int
    ) -> None:
        self.streams_closed_total.labels(provider=provider, reason=reason).inc()
        if bytes_forwarded:
            self.stream_bytes_total.labels(provider=provider).inc(bytes_forwarded)
        with self._lock:
            self._tallies["streams_closed"][f"{provider}:{reason}"] += 1
            self._stream_bytes += bytes_forwarded

    def get_stats(self) -> dict[str, Any]:
        """
        Get a JSON-serialisable snapshot of all counters.

        Returns:
            Dictionary keyed by metric family, each mapping a colon-joined
            label string to its value.
        """
        with self._lock:
            stats: dict[str, Any] = {
                name: dict(tally) for name, tally in self._tallies.items()
            }
            stats["cost"] = dict(self._cost)
            stats["sweep_removed"] = self._sweep_removed
            stats["stream_bytes"] = self._stream_bytes
            stats["visitors_tracked"] = self._visitors
        return stats

    def generate_latest(self) -> bytes:
        """Render the registry in the Prometheus text exposition format."""
        return generate_latest(self.registry)


__all__ = ["GatewayMetrics"]
