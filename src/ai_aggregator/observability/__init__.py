# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Observability and metrics for the AI Aggregator.

Classes:
    GatewayMetrics: Prometheus collectors plus a JSON-friendly stats snapshot.

Constants:
    All metric name constants from the constants module.
"""

from .constants import (
    COST_TOTAL,
    LATENCY_BUCKETS,
    METRIC_PREFIX,
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
from .metrics import GatewayMetrics

__all__ = [
    "COST_TOTAL",
    "LATENCY_BUCKETS",
    "METRIC_PREFIX",
    "RATE_LIMIT_DECISIONS_TOTAL",
    "REQUESTS_TOTAL",
    "RETRIES_TOTAL",
    "STREAMS_CLOSED_TOTAL",
    "STREAMS_OPENED_TOTAL",
    "STREAM_BYTES_TOTAL",
    "SWEEP_REMOVED_TOTAL",
    "TOKENS_TOTAL",
    "UPSTREAM_LATENCY_SECONDS",
    "VISITORS_TRACKED",
    "GatewayMetrics",
]
