# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Metric name constants following Prometheus naming conventions.

All metric names use the `ai_aggregator_` prefix.

Naming Conventions:
    - Counter metrics end with `_total`
    - Histogram metrics for time end with `_seconds`
    - Gauges use present-tense descriptive names

Label Best Practices:
    To prevent label cardinality explosion, use only:
    - `provider` - Provider name (categorical: openai, anthropic)
    - `operation` - Gateway operation (chat, stream, completion, embeddings, models)
    - `outcome` - success or an ErrorKind value
    - `direction` - prompt or completion

    NEVER use:
    - `client_key` - Unique per caller (unbounded, and may hold credentials!)
    - `model` - Caller-controlled string (unbounded!)
"""

METRIC_PREFIX = "ai_aggregator"
"""Prefix for all Prometheus metrics in this library."""


# =============================================================================
# Gateway Requests
# =============================================================================

REQUESTS_TOTAL = f"{METRIC_PREFIX}_requests_total"
"""Gateway calls by provider, operation and outcome."""

UPSTREAM_LATENCY_SECONDS = f"{METRIC_PREFIX}_upstream_latency_seconds"
"""Time spent waiting on a provider per call."""

RETRIES_TOTAL = f"{METRIC_PREFIX}_retries_total"
"""Upstream calls repeated after a retryable failure."""

TOKENS_TOTAL = f"{METRIC_PREFIX}_tokens_total"
"""Tokens reported by providers, by direction."""

COST_TOTAL = f"{METRIC_PREFIX}_cost_total"
"""Estimated spend in the provider's pricing currency."""


# =============================================================================
# Rate Limiting
# =============================================================================

RATE_LIMIT_DECISIONS_TOTAL = f"{METRIC_PREFIX}_rate_limit_decisions_total"
"""Admission decisions by scope and result."""

VISITORS_TRACKED = f"{METRIC_PREFIX}_visitors_tracked"
"""Client keys currently held by the limiter backend."""

SWEEP_REMOVED_TOTAL = f"{METRIC_PREFIX}_sweep_removed_total"
"""Idle visitors removed by the background sweep."""


# =============================================================================
# Streaming
# =============================================================================

STREAMS_OPENED_TOTAL = f"{METRIC_PREFIX}_streams_opened_total"
"""Upstream streams opened."""

STREAMS_CLOSED_TOTAL = f"{METRIC_PREFIX}_streams_closed_total"
"""Upstream streams closed, by how they ended."""

STREAM_BYTES_TOTAL = f"{METRIC_PREFIX}_stream_bytes_total"
"""Raw bytes forwarded from upstream streams."""


# =============================================================================
# Histogram Buckets
# =============================================================================

LATENCY_BUCKETS: list[float] = [
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
    30.0,
    60.0,
    120.0,
]
"""Upstream latency buckets in seconds. LLM calls routinely take seconds."""


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
]
