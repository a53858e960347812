# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Base Backend for the AI Aggregator rate limiter

This module provides the abstract class every visitor-table backend
implements. A backend owns the fixed-window counters; the RateLimiter owns
policy (rate, window, fail-open) and the sweep schedule.
"""

import abc
from dataclasses import dataclass
from typing import Any

from ..types import RateLimitDecision


@dataclass
class HealthCheckResult:
    """
    Structured health check result for backend monitoring.

    Attributes:
        healthy: Whether the backend is operational
        backend_type: Type of backend (e.g., 'redis', 'memory')
        namespace: Backend namespace
        error: Error message if unhealthy
        metadata: Additional backend-specific information
    """

    healthy: bool
    backend_type: str
    namespace: str
    error: str | None = None
    metadata: dict[str, Any] | None = None


class RateLimitBackend(abc.ABC):
    """
    Storage for per-client fixed-window counters.

    Implementations must make ``hit`` atomic per key: two concurrent hits on
    the same key can never both observe the same count.
    """

    key_ttl: float | None = None
    """Seconds after which idle visitors expire on their own, if the store does that."""

    def __init__(self, namespace: str = "ai_aggregator"):
        self.namespace = namespace

    @abc.abstractmethod
    async def hit(self, key: str, limit: int, window: float) -> RateLimitDecision:
        """
        Record one request attempt for ``key``.

        Opens a window with count 1 for an unseen key, resets the window when
        more than ``window`` seconds have elapsed since it opened, rejects
        without incrementing when the count has reached ``limit``, and
        increments otherwise.
        """

    @abc.abstractmethod
    async def sweep(self, inactive_after: float) -> int:
        """Remove keys whose window opened more than ``inactive_after`` ago.

        Returns:
            Number of keys removed.
        """

    @abc.abstractmethod
    async def tracked_count(self) -> int:
        """Number of keys currently tracked (best effort for shared stores)."""

    @abc.abstractmethod
    async def health_check(self) -> HealthCheckResult:
        """Report backend health."""

    async def reset(self, key: str | None = None) -> None:
        """Forget one key, or all keys when ``key`` is None."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release backend resources."""
        return None


__all__ = ["HealthCheckResult", "RateLimitBackend"]
