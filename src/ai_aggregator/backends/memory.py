# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
MemoryBackend for the AI Aggregator rate limiter

This module provides the in-process visitor table. It is the default backend
and is suitable for single-process gateways and for tests.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from ..types import RateLimitDecision, RateLimitVisitor
from .base import HealthCheckResult, RateLimitBackend

logger = logging.getLogger(__name__)


class MemoryBackend(RateLimitBackend):
    """
    An in-memory fixed-window visitor table.

    Key Features:
    - Pure dict-based storage keyed by client key
    - One asyncio.Lock held across each whole check-and-update and across
      the sweep, so concurrent hits never double-admit
    - Injectable monotonic clock for deterministic tests

    Note:
        This backend is NOT suitable for multi-process deployments. Each
        process would keep its own counters; use RedisBackend instead.
    """

    def __init__(
        self,
        namespace: str = "ai_aggregator",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the in-memory backend.

        Args:
            namespace: Namespace reported by health checks
            clock: Monotonic time source in seconds
        """
        super().__init__(namespace)
        self._clock = clock
        self._visitors: dict[str, RateLimitVisitor] = {}
        self._lock = asyncio.Lock()

        logger.debug(f"Initialized MemoryBackend with namespace '{namespace}'")

    async def hit(self, key: str, limit: int, window: float) -> RateLimitDecision:
        async with self._lock:
            now = self._clock()
            visitor = self._visitors.get(key)

            if visitor is None:
                self._visitors[key] = RateLimitVisitor(key, now, 1)
                return RateLimitDecision(True, key, 1, limit)

            if now - visitor.window_start > window:
                visitor.window_start = now
                visitor.count = 0

            if visitor.count >= limit:
                retry_after = max(window - (now - visitor.window_start), 0.0)
                return RateLimitDecision(
                    False, key, visitor.count, limit, retry_after=retry_after
                )

            visitor.count += 1
            return RateLimitDecision(True, key, visitor.count, limit)

    async def sweep(self, inactive_after: float) -> int:
        async with self._lock:
            cutoff = self._clock() - inactive_after
            stale = [
                key
                for key, visitor in self._visitors.items()
                if visitor.window_start < cutoff
            ]
            for key in stale:
                del self._visitors[key]
        if stale:
            logger.debug(f"Swept {len(stale)} inactive visitor(s)")
        return len(stale)

    async def tracked_count(self) -> int:
        async with self._lock:
            return len(self._visitors)

    async def get_visitor(self, key: str) -> RateLimitVisitor | None:
        """Snapshot of one visitor, for diagnostics and tests."""
        async with self._lock:
            visitor = self._visitors.get(key)
            if visitor is None:
                return None
            return RateLimitVisitor(
                visitor.client_key, visitor.window_start, visitor.count
            )

    async def reset(self, key: str | None = None) -> None:
        async with self._lock:
            if key is None:
                self._visitors.clear()
            else:
                self._visitors.pop(key, None)

    async def health_check(self) -> HealthCheckResult:
        async with self._lock:
            return HealthCheckResult(
                healthy=True,
                backend_type="memory",
                namespace=self.namespace,
                metadata={"visitors": len(self._visitors)},
            )

    async def close(self) -> None:
        await self.reset()
        logger.debug("MemoryBackend cleared")


__all__ = ["MemoryBackend"]
