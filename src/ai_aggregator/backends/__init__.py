# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Visitor-table backends for the per-client rate limiter.

Available backends:
- RateLimitBackend: Abstract base class defining the backend interface
- MemoryBackend: In-memory backend for single-process gateways
- RedisBackend: Redis-based backend shared by several processes (requires redis extra)

Note: RedisBackend is lazily imported to avoid requiring the redis package
when only using MemoryBackend.
"""

from typing import TYPE_CHECKING, cast

from ai_aggregator.backends.base import HealthCheckResult, RateLimitBackend
from ai_aggregator.backends.memory import MemoryBackend

if TYPE_CHECKING:
    from ai_aggregator.backends.redis import RedisBackend

__all__ = [
    "HealthCheckResult",
    "MemoryBackend",
    "RateLimitBackend",
    "RedisBackend",
]


def __getattr__(name: str) -> type:
    """Lazy import for the optional redis backend."""
    if name == "RedisBackend":
        try:
            from ai_aggregator.backends import redis as redis_module

            return cast(type, getattr(redis_module, name))
        except ImportError as e:  # pragma: no cover
            raise ImportError(  # pragma: no cover
                f"'{name}' requires the 'redis' extra. "
                "Install with: pip install ai-aggregator[redis]"
            ) from e
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
