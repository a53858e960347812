# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
RedisBackend for the AI Aggregator rate limiter

This module provides a shared visitor table so several gateway processes
enforce one per-client budget. The fixed-window check runs atomically in a
Lua script; visitor keys expire on their own after the inactivity threshold,
so the periodic sweep has nothing to do.

Requires the ``redis`` extra.
"""

import logging
from pathlib import Path
from typing import Any, ClassVar

from redis.asyncio import Redis
from redis.exceptions import NoScriptError, RedisError

from ..types import RateLimitDecision
from .base import HealthCheckResult, RateLimitBackend

logger = logging.getLogger(__name__)


class RedisBackend(RateLimitBackend):
    """
    Distributed fixed-window visitor table backed by Redis.

    Each client key is stored as a hash ``{namespace}:visitor:{key}`` with
    fields ``window_start`` (server milliseconds) and ``count``. The key TTL
    is reset whenever a window (re)opens, so a client idle for longer than
    ``key_ttl`` seconds disappears without a sweep.

    Redis errors propagate as ``redis.exceptions.RedisError``; the
    RateLimiter decides whether to fail open or closed.
    """

    _lua_scripts: ClassVar[dict[str, str]] = {}

    SCRIPT_NAME = "fixed_window"

    @classmethod
    def _load_lua_scripts(cls) -> None:
        """Load Lua scripts from files at class level."""
        if cls._lua_scripts:
            return

        script_path = Path(__file__).parent / "lua" / f"{cls.SCRIPT_NAME}.lua"
        cls._lua_scripts[cls.SCRIPT_NAME] = script_path.read_text(encoding="utf-8")

    def __init__(
        self,
        redis_client: Any | None = None,
        *,
        redis_url: str | None = None,
        namespace: str = "ai_aggregator",
        key_ttl: float = 300.0,
    ) -> None:
        """
        Initialize the Redis backend.

        Args:
            redis_client: Existing ``redis.asyncio.Redis`` client. Takes
                precedence over ``redis_url``.
            redis_url: URL used to create a client lazily on first use
            namespace: Key prefix for isolation between deployments
            key_ttl: Inactivity threshold in seconds; should match
                ``RateLimiterConfig.inactive_after_seconds``
        """
        super().__init__(namespace)
        if redis_client is None and redis_url is None:
            raise ValueError("Either redis_client or redis_url is required")
        if key_ttl <= 0:
            raise ValueError("key_ttl must be positive")
        self.redis_url = redis_url
        self.key_ttl = key_ttl
        self._redis: Any | None = redis_client
        self._owns_client = redis_client is None
        self._script_shas: dict[str, str] = {}

    @classmethod
    def from_url(cls, redis_url: str, **kwargs: Any) -> "RedisBackend":
        return cls(redis_url=redis_url, **kwargs)

    def _visitor_key(self, key: str) -> str:
        return f"{self.namespace}:visitor:{key}"

    async def _get_redis(self) -> Any:
        if self._redis is None:
            logger.info("Creating Redis client for rate limiter backend")
            self._redis = Redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        return self._redis

    async def _load_scripts(self) -> None:
        """Load Lua scripts into Redis."""
        redis_client = await self._get_redis()
        self.__class__._load_lua_scripts()
        for script_name, script_source in self._lua_scripts.items():
            self._script_shas[script_name] = await redis_client.script_load(
                script_source
            )

    async def _evalsha_with_reload(self, num_keys: int, *args: Any) -> Any:
        """
        Execute EVALSHA, reloading the script once on NoScriptError.

        Redis drops cached scripts on restart or failover.
        """
        redis_client = await self._get_redis()
        script_sha = self._script_shas.get(self.SCRIPT_NAME)
        if not script_sha:
            await self._load_scripts()
            script_sha = self._script_shas[self.SCRIPT_NAME]

        try:
            return await redis_client.evalsha(script_sha, num_keys, *args)
        except NoScriptError:
            logger.warning(
                f"Script '{self.SCRIPT_NAME}' not found in Redis (SHA: {script_sha}). "
                f"Reloading Lua scripts..."
            )
            self._script_shas.clear()
            await self._load_scripts()
            new_sha = self._script_shas[self.SCRIPT_NAME]
            return await redis_client.evalsha(new_sha, num_keys, *args)

    async def hit(self, key: str, limit: int, window: float) -> RateLimitDecision:
        result = await self._evalsha_with_reload(
            1,
            self._visitor_key(key),
            limit,
            int(window * 1000),
            int(self.key_ttl * 1000),
        )
        allowed, count, retry_after_ms = (int(v) for v in result)
        return RateLimitDecision(
            allowed=bool(allowed),
            key=key,
            count=count,
            limit=limit,
            retry_after=retry_after_ms / 1000,
        )

    async def sweep(self, inactive_after: float) -> int:
        # Keys expire server-side after key_ttl.
        return 0

    async def tracked_count(self) -> int:
        redis_client = await self._get_redis()
        count = 0
        async for _ in redis_client.scan_iter(match=f"{self.namespace}:visitor:*"):
            count += 1
        return count

    async def reset(self, key: str | None = None) -> None:
        redis_client = await self._get_redis()
        if key is not None:
            await redis_client.delete(self._visitor_key(key))
            return
        pattern = f"{self.namespace}:visitor:*"
        keys = [k async for k in redis_client.scan_iter(match=pattern)]
        if keys:
            await redis_client.delete(*keys)

    async def health_check(self) -> HealthCheckResult:
        try:
            redis_client = await self._get_redis()
            await redis_client.ping()
        except (RedisError, OSError) as e:
            return HealthCheckResult(
                healthy=False,
                backend_type="redis",
                namespace=self.namespace,
                error=str(e),
            )
        return HealthCheckResult(
            healthy=True,
            backend_type="redis",
            namespace=self.namespace,
            metadata={"scripts_loaded": sorted(self._script_shas)},
        )

    async def close(self) -> None:
        if self._redis is not None and self._owns_client:
            await self._redis.aclose()
            self._redis = None
            logger.info("Closed Redis client for rate limiter backend")


__all__ = ["RedisBackend"]
