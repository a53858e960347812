# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Per-client fixed-window rate limiter.

The limiter is an explicit object handed to the gateway; there is no
process-wide instance. It owns policy (rate, window, fail-open) and the
background sweep, and delegates counter storage to a RateLimitBackend.
"""

import asyncio
import contextlib
import logging
from types import TracebackType

from typing_extensions import Self

from ..backends.base import RateLimitBackend
from ..backends.memory import MemoryBackend
from ..config import RateLimiterConfig
from ..observability.metrics import GatewayMetrics
from ..types import RateLimitDecision

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Admit at most ``config.rate`` requests per client per window.

    Within a window the first ``rate`` calls for a key are admitted and the
    rest rejected; rejected calls do not count. A window resets once more
    than ``window_seconds`` have elapsed since it opened, so a client can
    see up to twice the rate across a window boundary.

    Example:
        async with RateLimiter(RateLimiterConfig(rate=100)) as limiter:
            if not await limiter.allow(client_key):
                ...
    """

    def __init__(
        self,
        config: RateLimiterConfig | None = None,
        backend: RateLimitBackend | None = None,
        metrics: GatewayMetrics | None = None,
    ) -> None:
        self.config = config or RateLimiterConfig()
        self.backend = backend if backend is not None else MemoryBackend()
        self.metrics = metrics
        self._sweep_task: asyncio.Task[None] | None = None
        self._running = False

        key_ttl = self.backend.key_ttl
        inactive_after = self.config.inactive_after_seconds
        if key_ttl is not None and key_ttl != inactive_after:
            logger.warning(
                f"{type(self.backend).__name__} expires visitors after {key_ttl:g}s "
                f"but inactive_after_seconds is {inactive_after:g}s; the backend "
                f"setting wins"
            )

    async def check(self, key: str) -> RateLimitDecision:
        """
        Run one admission check and return the full decision.

        Never raises for backend failures: they are logged and resolved by
        ``config.fail_open``.
        """
        try:
            decision = await self.backend.hit(
                key, self.config.rate, self.config.window_seconds
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            fail_open = self.config.fail_open
            logger.warning(
                f"Rate limiter backend failed ({type(e).__name__}: {e}); "
                f"{'admitting' if fail_open else 'rejecting'} request"
            )
            if self.metrics is not None:
                self.metrics.record_rate_limit("client", "error")
            return RateLimitDecision(
                allowed=fail_open,
                key=key,
                count=0,
                limit=self.config.rate,
                retry_after=0.0 if fail_open else self.config.window_seconds,
            )

        if self.metrics is not None:
            self.metrics.record_rate_limit(
                "client", "allowed" if decision.allowed else "rejected"
            )
        return decision

    async def allow(self, key: str) -> bool:
        """Return True if the request for ``key`` is admitted."""
        decision = await self.check(key)
        return decision.allowed

    async def sweep(self) -> int:
        """Remove visitors idle longer than ``inactive_after_seconds``."""
        removed = await self.backend.sweep(self.config.inactive_after_seconds)
        if self.metrics is not None:
            self.metrics.record_sweep(removed)
            self.metrics.set_visitors(await self.backend.tracked_count())
        return removed

    async def tracked_count(self) -> int:
        return await self.backend.tracked_count()

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """
        Start the background sweep task.

        Calling start() on a running limiter is a no-op.
        """
        if self._running:
            return

        self._running = True
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.info("RateLimiter sweep task started")

    async def stop(self) -> None:
        """
        Stop the background sweep task and wait for it to finish.
        """
        self._running = False
        if self._sweep_task:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None
            logger.info("RateLimiter sweep task stopped")

    async def close(self) -> None:
        """Stop sweeping and release the backend."""
        await self.stop()
        await self.backend.close()

    async def _sweep_loop(self) -> None:
        """
        Background task that periodically removes idle visitors.

        A failing sweep is logged and retried on the next interval.
        """
        while self._running:
            try:
                await asyncio.sleep(self.config.sweep_interval_seconds)
                removed = await self.sweep()
                logger.debug(f"Sweep removed {removed} visitor(s)")
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in sweep loop: {e}", exc_info=True)

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()


__all__ = ["RateLimiter"]
