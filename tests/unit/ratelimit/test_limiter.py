import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from ai_aggregator.backends import MemoryBackend, RateLimitBackend
from ai_aggregator.config import RateLimiterConfig
from ai_aggregator.observability import GatewayMetrics
from ai_aggregator.ratelimit import RateLimiter


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def metrics():
    return GatewayMetrics()


@pytest.fixture
def limiter(clock, metrics):
    return RateLimiter(
        RateLimiterConfig(rate=3, window_seconds=1.0),
        MemoryBackend(clock=clock),
        metrics,
    )


def mock_backend():
    backend = AsyncMock(spec=RateLimitBackend)
    backend.key_ttl = None
    return backend


def failing_backend(exc=ConnectionError("redis down")):
    backend = mock_backend()
    backend.hit.side_effect = exc
    return backend


class TestAdmission:
    @pytest.mark.asyncio
    async def test_rate_three_in_one_window(self, limiter, clock):
        results = [await limiter.allow("1.2.3.4") for _ in range(4)]
        assert results == [True, True, True, False]

        clock.now += 1.01
        assert await limiter.allow("1.2.3.4") is True

    @pytest.mark.asyncio
    async def test_check_returns_decision(self, limiter):
        for _ in range(3):
            await limiter.check("k")

        decision = await limiter.check("k")

        assert decision.allowed is False
        assert decision.limit == 3
        assert decision.remaining == 0
        assert 0 < decision.retry_after <= 1.0

    @pytest.mark.asyncio
    async def test_default_backend_is_memory(self):
        limiter = RateLimiter()
        assert isinstance(limiter.backend, MemoryBackend)
        assert limiter.config.rate == 100

    @pytest.mark.asyncio
    async def test_decisions_are_counted(self, limiter, metrics):
        for _ in range(4):
            await limiter.allow("k")

        stats = metrics.get_stats()["rate_limit_decisions"]
        assert stats == {"client:allowed": 3, "client:rejected": 1}

    @pytest.mark.asyncio
    async def test_concurrent_checks_respect_rate(self):
        limiter = RateLimiter(RateLimiterConfig(rate=5, window_seconds=60.0))
        results = await asyncio.gather(*(limiter.allow("k") for _ in range(20)))
        assert sum(results) == 5


class TestBackendFailure:
    @pytest.mark.asyncio
    async def test_fail_open(self, metrics, caplog):
        limiter = RateLimiter(RateLimiterConfig(), failing_backend(), metrics)

        decision = await limiter.check("k")

        assert decision.allowed is True
        assert "admitting request" in caplog.text
        assert metrics.get_stats()["rate_limit_decisions"] == {"client:error": 1}

    @pytest.mark.asyncio
    async def test_fail_closed(self):
        limiter = RateLimiter(RateLimiterConfig(fail_open=False), failing_backend())

        decision = await limiter.check("k")

        assert decision.allowed is False
        assert decision.retry_after == 1.0

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        limiter = RateLimiter(backend=failing_backend(asyncio.CancelledError()))
        with pytest.raises(asyncio.CancelledError):
            await limiter.check("k")


class TestSweep:
    @pytest.mark.asyncio
    async def test_sweep_updates_metrics(self, limiter, clock, metrics):
        await limiter.allow("old")
        clock.now += 400
        await limiter.allow("new")

        removed = await limiter.sweep()

        assert removed == 1
        assert await limiter.tracked_count() == 1
        stats = metrics.get_stats()
        assert stats["sweep_removed"] == 1
        assert stats["visitors_tracked"] == 1

    @pytest.mark.asyncio
    async def test_start_stop(self):
        limiter = RateLimiter()
        await limiter.start()
        assert limiter.running is True
        task = limiter._sweep_task

        await limiter.start()
        assert limiter._sweep_task is task

        await limiter.stop()
        assert limiter.running is False
        assert limiter._sweep_task is None
        assert task.done()

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        await RateLimiter().stop()

    @pytest.mark.asyncio
    async def test_background_sweep_runs(self):
        backend = mock_backend()
        backend.sweep.return_value = 0
        backend.tracked_count.return_value = 0
        config = RateLimiterConfig(
            sweep_interval_seconds=0.01, inactive_after_seconds=5.0
        )

        async with RateLimiter(config, backend):
            await asyncio.sleep(0.05)

        assert backend.sweep.await_count >= 1
        backend.sweep.assert_awaited_with(5.0)

    @pytest.mark.asyncio
    async def test_sweep_errors_do_not_kill_loop(self, caplog):
        backend = mock_backend()
        calls = []

        async def sweep(inactive_after):
            calls.append(inactive_after)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return 0

        backend.sweep.side_effect = sweep
        config = RateLimiterConfig(sweep_interval_seconds=0.01)
        limiter = RateLimiter(config, backend)

        await limiter.start()
        await asyncio.sleep(0.05)
        await limiter.stop()

        assert backend.sweep.await_count >= 2
        assert "Error in sweep loop" in caplog.text

    @pytest.mark.asyncio
    async def test_close_releases_backend(self):
        backend = mock_backend()
        limiter = RateLimiter(backend=backend)
        await limiter.start()

        await limiter.close()

        assert limiter.running is False
        backend.close.assert_awaited_once()


class TestBackendExpiry:
    def test_mismatched_expiry_logs_warning(self, caplog: pytest.LogCaptureFixture):
        from ai_aggregator.backends.redis import RedisBackend

        backend = RedisBackend(redis_client=AsyncMock(), key_ttl=120)

        with caplog.at_level(logging.WARNING):
            RateLimiter(RateLimiterConfig(inactive_after_seconds=300), backend)

        assert "expires visitors after 120s" in caplog.text
        assert "inactive_after_seconds is 300s" in caplog.text

    def test_matching_expiry_is_quiet(self, caplog: pytest.LogCaptureFixture):
        from ai_aggregator.backends.redis import RedisBackend

        backend = RedisBackend(redis_client=AsyncMock(), key_ttl=300)

        with caplog.at_level(logging.WARNING):
            RateLimiter(RateLimiterConfig(inactive_after_seconds=300), backend)

        assert caplog.text == ""

    def test_memory_backend_has_no_expiry(self, caplog: pytest.LogCaptureFixture):
        with caplog.at_level(logging.WARNING):
            RateLimiter(RateLimiterConfig(inactive_after_seconds=10), MemoryBackend())

        assert MemoryBackend().key_ttl is None
        assert caplog.text == ""
