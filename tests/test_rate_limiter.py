"""Tests for the per-provider minimum-interval rate limiter."""

import asyncio

import pytest

from clinical_document_processing.clients.rate_limiter import RateLimiter
from clinical_document_processing.core.exceptions import ConfigurationError


def make_limiter(clock, rpm=10):
    return RateLimiter(requests_per_minute=rpm, name="test", clock=clock, sleep=clock.sleep)


class TestRateLimiter:
    def test_first_acquire_does_not_wait(self, fake_clock):
        limiter = make_limiter(fake_clock)

        waited = asyncio.run(limiter.acquire())

        assert waited == 0.0
        assert fake_clock.sleeps == []
        assert limiter.last_permitted == 1000.0

    def test_immediate_second_acquire_waits_full_interval(self, fake_clock):
        limiter = make_limiter(fake_clock, rpm=10)

        async def scenario():
            await limiter.acquire()
            return await limiter.acquire()

        waited = asyncio.run(scenario())

        assert waited == pytest.approx(6.0)
        assert fake_clock.sleeps == [pytest.approx(6.0)]
        assert limiter.last_permitted == pytest.approx(1006.0)

    def test_partial_elapsed_time_only_waits_remainder(self, fake_clock):
        limiter = make_limiter(fake_clock, rpm=10)

        async def scenario():
            await limiter.acquire()
            fake_clock.advance(4.0)
            return await limiter.acquire()

        assert asyncio.run(scenario()) == pytest.approx(2.0)

    def test_no_wait_once_interval_has_passed(self, fake_clock):
        limiter = make_limiter(fake_clock, rpm=10)

        async def scenario():
            await limiter.acquire()
            fake_clock.advance(7.5)
            return await limiter.acquire()

        assert asyncio.run(scenario()) == 0.0
        assert fake_clock.sleeps == []

    @pytest.mark.parametrize("rpm", [1, 10, 60, 600])
    def test_consecutive_permits_are_spaced_by_min_interval(self, fake_clock, rpm):
        limiter = make_limiter(fake_clock, rpm=rpm)
        permitted = []

        async def scenario():
            for _ in range(5):
                await limiter.acquire()
                permitted.append(limiter.last_permitted)

        asyncio.run(scenario())

        gaps = [later - earlier for earlier, later in zip(permitted, permitted[1:])]
        assert all(gap >= 60.0 / rpm - 1e-9 for gap in gaps)
        assert limiter.min_interval_ms == pytest.approx(60000.0 / rpm)

    @pytest.mark.parametrize("rpm", [0, -5])
    def test_non_positive_rate_is_rejected(self, rpm):
        with pytest.raises(ConfigurationError):
            RateLimiter(requests_per_minute=rpm)
