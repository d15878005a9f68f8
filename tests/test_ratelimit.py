"""Tests for the sliding-window RateLimiter."""

import asyncio

import pytest
from yieldsync.ratelimit import RateLimiter


def _max_in_window(times, period):
    return max(sum(1 for t in times if start <= t < start + period) for start in times)


class TestRateLimiter:
    def test_rejects_zero_budget(self):
        with pytest.raises(ValueError):
            RateLimiter(max_calls=0)

    def test_per_minute(self):
        limiter = RateLimiter.per_minute(5, name="Morpho")
        assert limiter.max_calls == 5
        assert limiter.period == 60.0
        assert limiter.name == "Morpho"

    @pytest.mark.asyncio
    async def test_calls_within_budget_do_not_wait(self, fake_clock):
        limiter = RateLimiter(3, clock=fake_clock, sleep=fake_clock.sleep)
        for _ in range(3):
            await limiter.acquire()
        assert fake_clock.sleeps == []
        assert limiter.available == 0

    @pytest.mark.asyncio
    async def test_excess_call_waits_for_oldest_to_expire(self, fake_clock):
        limiter = RateLimiter(2, clock=fake_clock, sleep=fake_clock.sleep)
        await limiter.acquire()
        fake_clock.advance(10)
        await limiter.acquire()
        await limiter.acquire()
        assert fake_clock.sleeps == [50]
        assert fake_clock.now == 1060

    @pytest.mark.asyncio
    async def test_never_exceeds_budget_in_any_window(self, fake_clock):
        limiter = RateLimiter(5, clock=fake_clock, sleep=fake_clock.sleep)
        times = []

        async def call():
            async with limiter:
                times.append(fake_clock())

        await asyncio.gather(*(call() for _ in range(23)))

        assert len(times) == 23
        assert _max_in_window(times, 60) <= 5
        # Delayed, never dropped: the last batch lands in the fifth window
        assert times[-1] - times[0] == pytest.approx(240)

    @pytest.mark.asyncio
    async def test_slots_free_up_after_period(self, fake_clock):
        limiter = RateLimiter(1, clock=fake_clock, sleep=fake_clock.sleep)
        await limiter.acquire()
        assert limiter.available == 0
        fake_clock.advance(60)
        assert limiter.available == 1
