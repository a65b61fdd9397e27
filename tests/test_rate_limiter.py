"""Tests for the shared throttle and retry policy."""
import asyncio
import time

import pytest

from oraclemint.services.rate_limiter import RateLimiter, RetryPolicy


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def test_retry_policy_backs_off_linearly():
    policy = RetryPolicy(max_attempts=3, base_delay=1.5)

    assert [policy.delay_for(attempt) for attempt in (1, 2, 3)] == [1.5, 3.0, 4.5]


@pytest.mark.asyncio
async def test_first_request_departs_immediately():
    clock = FakeClock()
    limiter = RateLimiter(min_interval=0.1, clock=clock, sleep=clock.sleep)

    await limiter.throttle()

    assert clock.sleeps == []
    assert limiter.last_request == 100.0


@pytest.mark.asyncio
async def test_back_to_back_requests_wait_out_the_interval():
    clock = FakeClock()
    limiter = RateLimiter(min_interval=0.1, clock=clock, sleep=clock.sleep)

    await limiter.throttle()
    clock.now += 0.04
    await limiter.throttle()

    assert clock.sleeps == [pytest.approx(0.06)]
    assert limiter.last_request == pytest.approx(100.1)


@pytest.mark.asyncio
async def test_no_wait_once_interval_has_passed():
    clock = FakeClock()
    limiter = RateLimiter(min_interval=0.1, clock=clock, sleep=clock.sleep)

    await limiter.throttle()
    clock.now += 0.5
    await limiter.throttle()

    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_concurrent_callers_are_spaced_by_min_interval():
    limiter = RateLimiter(min_interval=0.05)
    departures = []

    async def call():
        await limiter.throttle()
        departures.append(time.monotonic())

    started = time.monotonic()
    await asyncio.gather(*(call() for _ in range(5)))

    departures.sort()
    assert departures[-1] - started >= 4 * 0.05 - 0.005
    gaps = [later - earlier for earlier, later in zip(departures, departures[1:])]
    assert all(gap >= 0.05 - 0.005 for gap in gaps)
