"""Tests for the sliding-window rate limiter."""

import asyncio

import pytest

from mediarelay.core.rate_limit import SlidingWindowRateLimiter


class FakeClock:
    """Monotonic clock that only advances when the limiter sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.mark.asyncio
async def test_acquisitions_within_limit_do_not_wait(clock):
    limiter = SlidingWindowRateLimiter(2, 1.0, clock=clock, sleep=clock.sleep)

    await limiter.acquire()
    await limiter.acquire()

    assert clock.sleeps == []
    assert limiter.in_window == 2


@pytest.mark.asyncio
async def test_acquisition_over_limit_waits_for_window(clock):
    limiter = SlidingWindowRateLimiter(2, 1.0, clock=clock, sleep=clock.sleep)

    await limiter.acquire()
    clock.now = 0.4
    await limiter.acquire()
    await limiter.acquire()

    # Oldest slot (t=0.0) frees at t=1.0
    assert clock.sleeps == [pytest.approx(0.6)]
    assert limiter.in_window == 2


@pytest.mark.asyncio
async def test_window_slides(clock):
    limiter = SlidingWindowRateLimiter(1, 1.0, clock=clock, sleep=clock.sleep)

    await limiter.acquire()
    clock.now = 1.5
    await limiter.acquire()

    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_concurrent_waiters_are_paced(clock):
    limiter = SlidingWindowRateLimiter(2, 1.0, clock=clock, sleep=clock.sleep)

    await asyncio.gather(*(limiter.acquire() for _ in range(5)))

    assert clock.now == pytest.approx(2.0)


@pytest.mark.parametrize("max_requests,window", [(0, 1.0), (1, 0), (1, -1.0)])
def test_invalid_arguments(max_requests, window):
    with pytest.raises(ValueError):
        SlidingWindowRateLimiter(max_requests, window)
