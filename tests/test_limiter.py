"""Tests for the window-based rate limiter."""

import asyncio

import pytest

from docgate.errors import Cancelled, ConfigurationError, GatewayStateError
from docgate.limiter import RateLimiter


@pytest.mark.parametrize("capacity", [0, -1, True, 2.5])
def test_rejects_non_positive_capacity(capacity: object) -> None:
    """Capacity must be a positive integer."""
    with pytest.raises(ConfigurationError, match="positive integer"):
        RateLimiter(capacity=capacity, window_seconds=1.0)  # type: ignore[arg-type]


def test_rejects_non_positive_window() -> None:
    with pytest.raises(ConfigurationError, match="Window duration"):
        RateLimiter(capacity=1, window_seconds=0)


@pytest.mark.asyncio
async def test_allows_requests_within_capacity() -> None:
    """Up to capacity acquires succeed without waiting."""
    limiter = RateLimiter(capacity=3, window_seconds=60.0)
    for _ in range(3):
        await limiter.acquire(timeout=0.1)
    assert limiter.available == 0


@pytest.mark.asyncio
async def test_exhausted_window_times_out() -> None:
    """Once permits run out, a bounded acquire raises Cancelled."""
    limiter = RateLimiter(capacity=1, window_seconds=60.0)
    await limiter.acquire()

    with pytest.raises(Cancelled, match="No rate-limit permit"):
        await limiter.acquire(timeout=0.05)
    assert limiter.available == 0


@pytest.mark.asyncio
async def test_reset_is_hard_not_additive() -> None:
    """Reset restores exactly capacity, never more, whatever is left over."""
    limiter = RateLimiter(capacity=4, window_seconds=60.0)
    await limiter.acquire()

    released = await limiter.reset()
    assert released == 1
    assert limiter.available == 4

    released = await limiter.reset()
    assert released == 0
    assert limiter.available == 4


@pytest.mark.asyncio
async def test_admissions_between_resets_never_exceed_capacity() -> None:
    """Waiters are admitted at most capacity per window, 2C across two windows."""
    limiter = RateLimiter(capacity=3, window_seconds=60.0)
    admitted = []

    async def worker(i: int) -> None:
        await limiter.acquire()
        admitted.append(i)

    tasks = [asyncio.create_task(worker(i)) for i in range(10)]
    await asyncio.sleep(0.01)
    assert len(admitted) == 3

    await limiter.reset()
    await asyncio.sleep(0.01)
    assert len(admitted) == 6
    assert limiter.available == 0

    await limiter.reset()
    await limiter.reset()  # back-to-back resets do not stack permits
    await asyncio.sleep(0.01)
    assert len(admitted) == 9

    await limiter.stop()
    results = await asyncio.gather(*tasks, return_exceptions=True)
    assert sum(isinstance(r, GatewayStateError) for r in results) == 1


@pytest.mark.asyncio
async def test_background_reset_admits_next_window() -> None:
    """The scheduled reset lets blocked callers through one window later."""
    limiter = RateLimiter(capacity=2, window_seconds=0.2)
    limiter.start()
    try:
        loop = asyncio.get_running_loop()
        start = loop.time()
        await asyncio.gather(*(limiter.acquire(timeout=2.0) for _ in range(5)))
        elapsed = loop.time() - start
    finally:
        await limiter.stop()

    # 2 now, 2 after one window, 1 after two windows.
    assert elapsed >= 0.3
    assert elapsed < 2.0


@pytest.mark.asyncio
async def test_start_and_stop() -> None:
    limiter = RateLimiter(capacity=1, window_seconds=0.5)
    assert not limiter.running

    limiter.start()
    assert limiter.running

    await limiter.stop()
    assert not limiter.running

    with pytest.raises(GatewayStateError):
        await limiter.acquire()


@pytest.mark.asyncio
async def test_stop_releases_waiters() -> None:
    """Callers blocked on an exhausted window are not left hanging on stop."""
    limiter = RateLimiter(capacity=1, window_seconds=60.0)
    await limiter.acquire()
    waiter = asyncio.create_task(limiter.acquire())
    await asyncio.sleep(0.01)

    await limiter.stop()
    with pytest.raises(GatewayStateError, match="stopped"):
        await waiter


@pytest.mark.asyncio
async def test_restart_refills_window() -> None:
    """Starting again after stop resets the schedule and the permit count."""
    limiter = RateLimiter(capacity=2, window_seconds=60.0)
    limiter.start()
    await limiter.acquire()
    await limiter.acquire()
    await limiter.stop()

    limiter.start()
    try:
        await asyncio.sleep(0.01)
        assert limiter.available == 2
        await limiter.acquire(timeout=0.1)
    finally:
        await limiter.stop()


@pytest.mark.asyncio
async def test_zero_timeout_takes_free_permit() -> None:
    """A zero timeout still succeeds when the window has capacity left."""
    limiter = RateLimiter(capacity=3, window_seconds=60.0)

    await limiter.acquire(timeout=0)
    assert limiter.available == 2


@pytest.mark.asyncio
async def test_zero_timeout_on_exhausted_window() -> None:
    limiter = RateLimiter(capacity=1, window_seconds=60.0)
    await limiter.acquire(timeout=0)

    with pytest.raises(Cancelled):
        await limiter.acquire(timeout=0)
