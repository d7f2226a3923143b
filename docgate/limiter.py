"""Window-based admission control for outbound API requests.

The remote service grants a fixed number of requests per time window. The
limiter hands out that many permits and a background task hard-resets the
count at the start of every window. The reset is not additive: whatever was
left over is discarded, so bursts that straddle a window boundary can reach
twice the nominal rate.
"""

import asyncio
import contextlib
import logging
from typing import Optional

from docgate.errors import Cancelled, ConfigurationError, GatewayStateError

_logger = logging.getLogger("docgate")


class RateLimiter:
    """Permits-per-window limiter shared by every caller of one gateway.

    ``available`` is only touched while holding the internal condition, or
    by ``start()`` before any caller can wait. Otherwise ``reset()`` is the
    only writer that raises it and ``acquire()`` the only writer that lowers
    it.
    """

    def __init__(self, capacity: int, window_seconds: float) -> None:
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
            raise ConfigurationError(
                "Request capacity must be a positive integer, got {!r}.".format(capacity)
            )
        if window_seconds <= 0:
            raise ConfigurationError(
                "Window duration must be positive, got {!r}.".format(window_seconds)
            )
        self.capacity = capacity
        self.window_seconds = float(window_seconds)
        self._available = capacity
        self._condition = asyncio.Condition()
        self._stopped = False
        self._reset_task: Optional["asyncio.Task[None]"] = None

    @property
    def available(self) -> int:
        return self._available

    @property
    def running(self) -> bool:
        return self._reset_task is not None and not self._reset_task.done()

    async def acquire(self, timeout: Optional[float] = None) -> None:
        """Wait for a permit and take it.

        Args:
            timeout: Seconds to wait before giving up. None waits without bound.

        Raises:
            Cancelled: If the timeout elapses before a permit frees up.
            GatewayStateError: If the limiter is stopped while waiting.
        """
        async with self._condition:
            if self._available > 0 and not self._stopped:
                self._available -= 1
                return
            try:
                await asyncio.wait_for(
                    self._condition.wait_for(
                        lambda: self._available > 0 or self._stopped
                    ),
                    timeout,
                )
            except asyncio.TimeoutError:
                raise Cancelled(
                    "No rate-limit permit became available within {}s.".format(timeout)
                ) from None
            if self._stopped:
                raise GatewayStateError("Rate limiter is stopped.")
            self._available -= 1

    async def reset(self) -> int:
        """Restore ``available`` to ``capacity`` and wake waiting callers.

        Returns:
            The number of permits released.
        """
        async with self._condition:
            released = self.capacity - self._available
            self._available = self.capacity
            if released:
                self._condition.notify_all()
        return released

    def start(self) -> None:
        """Schedule the recurring reset on the running event loop."""
        if self.running:
            return
        self._stopped = False
        self._available = self.capacity
        self._reset_task = asyncio.get_running_loop().create_task(
            self._run(), name="docgate-rate-reset"
        )
        _logger.info(
            "Rate limiter started (%d requests per %.3fs)",
            self.capacity,
            self.window_seconds,
        )

    async def stop(self) -> None:
        """Cancel the reset task and release anyone still waiting for a permit."""
        task = self._reset_task
        self._reset_task = None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        async with self._condition:
            self._stopped = True
            self._condition.notify_all()
        _logger.info("Rate limiter stopped")

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_reset = loop.time()
        while True:
            next_reset += self.window_seconds
            await asyncio.sleep(max(0.0, next_reset - loop.time()))
            await self.reset()
