"""Rate limiting module using in-memory fixed window counters.

Enforces per-client request limits keyed by client address. Each key owns
one record holding a request count and the instant its window expires;
an expired record is treated as absent and replaced on the next request.

Fixed windows allow a burst of up to 2x the limit across a window
boundary. Counters live in process memory only: every server instance
keeps its own.

Expired records are reclaimed by a background sweep task. Decisions never
depend on the sweep having run.
"""

import asyncio
import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from lead_gateway.logging.audit import audit_event

DEFAULT_MAX_REQUESTS = 5
DEFAULT_WINDOW_MS = 60_000
DEFAULT_SWEEP_INTERVAL_MS = 5 * 60 * 1000


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass
class RateLimitRecord:
    count: int
    reset_at: float  # clock instant (ms) at which the window expires


class RateLimiter:
    """Per-key fixed window request counter.

    All store access goes through a single lock, so the check-then-increment
    in ``check_rate_limit`` is atomic for coroutines, threadpool handlers
    and the sweeper alike.
    """

    def __init__(
        self,
        sweep_interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS,
        clock: Callable[[], float] = _monotonic_ms,
    ):
        self._records: dict[str, RateLimitRecord] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._sweep_interval_ms = sweep_interval_ms
        self._sweep_task: asyncio.Task | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def check_rate_limit(
        self,
        key: str,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> bool:
        """Count a request for ``key`` and report whether it is allowed.

        Args:
            key: Client identifier, usually the IP address.
            max_requests: Requests allowed per window. ``<= 0`` denies everything.
            window_ms: Window length in milliseconds. ``<= 0`` makes every
                window expire immediately, so each call starts a new one.

        Returns:
            True if the request fits in the current window, False otherwise.
            A denied request does not consume quota.
        """
        if max_requests <= 0:
            return False

        with self._lock:
            now = self._clock()
            record = self._records.get(key)

            # No record or window expired - start a new window
            if record is None or now > record.reset_at or window_ms <= 0:
                self._records[key] = RateLimitRecord(count=1, reset_at=now + max(window_ms, 0))
                return True

            if record.count >= max_requests:
                return False

            record.count += 1
            return True

    def get_remaining_requests(self, key: str, max_requests: int = DEFAULT_MAX_REQUESTS) -> int:
        """Requests left for ``key`` in its active window (never negative)."""
        with self._lock:
            now = self._clock()
            record = self._records.get(key)
            if record is None or now > record.reset_at:
                return max(0, max_requests)
            return max(0, max_requests - record.count)

    def get_reset_time(self, key: str) -> int:
        """Milliseconds until the window for ``key`` resets, 0 if none is active."""
        with self._lock:
            now = self._clock()
            record = self._records.get(key)
            if record is None or now > record.reset_at:
                return 0
            # Still active at reset_at itself
            return max(1, math.ceil(record.reset_at - now))

    def sweep(self) -> int:
        """Drop every record whose window has expired. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, record in self._records.items() if now > record.reset_at]
            for key in expired:
                del self._records[key]
        return len(expired)

    def reset(self, key: str | None = None) -> None:
        """Clear state for one key, or for every key when ``key`` is None."""
        with self._lock:
            if key is None:
                self._records.clear()
            else:
                self._records.pop(key, None)

    # --- Background sweep ---

    @property
    def sweeping(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self.sweeping or self._sweep_interval_ms <= 0:
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop(), name="ratelimit-sweep")

    async def stop(self) -> None:
        """Cancel the sweep task and wait for it to finish."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _sweep_loop(self) -> None:
        interval = self._sweep_interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            removed = self.sweep()
            if removed:
                audit_event("Rate limit sweep", logging.DEBUG, removed=removed, tracked=len(self))
