"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: one lock guards the entry map; each check is a single
  read-check-increment step under that lock.
- Fixed window: a client can spend a full quota at the tail of one window and
  another full quota right after it resets (up to 2x ``max_requests`` across
  the boundary).
"""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable, Iterable

from arqsite.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitEntry,
    RateLimitPolicy,
    RateLimitResult,
)

logger = logging.getLogger(__name__)


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter keeping one fixed window per identifier in process memory.

    The window for a key opens on its first request and closes
    ``policy.window_seconds`` later. An expired entry is treated as absent and
    replaced (not merged) by the next request. Expired entries are also reaped
    by :meth:`sweep`, which a background thread can run on an interval.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize an empty limiter.

        Args:
            clock: Time source function returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, RateLimitEntry] = {}
        self._sweeper: threading.Thread | None = None
        self._stop_event = threading.Event()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_entry(self, identifier: str) -> RateLimitEntry | None:
        """Return a copy of the stored entry for ``identifier``, if any."""
        with self._lock:
            entry = self._entries.get(identifier)
            if entry is None:
                return None
            return RateLimitEntry(count=entry.count, reset_at=entry.reset_at)

    def check(self, identifier: str, policy: RateLimitPolicy) -> RateLimitResult:
        """Count one request for ``identifier`` and decide whether it may pass.

        Rejected requests do not mutate the stored entry.

        Args:
            identifier: Opaque key; empty strings are accepted as-is.
            policy: Window and quota to enforce.

        Returns:
            RateLimitResult with the decision and window metadata.
        """
        now = self._clock()

        with self._lock:
            entry = self._entries.get(identifier)

            if entry is None or entry.is_expired(now):
                entry = RateLimitEntry(count=1, reset_at=now + policy.window_seconds)
                self._entries[identifier] = entry
                return RateLimitResult(
                    success=True,
                    limit=policy.max_requests,
                    remaining=policy.max_requests - 1,
                    reset_at=entry.reset_at,
                )

            if entry.count >= policy.max_requests:
                return RateLimitResult(
                    success=False,
                    limit=policy.max_requests,
                    remaining=0,
                    reset_at=entry.reset_at,
                    retry_after=max(0, math.ceil(entry.reset_at - now)),
                )

            entry.count += 1
            return RateLimitResult(
                success=True,
                limit=policy.max_requests,
                remaining=policy.max_requests - entry.count,
                reset_at=entry.reset_at,
            )

    def collect_expired(self) -> list[str]:
        """Scan the map and return the keys whose window has closed."""
        now = self._clock()
        with self._lock:
            return [key for key, entry in self._entries.items() if entry.is_expired(now)]

    def evict_expired(self, keys: Iterable[str]) -> int:
        """Delete the given keys if they are still expired now.

        Entries refreshed since :meth:`collect_expired` ran carry a new
        ``reset_at`` and are kept.

        Returns:
            Number of entries removed.
        """
        removed = 0
        with self._lock:
            now = self._clock()
            for key in keys:
                entry = self._entries.get(key)
                if entry is not None and entry.is_expired(now):
                    del self._entries[key]
                    removed += 1
        return removed

    def sweep(self) -> int:
        """Evict every expired entry (scan, then delete if still expired)."""
        removed = self.evict_expired(self.collect_expired())
        if removed:
            logger.debug("rate_limit.swept", extra={"removed": removed})
        return removed

    def start_sweeper(self, interval_seconds: float) -> None:
        """Start a daemon thread running :meth:`sweep` every ``interval_seconds``.

        Calling it while a sweeper is already running has no effect.

        Raises:
            ValueError: If interval_seconds is not positive.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")

        if self._sweeper is not None and self._sweeper.is_alive():
            return

        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._run_sweeper,
            args=(interval_seconds,),
            name="rate-limit-sweeper",
            daemon=True,
        )
        self._sweeper.start()
        logger.info("rate_limit.sweeper_started", extra={"interval_s": interval_seconds})

    def stop_sweeper(self) -> None:
        """Signal the sweeper thread to exit and wait for it."""
        if self._sweeper is None:
            return
        self._stop_event.set()
        self._sweeper.join(timeout=5)
        self._sweeper = None
        logger.info("rate_limit.sweeper_stopped")

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def _run_sweeper(self, interval_seconds: float) -> None:
        while not self._stop_event.wait(interval_seconds):
            self.sweep()
