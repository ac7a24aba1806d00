"""Rate limiter interfaces and value types.

Policies are plain configuration (a window and a quota); the limiter owns the
per-key counters. Timestamps are UNIX epoch seconds as floats.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitPolicy:
    """A named quota: at most ``max_requests`` per ``window_seconds``."""

    window_seconds: float
    max_requests: int

    def __post_init__(self) -> None:
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")


@dataclass
class RateLimitEntry:
    """Counter for one key within its current window."""

    count: int
    reset_at: float

    def is_expired(self, now: float) -> bool:
        return self.reset_at < now


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        success: Whether the request is allowed to proceed.
        limit: Max requests per window for the applied policy.
        remaining: Requests left in the current window (0 when rejected).
        reset_at: UNIX epoch seconds when the current window closes.
        retry_after: Whole seconds to wait, set only on rejection.
    """

    success: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int | None = None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def check(self, identifier: str, policy: RateLimitPolicy) -> RateLimitResult:
        """Count one request for ``identifier`` against ``policy``.

        Args:
            identifier: Opaque key, usually ``"{endpoint}:{client}"``.
            policy: Window and quota to enforce.

        Returns:
            RateLimitResult describing whether the request was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def sweep(self) -> int:
        """Evict expired entries and return how many were removed."""
        raise NotImplementedError

    def start_sweeper(self, interval_seconds: float) -> None:
        """Begin periodic eviction. Backends with native TTLs need nothing."""

    def stop_sweeper(self) -> None:
        """Stop periodic eviction started by :meth:`start_sweeper`."""
