"""In-process fixed-window rate limiter.

State lives in memory only and is lost on restart. One instance is owned by
the application and shared by every request handled by the event loop.
"""

import math
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, replace

import structlog

from freight_distance.config import Settings

logger = structlog.get_logger(__name__)


@dataclass
class RateLimitInfo:
    """Call budget state for one requester."""

    requester_id: str
    call_count: int
    window_start: float  # epoch seconds
    is_limited: bool


class RateLimiter:
    """Fixed-window call counter keyed by requester.

    A window opens on the first call and lasts ``window_ms``. Calls beyond
    ``max_calls`` within a window are reported as limited. Entries whose
    window opened more than two windows ago are swept at random with
    probability ``cleanup_probability`` per call.

    Usage:
        ```python
        limiter = RateLimiter.from_settings(settings)
        info = limiter.check_rate_limit("user-123")
        if info.is_limited:
            ...
        ```
    """

    def __init__(
        self,
        window_ms: int = 60_000,
        max_calls: int = 10,
        cleanup_probability: float = 0.01,
        *,
        clock: Callable[[], float] = time.time,
        rng: Callable[[], float] = random.random,
    ) -> None:
        """Initialize the limiter.

        Args:
            window_ms: Window length in milliseconds
            max_calls: Calls allowed per window
            cleanup_probability: Chance per call of sweeping stale entries
            clock: Returns the current time in seconds
            rng: Returns a float in [0, 1)
        """
        self.window_ms = window_ms
        self.max_calls = max_calls
        self.cleanup_probability = cleanup_probability
        self._clock = clock
        self._rng = rng
        self._entries: dict[str, RateLimitInfo] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimiter":
        return cls(
            window_ms=settings.rate_limit_window_ms,
            max_calls=settings.rate_limit_max_calls,
            cleanup_probability=settings.rate_limit_cleanup_probability,
        )

    @property
    def window_seconds(self) -> float:
        return self.window_ms / 1000

    @property
    def tracked_count(self) -> int:
        """Number of requesters currently held in memory."""
        return len(self._entries)

    def check_rate_limit(self, requester_id: str) -> RateLimitInfo:
        """Count one call for ``requester_id`` and report its state.

        Args:
            requester_id: Key the budget is tracked under

        Returns:
            A copy of the requester's state after counting this call
        """
        now = self._clock()
        info = self._entries.get(requester_id)

        if info is None or info.window_start < now - self.window_seconds:
            info = RateLimitInfo(
                requester_id=requester_id,
                call_count=1,
                window_start=now,
                is_limited=False,
            )
            self._entries[requester_id] = info
        else:
            info.call_count += 1
            info.is_limited = info.call_count > self.max_calls

        if self._rng() < self.cleanup_probability:
            self._cleanup(now)

        return replace(info)

    def retry_after(self, info: RateLimitInfo) -> int:
        """Whole seconds until the window of ``info`` resets (at least 1)."""
        remaining = info.window_start + self.window_seconds - self._clock()
        return max(1, math.ceil(remaining))

    def reset(self) -> None:
        """Forget every tracked requester."""
        self._entries.clear()

    def _cleanup(self, now: float) -> None:
        expired_before = now - 2 * self.window_seconds
        expired = [
            requester_id
            for requester_id, info in self._entries.items()
            if info.window_start < expired_before
        ]
        for requester_id in expired:
            del self._entries[requester_id]

        logger.debug(
            "rate_limit_cleanup",
            removed=len(expired),
            tracked=len(self._entries),
        )
