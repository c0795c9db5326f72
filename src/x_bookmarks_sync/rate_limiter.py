"""Sliding-window rate limiter for the bookmarks endpoint.

X allows 180 bookmark requests per user per 15 minutes. The limiter keeps
the timestamps of recent calls and tells the caller how long to wait before
the oldest one leaves the window.
"""

import logging
import time
from collections import deque
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 180
DEFAULT_WINDOW_MS = 15 * 60 * 1000
SAFETY_MARGIN_MS = 100


def _now_ms() -> float:
    return time.time() * 1000


class RateLimiter:
    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = DEFAULT_WINDOW_MS,
        clock: Callable[[], float] = _now_ms,
    ):
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._clock = clock
        self._timestamps: deque[float] = deque()

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_ms
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    def can_proceed(self) -> bool:
        self._prune(self._clock())
        return len(self._timestamps) < self.max_requests

    def record_call(self) -> None:
        self._timestamps.append(self._clock())

    def wait_time_ms(self) -> int:
        now = self._clock()
        self._prune(now)
        if len(self._timestamps) < self.max_requests:
            return 0
        oldest = self._timestamps[0]
        return max(0, int(oldest + self.window_ms - now) + SAFETY_MARGIN_MS)

    def wait_if_needed(self) -> None:
        wait_ms = self.wait_time_ms()
        if wait_ms > 0:
            logger.info(
                "Local rate limit reached (%d calls per %ds). Sleeping %.1fs...",
                self.max_requests,
                self.window_ms // 1000,
                wait_ms / 1000,
            )
            time.sleep(wait_ms / 1000)

    @property
    def calls_in_window(self) -> int:
        self._prune(self._clock())
        return len(self._timestamps)
