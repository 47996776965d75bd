"""
Per-session Rate Limiting

Fixed-window request counter keyed by chat ``session_id``.

This is a per-process, best-effort limiter: counters live in memory, are
not shared between workers and are lost on restart. That is acceptable for
a soft limiter in front of the chat endpoint.

Window semantics:
-----------------
- First call for a session (or first call after its window expired):
  count = 1, window resets at now + window_seconds, allowed.
- Later calls inside the window: allowed while count < max_requests
  (count is incremented), denied once count >= max_requests.
- Expired windows are swept from allow() at most once per window, so
  memory tracks the sessions seen in roughly the last two windows.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class RateWindow:
    """Request counter for one session."""

    count: int
    reset_at: float


class RateLimiter:
    """
    In-memory fixed-window rate limiter.

    Usage:
    ------
    limiter = RateLimiter(max_requests=10)

    if not limiter.allow(session_id):
        raise RateLimitError(limiter.max_requests)

    The clock is injectable so tests can roll windows over without sleeping:

        now = [1000.0]
        limiter = RateLimiter(max_requests=2, clock=lambda: now[0])
    """

    def __init__(
        self,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests or settings.RATE_LIMIT_PER_MINUTE
        self.window_seconds = window_seconds or settings.RATE_LIMIT_WINDOW_SECONDS
        self._clock = clock
        self._windows: Dict[str, RateWindow] = {}
        self._next_sweep = clock() + self.window_seconds
        # Check-and-increment must be atomic per session key
        self._lock = threading.Lock()

    def allow(self, session_id: str) -> bool:
        """
        Charge one request to ``session_id``.

        Returns:
            True if the request is within the limit, False if it must be rejected
        """
        now = self._clock()

        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)

            window = self._windows.get(session_id)

            if window is None or now > window.reset_at:
                self._windows[session_id] = RateWindow(count=1, reset_at=now + self.window_seconds)
                return True

            if window.count >= self.max_requests:
                logger.warning(
                    f"Rate limit exceeded for session {session_id}: "
                    f"{window.count}/{self.max_requests} in {self.window_seconds}s"
                )
                return False

            window.count += 1
            return True

    def remaining(self, session_id: str) -> int:
        """Requests left in the current window."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(session_id)
            if window is None or now > window.reset_at:
                return self.max_requests
            return max(0, self.max_requests - window.count)

    def retry_after(self, session_id: str) -> int:
        """Seconds until the session's window resets (0 if not limited)."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(session_id)
            if window is None or now > window.reset_at:
                return 0
            return max(0, int(window.reset_at - now) + 1)

    def reset(self, session_id: str) -> None:
        """Forget the window for a session."""
        with self._lock:
            self._windows.pop(session_id, None)

    def prune(self) -> int:
        """Drop expired windows; returns how many were removed."""
        now = self._clock()
        with self._lock:
            return self._sweep(now)

    def _sweep(self, now: float) -> int:
        # Caller holds self._lock
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            del self._windows[key]
        self._next_sweep = now + self.window_seconds
        if expired:
            logger.debug(f"Pruned {len(expired)} expired rate-limit windows")
        return len(expired)
