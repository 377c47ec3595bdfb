"""
Rate Limiter - Classroom Observation Platform
app/services/rate_limiter.py

Fixed-window request counter per client identifier. Instances are created
at application startup, kept on ``app.state.rate_limiters`` and cleared at
shutdown; nothing here is module-global.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset_time: float  # epoch seconds when the current window ends


@dataclass
class _Window:
    count: int
    reset_time: float


class RateLimiter:
    """Allow at most ``max_requests`` per ``window_seconds`` per identifier."""

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 15 * 60,
        clock: Callable[[], float] = time.time,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()

    def hit(self, identifier: str) -> RateLimitResult:
        """Count one request for identifier and report whether it is allowed."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(identifier)
            if window is None or now > window.reset_time:
                window = _Window(count=1, reset_time=now + self.window_seconds)
                self._windows[identifier] = window
                return RateLimitResult(True, self.max_requests, self.max_requests - 1, window.reset_time)

            if window.count >= self.max_requests:
                return RateLimitResult(False, self.max_requests, 0, window.reset_time)

            window.count += 1
            return RateLimitResult(
                True, self.max_requests, self.max_requests - window.count, window.reset_time
            )

    def sweep(self) -> int:
        """Drop expired windows. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, w in self._windows.items() if now > w.reset_time]
            for key in expired:
                del self._windows[key]
        if expired:
            logger.debug("Swept %d expired rate-limit windows", len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)


def build_rate_limiters(limits: Dict[str, int], window_seconds: float) -> Dict[str, RateLimiter]:
    """One limiter per endpoint class, e.g. {"list": 50, "create": 10}."""
    return {
        name: RateLimiter(max_requests=max_requests, window_seconds=window_seconds)
        for name, max_requests in limits.items()
    }
