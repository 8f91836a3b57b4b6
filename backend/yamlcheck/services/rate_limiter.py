"""Rate limiter - fixed window counter per client, with RateLimit response headers."""

import math
import time
from typing import Callable, Optional

from pydantic import BaseModel

from yamlcheck.config import get_settings


class RateLimitStatus(BaseModel):
    """Outcome of counting one request against its window."""

    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int  # whole seconds until the window ends, at least 1
    window_seconds: int

    model_config = {"frozen": True}

    def headers(self) -> dict[str, str]:
        """IETF draft RateLimit headers, plus Retry-After once the limit is hit."""
        headers = {
            "RateLimit-Policy": f"{self.limit};w={self.window_seconds}",
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_seconds),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.reset_seconds)
        return headers


class FixedWindowRateLimiter:
    """In-memory fixed window limiter, one counter per key.

    A key's window starts with its first request and lasts window_seconds;
    at most max_requests are allowed inside it. Counters live in process
    memory, so each app instance limits independently.
    """

    def __init__(
        self,
        max_requests: Optional[int] = None,
        window_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        settings = get_settings()
        self.max_requests = max_requests or settings.RATE_LIMIT_MAX_REQUESTS
        self.window_seconds = window_seconds or settings.RATE_LIMIT_WINDOW_SECONDS
        self._clock = clock
        self._windows: dict[str, tuple[float, int]] = {}  # key → (window start, hits)

    def hit(self, key: str = "global") -> RateLimitStatus:
        """Count a request for key and report whether it may proceed."""
        now = self._clock()
        self._prune(now)

        start, hits = self._windows.get(key, (now, 0))
        hits += 1
        self._windows[key] = (start, hits)

        return RateLimitStatus(
            allowed=hits <= self.max_requests,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - hits),
            reset_seconds=max(1, math.ceil(start + self.window_seconds - now)),
            window_seconds=math.ceil(self.window_seconds),
        )

    def _prune(self, now: float) -> None:
        expired = [k for k, (start, _) in self._windows.items() if now - start >= self.window_seconds]
        for key in expired:
            del self._windows[key]
