"""
Sliding-window attempt limiter for the authentication endpoints.

Every attempt counts, successful or not, and a rejected attempt is
turned away before any credential check happens.
"""

import math
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

from fastapi import Request

from taskhub.errors import RateLimitedError


class RateLimiter:
    """At most ``max_attempts`` per ``window_seconds`` for each key."""

    def __init__(
        self,
        max_attempts: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._attempts: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        """Number of keys currently tracked."""
        with self._lock:
            return len(self._attempts)

    def _sweep(self, now: float, cutoff: float) -> None:
        # caller holds the lock; forget keys whose attempts all expired
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        stale = [key for key, attempts in self._attempts.items() if not attempts or attempts[-1] <= cutoff]
        for key in stale:
            del self._attempts[key]

    def hit(self, key: str) -> Optional[float]:
        """
        Register an attempt.

        Returns None when allowed, otherwise the seconds until the
        oldest counted attempt leaves the window.
        """
        now = self._clock()
        cutoff = now - self.window_seconds
        with self._lock:
            self._sweep(now, cutoff)
            attempts = self._attempts.setdefault(key, deque())
            while attempts and attempts[0] <= cutoff:
                attempts.popleft()
            if len(attempts) >= self.max_attempts:
                return max(attempts[0] + self.window_seconds - now, 0.0)
            attempts.append(now)
            return None

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._attempts.clear()
            else:
                self._attempts.pop(key, None)


def client_key(request: Request) -> str:
    host = request.client.host if request.client else "unknown"
    return f"{host}:{request.url.path}"


async def enforce_auth_rate_limit(request: Request) -> None:
    """Dependency for login/register routes."""
    limiter: Optional[RateLimiter] = getattr(request.app.state, "auth_rate_limiter", None)
    if limiter is None:
        return
    retry_after = limiter.hit(client_key(request))
    if retry_after is not None:
        raise RateLimitedError(
            "Too many authentication attempts. Please try again later.",
            headers={"Retry-After": str(max(1, math.ceil(retry_after)))},
        )
