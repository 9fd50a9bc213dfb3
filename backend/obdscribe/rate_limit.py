"""In-process fixed-window rate limiting.

Counters live in this process only and are never evicted, so a deployment
with more than one instance needs a shared store with expiry instead.
"""

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict

from fastapi import HTTPException, Request

from .settings import settings


@dataclass
class _Window:
    started_at: float
    count: int


class FixedWindowRateLimiter:
    """Allow ``max_requests`` per key within each ``window_seconds`` window.

    The window for a key starts at its first request and resets on the first
    request made after it has elapsed, so bursts straddling a window edge can
    reach roughly twice the threshold.
    """

    def __init__(
        self,
        *,
        max_requests: int = 20,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = Lock()

    def is_limited(self, key: str) -> bool:
        """Count one request for ``key`` and report whether it must be rejected."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now - window.started_at > self.window_seconds:
                self._windows[key] = _Window(started_at=now, count=1)
                return False
            window.count += 1
            return window.count > self.max_requests

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


generation_rate_limiter = FixedWindowRateLimiter(
    max_requests=settings.rate_limit_max_requests,
    window_seconds=settings.rate_limit_window_seconds,
)


def client_key(request: Request) -> str:
    """Key requests by peer address.

    Behind a load balancer, run uvicorn with ``--proxy-headers`` and
    ``--forwarded-allow-ips`` so the peer address is the real client taken
    from trusted proxies only. A raw ``X-Forwarded-For`` header is written by
    the client and is never used here.
    """
    if request.client is not None:
        return request.client.host
    return "unknown"


def enforce_generation_rate_limit(request: Request) -> None:
    """FastAPI dependency guarding the report generation endpoint."""
    if generation_rate_limiter.is_limited(client_key(request)):
        raise HTTPException(status_code=429, detail="Too many requests")
