"""Sliding-window rate limiter keyed by actor identity."""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable

from carik.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    retry_after: float = 0.0

    def __bool__(self) -> bool:
        return self.allowed


class RateLimiter:
    """Counts requests per key within a trailing window.

    A single lock covers prune, compare and append, so concurrent checks
    for one key behave as if they ran one after another. Rejected
    requests are not recorded.
    """

    def __init__(
        self,
        max_requests: int,
        window: float,
        clock: Callable[[], float] = time.monotonic,
        sweep_every: int = 256,
    ) -> None:
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window <= 0:
            raise ValueError("window must be positive")
        self._max_requests = max_requests
        self._window = float(window)
        self._clock = clock
        self._lock = threading.Lock()
        self._requests: dict[str, deque[float]] = {}
        # Idle keys are swept every sweep_every checks
        self._sweep_every = max(1, sweep_every)
        self._checks = 0

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window(self) -> float:
        return self._window

    def _prune(self, times: deque[float], now: float) -> None:
        while times and now - times[0] >= self._window:
            times.popleft()

    def _sweep(self, now: float) -> None:
        for key in list(self._requests):
            times = self._requests[key]
            self._prune(times, now)
            if not times:
                del self._requests[key]

    def check(self, key: str) -> RateDecision:
        with self._lock:
            now = self._clock()
            self._checks += 1
            if self._checks % self._sweep_every == 0:
                self._sweep(now)

            times = self._requests.get(key)
            if times is not None:
                self._prune(times, now)
                if not times:
                    del self._requests[key]
                    times = None

            if times is not None and len(times) >= self._max_requests:
                retry_after = max(0.0, self._window - (now - times[0]))
                log.warning("rate_limit_exceeded", key=key, retry_after=round(retry_after, 3))
                return RateDecision(allowed=False, retry_after=retry_after)

            if times is None:
                times = self._requests[key] = deque()
            times.append(now)
            return RateDecision(allowed=True)

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._requests.clear()
            else:
                self._requests.pop(key, None)

    def count(self, key: str) -> int:
        """Recorded requests for key still inside the window."""
        with self._lock:
            now = self._clock()
            return sum(1 for t in self._requests.get(key, ()) if now - t < self._window)

    def tracked_keys(self) -> int:
        """Number of keys currently held in memory."""
        with self._lock:
            return len(self._requests)
