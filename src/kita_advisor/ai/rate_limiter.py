import threading
from collections import deque
from collections.abc import Callable
from time import monotonic


class RateLimiter:
    """
    Sliding-window limiter over call timestamps.

    Timestamps older than ``window`` seconds are dropped lazily whenever the
    limiter is consulted. The limiter never waits; callers decide whether to
    back off or surface the rejection. One instance is meant to be shared by
    every task that talks to the same backend.
    """

    def __init__(
        self,
        max_requests: int,
        window: float,
        clock: Callable[[], float] | None = None,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window <= 0:
            raise ValueError("window must be positive")
        self.max_requests = max_requests
        self.window = window
        self._clock = clock or monotonic
        self._calls: deque[float] = deque()
        self._lock = threading.Lock()

    def _purge(self, now: float) -> None:
        """Must be called while holding _lock."""
        while self._calls and now - self._calls[0] >= self.window:
            self._calls.popleft()

    def is_allowed(self) -> bool:
        with self._lock:
            self._purge(self._clock())
            return len(self._calls) < self.max_requests

    def record_call(self) -> None:
        with self._lock:
            now = self._clock()
            self._purge(now)
            self._calls.append(now)

    def _wait_seconds(self, now: float) -> float:
        """Must be called while holding _lock, after _purge."""
        if len(self._calls) < self.max_requests:
            return 0.0
        return max(0.0, self.window - (now - self._calls[0]))

    def acquire(self) -> float:
        """
        Record a call if a slot is free and return 0. Otherwise record nothing
        and return the seconds until a slot frees up, read under the same lock.
        """
        with self._lock:
            now = self._clock()
            self._purge(now)
            if len(self._calls) < self.max_requests:
                self._calls.append(now)
                return 0.0
            return self._wait_seconds(now)

    def try_acquire(self) -> bool:
        """Check and record in one step so concurrent callers cannot oversubscribe."""
        return self.acquire() == 0.0

    def time_until_reset(self) -> float:
        """Seconds until a slot frees up; 0 when a call would be admitted now."""
        with self._lock:
            now = self._clock()
            self._purge(now)
            return self._wait_seconds(now)

    @property
    def in_flight(self) -> int:
        with self._lock:
            self._purge(self._clock())
            return len(self._calls)
