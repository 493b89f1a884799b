"""Token-bucket rate limiter that drip-fills on every request."""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod

NS_PER_SECOND = 1_000_000_000


class Clock(ABC):
    """Timekeeper used by the limiters; times and durations are in nanoseconds."""

    @abstractmethod
    def now(self) -> int:
        """Return the current time in nanoseconds."""

    @abstractmethod
    def sleep(self, duration: int) -> None:
        """Sleep for ``duration`` nanoseconds."""


class SystemClock(Clock):
    """Clock backed by the monotonic system timer."""

    def now(self) -> int:
        return time.monotonic_ns()

    def sleep(self, duration: int) -> None:
        if duration > 0:
            time.sleep(duration / NS_PER_SECOND)


class TokenBucket:
    """Limit events to ``rate`` every ``per`` seconds, with an optional burst.

    A burst of zero means the burst equals the rate. A rate of zero means
    no limit at all. Tokens are tracked in nanoseconds so that the bucket
    refills evenly as time passes.
    """

    def __init__(
        self,
        rate: int,
        per: int,
        burst: int = 0,
        clock: Clock | None = None,
    ) -> None:
        if per == 0:
            raise ValueError("ratelimit: duration can't be zero")
        if rate < 0 or per < 0 or burst < 0:
            raise ValueError("ratelimit: rate, duration and burst must be non-negative")

        self.rate = rate
        self.per = per
        self.burst = burst or rate
        self._clock = clock if clock is not None else SystemClock()
        self._lock = threading.Lock()
        self._last = self._clock.now()

        self.cost = 0
        self.tokens = 0
        self.max_tokens = 0
        if rate > 0:
            self.cost = (per * NS_PER_SECOND) // rate
            self.tokens = self.burst * self.cost
            self.max_tokens = self.tokens

    def _refill(self) -> None:
        now = self._clock.now()
        self.tokens += max(0, now - self._last)
        self._last = now

    def reset(self) -> None:
        """Refill the bucket to its burst capacity."""
        if self.rate > 0:
            with self._lock:
                self.tokens = self.burst * self.cost
                self._last = self._clock.now()

    def maybe_take(self, n: int = 1) -> bool:
        """Take ``n`` tokens if all of them are available; report success."""
        if self.rate == 0:
            return True

        with self._lock:
            self._refill()
            if self.tokens > self.max_tokens:
                self.tokens = self.max_tokens

            want = n * self.cost
            if self.tokens >= want:
                self.tokens -= want
                return True
            return False

    def limit(self) -> bool:
        """Return True if this event exceeds the configured rate."""
        return not self.maybe_take(1)

    def wait(self, n: int = 1) -> bool:
        """Block until ``n`` tokens have been taken."""
        if self.rate == 0:
            return True

        want = n * self.cost
        while True:
            with self._lock:
                self._refill()
                if self.tokens >= want:
                    self.tokens -= want
                    return True
                # Take what is there and sleep for the remainder.
                want -= self.tokens
                self.tokens = 0
            self._clock.sleep(want)

    def __str__(self) -> str:
        return (
            f"ratelimiter({self.rate}/{self.per}s +{self.burst}): "
            f"cost/pkt: {self.cost} toks, max {self.max_tokens} toks; "
            f"avail {self.tokens} toks"
        )