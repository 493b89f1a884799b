"""Global and per-host rate limiting built on continuously refilled token buckets."""

from __future__ import annotations

import math
import threading
from typing import Union

from cachetools import LRUCache

from ratelimit.bucket import NS_PER_SECOND, Clock, SystemClock

Address = Union[str, tuple]

INF = math.inf


class WaitError(Exception):
    """Raised when a wait cannot be satisfied."""


class RateBucket:
    """Token bucket that refills at ``limit`` tokens per second up to ``burst``.

    A limit of ``math.inf`` allows every event. A limit of zero allows only
    the initial burst and nothing after it.
    """

    def __init__(
        self,
        limit: float,
        burst: int,
        clock: Clock | None = None,
    ) -> None:
        self.limit = float(limit)
        self.burst = burst
        self._clock = clock if clock is not None else SystemClock()
        self._lock = threading.Lock()
        self._tokens = float(max(burst, 0))
        self._last = self._clock.now()

    def _advance(self, now: int) -> float:
        last = min(self._last, now)
        elapsed = now - last
        tokens = self._tokens + (elapsed / NS_PER_SECOND) * self.limit
        return min(tokens, float(self.burst))

    def _reserve(self, n: int, max_wait: float) -> tuple[bool, int]:
        """Reserve ``n`` tokens; return whether it succeeded and the delay in ns."""
        with self._lock:
            if self.limit == INF:
                return True, 0
            if self.limit == 0:
                if self.burst >= n:
                    self.burst -= n
                    return True, 0
                return False, 0

            now = self._clock.now()
            tokens = self._advance(now) - n
            delay = 0
            if tokens < 0:
                delay = int(NS_PER_SECOND * (-tokens / self.limit))

            ok = n <= self.burst and delay <= max_wait
            if ok:
                self._last = now
                self._tokens = tokens
            return ok, delay

    def allow(self) -> bool:
        """Consume one token if one is available right now."""
        ok, _ = self._reserve(1, 0)
        return ok

    def wait(self, timeout: float | None = None) -> None:
        """Block until one token can be consumed.

        ``timeout`` is in seconds; ``None`` waits as long as needed.
        Raises WaitError if the burst is too small or the timeout would pass.
        """
        n = 1
        if n > self.burst and self.limit != INF:
            raise WaitError(
                f"rate: Wait(n={n}) exceeds limiter's burst {self.burst}"
            )
        if timeout is not None and timeout <= 0:
            raise WaitError("context deadline exceeded")

        max_wait = INF if timeout is None else timeout * NS_PER_SECOND
        ok, delay = self._reserve(n, max_wait)
        if not ok:
            raise WaitError(f"rate: Wait(n={n}) would exceed context deadline")
        if delay > 0:
            self._clock.sleep(delay)


def to_limit(rate: int) -> float:
    """Map a configured rate to a bucket limit: negative means unlimited."""
    if rate < 0:
        return INF
    if rate == 0:
        return 0.0
    return float(rate)


def _split_host_port(text: str) -> str:
    if text.startswith("["):
        end = text.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address {text!r}")
        if end + 1 >= len(text) or text[end + 1] != ":":
            raise ValueError(f"missing port in address {text!r}")
        host = text[1:end]
        if "[" in host or "]" in text[end + 1 :]:
            raise ValueError(f"unexpected bracket in address {text!r}")
        return host

    colon = text.rfind(":")
    if colon < 0:
        raise ValueError(f"missing port in address {text!r}")
    host = text[:colon]
    if ":" in host:
        raise ValueError(f"too many colons in address {text!r}")
    if "[" in text or "]" in text:
        raise ValueError(f"unexpected bracket in address {text!r}")
    return host


def host(addr: Address) -> str:
    """Return the host part of ``addr``, or the whole address if it has no port."""
    if isinstance(addr, tuple):
        return str(addr[0])
    text = str(addr)
    try:
        return _split_host_port(text)
    except ValueError:
        return text


class Limiter:
    """Rate limit events globally and per host.

    The global burst is three times the global rate and the per-host burst
    twice the per-host rate. At most ``cache_size`` per-host buckets are
    kept; the least recently used are dropped first. A negative rate means
    no limit and a zero rate allows nothing.
    """

    def __init__(
        self,
        global_rate: int,
        per_host: int,
        cache_size: int,
        clock: Clock | None = None,
    ) -> None:
        if cache_size <= 0:
            raise ValueError(
                "ratelimit: can't create LRU cache: must provide a positive size"
            )

        self._clock = clock if clock is not None else SystemClock()
        self.global_limit = to_limit(global_rate)
        self.host_limit = to_limit(per_host)
        self.host_burst = max(2 * per_host, 0)
        self.cache_size = cache_size

        self._global = RateBucket(self.global_limit, 3 * global_rate, self._clock)
        self._hosts: LRUCache = LRUCache(maxsize=cache_size)
        self._lock = threading.Lock()

    def _bucket(self, addr: Address) -> RateBucket:
        key = host(addr)
        with self._lock:
            bucket = self._hosts.get(key)
            if bucket is None:
                bucket = RateBucket(self.host_limit, self.host_burst, self._clock)
                self._hosts[key] = bucket
            return bucket

    def __len__(self) -> int:
        return len(self._hosts)

    def wait(self, timeout: float | None = None) -> None:
        """Block until the global limit permits one event."""
        self._global.wait(timeout)

    def wait_host(self, addr: Address, timeout: float | None = None) -> None:
        """Block until the per-host limit for ``addr`` permits one event."""
        self._bucket(addr).wait(timeout)

    def allow(self) -> bool:
        """Return True if the global limit permits one event now."""
        return self._global.allow()

    def allow_host(self, addr: Address) -> bool:
        """Return True if the per-host limit for ``addr`` permits one event now."""
        return self._bucket(addr).allow()

    def __str__(self) -> str:
        return (
            f"ratelimiter: Global {self.global_limit:4.2f} rps, "
            f"Per host {self.host_limit:4.2f} rps, "
            f"LRU cache {self.cache_size} entries"
        )