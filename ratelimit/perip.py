"""Per-source-address rate limiting over a bounded LRU cache of buckets."""

from __future__ import annotations

import threading
from typing import Union

from cachetools import LRUCache

from ratelimit.bucket import Clock, TokenBucket

Address = Union[str, tuple]


def _key(addr: Address) -> str:
    if isinstance(addr, tuple):
        host, port = addr[0], addr[1]
        if ":" in str(host):
            return f"[{host}]:{port}"
        return f"{host}:{port}"
    return str(addr)


class PerIPRateLimiter:
    """Limit each source address to ``rate`` events every ``per`` seconds.

    At most ``max_size`` addresses are remembered; the least recently used
    are forgotten first. A rate of zero means no limit.
    """

    def __init__(
        self,
        rate: int,
        per: int,
        max_size: int,
        clock: Clock | None = None,
    ) -> None:
        # Validate the parameters once by building a throwaway bucket.
        TokenBucket(rate, per, 0, clock)

        if max_size <= 0:
            raise ValueError(
                f"per-ip rate limiter needs a non-zero max size (saw {max_size})"
            )

        self.rate = rate
        self.per = per
        self.max_size = max_size
        self._clock = clock
        self._lock = threading.Lock()
        self._cache: LRUCache | None = LRUCache(maxsize=max_size) if rate > 0 else None

    def _probe(self, addr: Address) -> TokenBucket:
        key = _key(addr)
        with self._lock:
            bucket = self._cache.get(key)
            if bucket is None:
                bucket = TokenBucket(self.rate, self.per, 0, self._clock)
                self._cache[key] = bucket
            return bucket

    def __len__(self) -> int:
        return 0 if self._cache is None else len(self._cache)

    def reset(self, addr: Address) -> None:
        """Reset the limiter state for ``addr``."""
        if self._cache is None:
            return
        self._probe(addr).reset()

    def maybe_take(self, addr: Address, n: int = 1) -> bool:
        """Take ``n`` tokens for ``addr`` if all are available.

        An unlimited limiter keeps no buckets and always reports False.
        """
        if self._cache is None:
            return False
        return self._probe(addr).maybe_take(n)

    def limit(self, addr: Address) -> bool:
        """Return True if ``addr`` must be rate limited."""
        if self._cache is None:
            return False
        return self._probe(addr).limit()

    def wait(self, addr: Address, n: int = 1) -> bool:
        """Block until ``n`` tokens are available for ``addr``.

        An unlimited limiter returns False at once.
        """
        if self._cache is None:
            return False
        return self._probe(addr).wait(n)