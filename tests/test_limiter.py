import math

import pytest

from ratelimit.bucket import NS_PER_SECOND, Clock
from ratelimit.limiter import (
    Limiter,
    RateBucket,
    WaitError,
    host,
    to_limit,
)


class FakeClock(Clock):
    def __init__(self) -> None:
        self.t = 5000
        self.slept = []

    def now(self) -> int:
        return self.t

    def sleep(self, duration: int) -> None:
        self.slept.append(duration)
        self.t += duration

    def advance(self, ms: int) -> None:
        self.t += ms * 1_000_000


@pytest.fixture
def clock():
    return FakeClock()


def _drain(allow, limit=1000):
    count = 0
    while count < limit and allow():
        count += 1
    return count


def test_to_limit():
    assert to_limit(-1) == math.inf
    assert to_limit(0) == 0.0
    assert to_limit(7) == 7.0


@pytest.mark.parametrize(
    "addr,expected",
    [
        ("1.2.3.4:80", "1.2.3.4"),
        ("[::1]:80", "::1"),
        ("::1", "::1"),
        ("localhost", "localhost"),
        ("example.com:", "example.com"),
        (("10.0.0.1", 9), "10.0.0.1"),
    ],
)
def test_host(addr, expected):
    assert host(addr) == expected


def test_bucket_starts_full_and_drains(clock):
    bucket = RateBucket(2, 4, clock)
    assert _drain(bucket.allow) == 4
    assert not bucket.allow()


def test_bucket_refills_over_time(clock):
    bucket = RateBucket(2, 2, clock)
    _drain(bucket.allow)
    clock.advance(500)
    assert bucket.allow()
    assert not bucket.allow()


def test_bucket_never_exceeds_burst(clock):
    bucket = RateBucket(10, 3, clock)
    clock.advance(60_000)
    assert _drain(bucket.allow) == 3


def test_bucket_infinite(clock):
    bucket = RateBucket(math.inf, 0, clock)
    assert _drain(bucket.allow, 50) == 50
    bucket.wait()
    assert clock.slept == []


def test_bucket_zero_limit_uses_burst_once(clock):
    bucket = RateBucket(0, 2, clock)
    assert _drain(bucket.allow) == 2
    clock.advance(10_000)
    assert not bucket.allow()


def test_bucket_wait_sleeps_for_refill(clock):
    bucket = RateBucket(2, 1, clock)
    assert bucket.allow()
    start = clock.now()
    bucket.wait()
    assert clock.now() - start == NS_PER_SECOND // 2


def test_bucket_wait_exceeds_burst(clock):
    bucket = RateBucket(5, 0, clock)
    with pytest.raises(WaitError):
        bucket.wait()


def test_bucket_wait_timeout_too_short(clock):
    bucket = RateBucket(1, 1, clock)
    assert bucket.allow()
    with pytest.raises(WaitError):
        bucket.wait(timeout=0.1)
    # The failed wait must not consume anything.
    clock.advance(1000)
    assert bucket.allow()


def test_bucket_wait_expired_timeout(clock):
    bucket = RateBucket(1, 1, clock)
    with pytest.raises(WaitError):
        bucket.wait(timeout=0)


def test_limiter_rejects_bad_cache_size(clock):
    with pytest.raises(ValueError):
        Limiter(10, 5, 0, clock)


def test_limiter_global_burst(clock):
    lim = Limiter(2, 1, 10, clock)
    assert _drain(lim.allow) == 3 * 2


def test_limiter_per_host_burst(clock):
    lim = Limiter(100, 3, 10, clock)
    assert _drain(lambda: lim.allow_host("1.2.3.4:80")) == 2 * 3


def test_limiter_ports_share_host(clock):
    lim = Limiter(100, 1, 10, clock)
    first = _drain(lambda: lim.allow_host("1.2.3.4:80"))
    assert first > 0
    assert not lim.allow_host("1.2.3.4:81")
    assert lim.allow_host("5.6.7.8:80")
    assert len(lim) == 2


def test_limiter_unlimited(clock):
    lim = Limiter(-1, -1, 10, clock)
    assert _drain(lim.allow, 200) == 200
    assert _drain(lambda: lim.allow_host("1.2.3.4:80"), 200) == 200


def test_limiter_zero_allows_nothing(clock):
    lim = Limiter(0, 0, 10, clock)
    assert not lim.allow()
    assert not lim.allow_host("1.2.3.4:80")
    with pytest.raises(WaitError):
        lim.wait_host("1.2.3.4:80")


def test_limiter_eviction_forgets_host(clock):
    lim = Limiter(100, 1, 1, clock)
    _drain(lambda: lim.allow_host("a:1"))
    assert not lim.allow_host("a:1")
    assert lim.allow_host("b:1")
    assert len(lim) == 1
    assert lim.allow_host("a:1")


def test_limiter_wait_host_sleeps(clock):
    lim = Limiter(100, 1, 10, clock)
    _drain(lambda: lim.allow_host("1.2.3.4:80"))
    start = clock.now()
    lim.wait_host("1.2.3.4:80")
    assert clock.now() - start == NS_PER_SECOND


def test_limiter_wait_global(clock):
    lim = Limiter(1, 1, 10, clock)
    _drain(lim.allow)
    start = clock.now()
    lim.wait()
    assert clock.now() - start == NS_PER_SECOND
    with pytest.raises(WaitError):
        lim.wait(timeout=0.5)


def test_limiter_str(clock):
    text = str(Limiter(1000, 5, 30000, clock))
    assert "LRU cache 30000 entries" in text
    assert "Global 1000.00 rps" in text
    assert "Per host 5.00 rps" in text