# ratelimit

Token-bucket rate limiting for Python programs. It has three parts:

- `TokenBucket` (in `ratelimit.bucket`) allows `rate` events every `per`
  seconds, with an optional burst. It runs no timers and no background
  threads. Each request refills the bucket by the time that has passed
  since the last request. Time is counted in nanoseconds.
- `PerIPRateLimiter` (in `ratelimit.perip`) keeps one `TokenBucket` per source
  address. The buckets live in a bounded LRU cache.
- `Limiter` (in `ratelimit.limiter`) enforces one global limit in requests per
  second and a separate limit for each host. It remembers a bounded number of
  hosts.

All of them are safe to share between threads.

## Installation

```
pip install .
```

Install the test tools with `pip install .[test]` and run the tests with
`pytest`.

## A single token bucket

```python
from ratelimit.bucket import TokenBucket

# allow 1000 events every 5 seconds
bucket = TokenBucket(1000, 5)

if bucket.limit():
    drop_connection(conn)

# take several tokens at once, without blocking
if bucket.maybe_take(10):
    send_batch()

# block until 3 tokens have been taken
bucket.wait(3)

# refill the bucket to its full burst
bucket.reset()
```

- `per` of zero, or a negative `rate`, `per` or `burst`, raises `ValueError`.
- `rate` of zero means no limit. `limit()` then always returns `False`, and
  `maybe_take()` and `wait()` always return `True`.
- `burst` sets how many tokens the bucket holds when full. The bucket starts
  full. A `burst` of zero, which is the default, makes the burst equal to
  `rate`.
- `str(bucket)` describes the rate, the burst, the cost per token and the
  tokens available.

`TokenBucket` takes an optional `clock`. A clock is a subclass of
`ratelimit.bucket.Clock`. It provides `now()`, which returns the current
time in nanoseconds, and `sleep(duration)`, which sleeps for a duration in
nanoseconds. Tests can use a clock of their own to control time. The default
is `SystemClock`, which uses the monotonic system timer.

## Per-IP limits

```python
from ratelimit.perip import PerIPRateLimiter

# each address may make 10 requests every 2 seconds; track up to 5000 addresses
per_ip = PerIPRateLimiter(10, 2, 5000)

if per_ip.limit(("192.0.2.7", 51234)):
    drop_connection(conn)

per_ip.maybe_take("192.0.2.7:51234", 3)
per_ip.wait("192.0.2.7:51234", 1)
per_ip.reset("192.0.2.7:51234")
```

An address is either a `host:port` string or a `(host, port)` tuple. The whole
address, port included, is the key. A tuple and its string form, such as
`("::1", 80)` and `"[::1]:80"`, name the same entry.

Parameters that `TokenBucket` rejects raise `ValueError` here as well. So does
a `max_size` below one. When `rate` is zero the limiter keeps no buckets.
`limit()`, `maybe_take()` and `wait()` then all return `False` at once. It also
accepts an optional `clock`. `len(per_ip)` gives the number of addresses it
currently remembers.

## Global and per-host limits

```python
from ratelimit.limiter import Limiter, WaitError

# 1000 req/s globally, 5 req/s per host, remember the 30000 most recent hosts
limiter = Limiter(1000, 5, 30000)

if not limiter.allow():
    drop_connection(conn)

if not limiter.allow_host(remote_addr):
    drop_connection(conn)

try:
    limiter.wait_host(remote_addr, timeout=1.0)
except WaitError:
    drop_connection(conn)
```

- Rates are in events per second. The global burst is three times the global
  rate, and the per-host burst is twice the per-host rate.
- A negative rate allows every event. A zero rate allows nothing.
- `wait()` and `wait_host()` block until a token is free, sleeping on the
  limiter's clock. `timeout` is in seconds, and `None` waits as long as needed.
  They raise `WaitError` in three cases: the timeout is zero or negative, the
  wait would take longer than the timeout, or the burst is too small to hold
  one token.
- A `cache_size` below one raises `ValueError`.
- `len(limiter)` gives the number of hosts currently remembered.
- `str(limiter)` shows the global rate, the per-host rate and the cache size.

Hosts are identified by the host part of the address. This is the first item
of a `(host, port)` tuple, or the host of a `host:port` or `[host]:port`
string. A string that does not split into a host and a port is used whole.
`ratelimit.limiter.host()` performs this lookup. Two connections from one
machine therefore share a per-host limit.

The module also provides `RateBucket`, the bucket behind `Limiter`. It refills
at `limit` tokens per second up to `burst`, with `allow()` and
`wait(timeout)`. It also provides `to_limit()`, which turns a configured rate
into a bucket limit: a negative rate becomes `math.inf`, a zero rate becomes
`0.0`, and any other rate becomes its float value.