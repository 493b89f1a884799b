"""Token-bucket rate limiters: single buckets, per-IP limiters and global/per-host limits."""

__version__ = "0.1.0"