[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ratelimit"
version = "0.1.0"
description = "Token-bucket rate limiting: single buckets, per-IP limiters and combined global/per-host limits"
requires-python = ">=3.10"
keywords = ["rate limit", "token bucket", "throttling", "per-host", "lru"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "cachetools",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["ratelimit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 92
target-version = "py310"
