"""Centralized timeout and retry policy."""

from __future__ import annotations

import math
from typing import Any

import httpx


DEFAULT_TIMEOUT_SEC = 30

# Shared backend HTTP timeout buckets.
HTTP_CONNECT_TIMEOUT_SEC = 10.0
HTTP_WRITE_TIMEOUT_SEC = 15.0
HTTP_POOL_TIMEOUT_SEC = 5.0

# Streams may idle between frames much longer than one-shot calls.
STREAM_READ_TIMEOUT_MULTIPLIER = 3

# Retry/backoff timing defaults.
STANDARD_RETRY_ATTEMPTS = 3
RETRY_BACKOFF_INITIAL_SEC = 0.5
RETRY_BACKOFF_MAX_SEC = 8.0


def normalize_timeout(value: Any, fallback: int | float = DEFAULT_TIMEOUT_SEC) -> int | float:
    """Normalize timeout-like values to non-negative finite int/float."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        normalized = float(fallback)
    else:
        normalized = float(value)
    if not math.isfinite(normalized) or normalized < 0:
        normalized = float(fallback)
    if normalized.is_integer():
        return int(normalized)
    return normalized


def resolve_read_timeout(timeout_sec: int | float, *, stream: bool = False) -> int | float:
    """Resolve the read timeout for one request.

    Streaming requests get ``STREAM_READ_TIMEOUT_MULTIPLIER`` times the
    configured value. Zero stays zero (wait forever).
    """
    normalized = normalize_timeout(timeout_sec)
    if normalized <= 0 or not stream:
        return normalized
    scaled = float(normalized) * float(STREAM_READ_TIMEOUT_MULTIPLIER)
    if scaled.is_integer():
        return int(scaled)
    return scaled


def build_httpx_timeout(read_timeout_sec: int | float) -> httpx.Timeout | None:
    """Build httpx timeout config for backend requests."""
    timeout_sec = normalize_timeout(read_timeout_sec)
    if timeout_sec <= 0:
        return None
    return httpx.Timeout(
        connect=HTTP_CONNECT_TIMEOUT_SEC,
        read=timeout_sec,
        write=HTTP_WRITE_TIMEOUT_SEC,
        pool=HTTP_POOL_TIMEOUT_SEC,
    )
