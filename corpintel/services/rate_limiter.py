# corpintel/services/rate_limiter.py
"""
In-process rate limiter for the HTTP API.

- rate_limit(key, limit, window_seconds) -> RateLimitResult
    Fixed window per key: the first hit opens a window, hits beyond `limit`
    inside it are refused until the window expires.

- client_ip(headers, fallback)
    Best client identifier from proxy headers.

Notes:
- State is per process (one worker = one limiter). Expired windows are swept at
  most once per CLEANUP_INTERVAL seconds.
"""
from __future__ import annotations
import time
import logging
import threading
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

CLEANUP_INTERVAL = 60.0


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int


@dataclass
class _Window:
    count: int
    reset_at: float


_WINDOWS: Dict[str, _Window] = {}
_LOCK = threading.Lock()
_last_cleanup = time.monotonic()


def _cleanup(now: float) -> None:
    global _last_cleanup
    if now - _last_cleanup < CLEANUP_INTERVAL:
        return
    _last_cleanup = now
    expired = [k for k, w in _WINDOWS.items() if now > w.reset_at]
    for k in expired:
        del _WINDOWS[k]
    if expired:
        logger.debug("Rate limiter: dropped %d expired windows", len(expired))


def rate_limit(key: str, limit: int, window_seconds: float) -> RateLimitResult:
    """Count one hit for `key`; allowed while the window holds <= limit hits."""
    now = time.monotonic()
    with _LOCK:
        _cleanup(now)
        window = _WINDOWS.get(key)
        if window is None or now > window.reset_at:
            _WINDOWS[key] = _Window(count=1, reset_at=now + window_seconds)
            return RateLimitResult(allowed=True, remaining=max(0, limit - 1))

        window.count += 1
        if window.count > limit:
            logger.info("Rate limit hit for %s (%d > %d)", key, window.count, limit)
            return RateLimitResult(allowed=False, remaining=0)
        return RateLimitResult(allowed=True, remaining=limit - window.count)


def reset_rate_limits() -> None:
    """Forget all windows."""
    with _LOCK:
        _WINDOWS.clear()


def client_ip(headers: Mapping[str, str], fallback: Optional[str] = None) -> str:
    forwarded = (headers.get("x-forwarded-for") or "").split(",")[0].strip()
    return forwarded or headers.get("x-real-ip") or fallback or "unknown"
