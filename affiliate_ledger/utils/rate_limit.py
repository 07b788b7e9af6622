"""
Request-rate tracking for abuse throttling on the public endpoints.

Fixed-window counters keyed per client IP and endpoint. This is a soft
throttle only: it is never consulted for ledger idempotency and a limiter
outage lets requests through.

Uses Redis when REDIS_URL is set so that all instances share one count,
otherwise an in-process store.
"""
import logging
import time
from abc import ABC, abstractmethod
from threading import Lock
from typing import Dict, NamedTuple, Optional, Tuple

import redis

from ..core.config import settings

logger = logging.getLogger(__name__)


class RateLimitDecision(NamedTuple):
    allowed: bool
    remaining: int
    retry_after: int


class RateLimiter(ABC):
    """Fixed-window request counter"""

    @abstractmethod
    def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitDecision:
        """Count one request for key and report whether it is within limit."""

    @abstractmethod
    def reset(self, key: Optional[str] = None) -> None:
        pass


class InMemoryRateLimiter(RateLimiter):
    """
    Per-process fixed-window limiter.

    Thread-safe. Counts are not shared between workers or instances.
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        # key -> (window_start, count)
        self._windows: Dict[str, Tuple[int, int]] = {}
        self._lock = Lock()

    def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitDecision:
        now = self._clock()
        window_start = int(now // window_seconds) * window_seconds
        retry_after = max(1, int(window_start + window_seconds - now))

        with self._lock:
            start, count = self._windows.get(key, (window_start, 0))
            if start != window_start:
                start, count = window_start, 0

            if count >= limit:
                self._windows[key] = (start, count)
                return RateLimitDecision(False, 0, retry_after)

            count += 1
            self._windows[key] = (start, count)
            self._prune(window_start)
            return RateLimitDecision(True, limit - count, retry_after)

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    def _prune(self, current_window_start: int):
        """Drop keys from earlier windows so the store doesn't grow without bound"""
        if len(self._windows) < 10000:
            return
        stale = [k for k, (start, _) in self._windows.items() if start < current_window_start]
        for k in stale:
            del self._windows[k]


class RedisRateLimiter(RateLimiter):
    """
    Shared fixed-window limiter backed by Redis INCR + EXPIRE.

    Falls back to an in-memory limiter when Redis errors.
    """

    def __init__(self, redis_client, prefix: str = "affiliate_ledger:rate"):
        self._redis = redis_client
        self._prefix = prefix
        self._memory = InMemoryRateLimiter()

    def _window_key(self, key: str, window_start: int) -> str:
        return f"{self._prefix}:{key}:{window_start}"

    def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitDecision:
        now = time.time()
        window_start = int(now // window_seconds) * window_seconds
        retry_after = max(1, int(window_start + window_seconds - now))
        redis_key = self._window_key(key, window_start)

        try:
            pipe = self._redis.pipeline()
            pipe.incr(redis_key)
            pipe.expire(redis_key, window_seconds + 1)
            count = int(pipe.execute()[0])
        except Exception as e:
            logger.warning(f"Redis rate limit check failed, using memory: {e}")
            return self._memory.hit(key, limit, window_seconds)

        if count > limit:
            return RateLimitDecision(False, 0, retry_after)
        return RateLimitDecision(True, limit - count, retry_after)

    def reset(self, key: Optional[str] = None) -> None:
        self._memory.reset(key)
        pattern = f"{self._prefix}:{key}:*" if key else f"{self._prefix}:*"
        try:
            for redis_key in self._redis.scan_iter(match=pattern):
                self._redis.delete(redis_key)
        except Exception as e:
            logger.warning(f"Redis rate limit reset failed: {e}")


# Singleton instance
_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get singleton rate limiter instance."""
    global _rate_limiter
    if _rate_limiter is None:
        if settings.redis_url:
            try:
                redis_client = redis.from_url(
                    settings.redis_url, decode_responses=True, socket_connect_timeout=3, socket_timeout=3
                )
                redis_client.ping()
                _rate_limiter = RedisRateLimiter(redis_client)
                logger.info("Rate limiter initialized with Redis")
            except Exception as e:
                logger.warning(f"Redis unavailable for rate limiting ({e}), using in-memory store")
                _rate_limiter = InMemoryRateLimiter()
        else:
            _rate_limiter = InMemoryRateLimiter()
            logger.info("Rate limiter initialized with in-memory store")
    return _rate_limiter


def set_rate_limiter(limiter: Optional[RateLimiter]) -> None:
    """Inject a limiter (tests, multi-instance wiring). None resets to the default."""
    global _rate_limiter
    _rate_limiter = limiter
