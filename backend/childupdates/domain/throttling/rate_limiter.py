"""
In-memory request counter; each key gets a window that opens on its first request.

Counters live in this process only: N service instances allow up to N times the
configured limit. Construct one limiter at start-up, pass it to whoever needs it,
and ``close()`` it on shutdown.
"""
from __future__ import annotations
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from childupdates.core.logging_setup import mask_identifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests: int
    window_seconds: float

    @classmethod
    def from_config(cls, entry: dict) -> "RateLimitConfig":
        return cls(max_requests=entry["max_requests"], window_seconds=entry["window_seconds"])


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_at: float
    retry_after: Optional[int] = None


def rate_limit_key(namespace: str, identifier: str) -> str:
    return f"{namespace}:{identifier}"


class SlidingWindowRateLimiter:
    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        cleanup_interval_seconds: float = 300,
    ):
        self._clock = clock
        self._cleanup_interval = cleanup_interval_seconds
        self._store: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._cleanup_thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Begin periodic removal of expired entries on a daemon thread."""
        if self._cleanup_thread is not None:
            return
        self._stop.clear()
        self._cleanup_thread = threading.Thread(
            target=self._cleanup_loop, name="rate-limit-cleanup", daemon=True
        )
        self._cleanup_thread.start()

    def close(self) -> None:
        self._stop.set()
        if self._cleanup_thread is not None:
            self._cleanup_thread.join(timeout=5)
            self._cleanup_thread = None
        self.clear()

    def _cleanup_loop(self) -> None:
        while not self._stop.wait(self._cleanup_interval):
            self.cleanup()

    # ------------------------------------------------------------------
    # Counting
    # ------------------------------------------------------------------
    def check(self, key: str, config: RateLimitConfig) -> RateLimitDecision:
        now = self._clock()
        with self._lock:
            entry = self._store.get(key)

            if entry is None or entry.reset_at <= now:
                reset_at = now + config.window_seconds
                self._store[key] = RateLimitEntry(count=1, reset_at=reset_at)
                return RateLimitDecision(allowed=True, remaining=config.max_requests - 1, reset_at=reset_at)

            if entry.count < config.max_requests:
                entry.count += 1
                return RateLimitDecision(
                    allowed=True,
                    remaining=config.max_requests - entry.count,
                    reset_at=entry.reset_at,
                )

            return RateLimitDecision(
                allowed=False,
                remaining=0,
                reset_at=entry.reset_at,
                retry_after=max(1, math.ceil(entry.reset_at - now)),
            )

    def reset(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def cleanup(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._store.items() if e.reset_at <= now]
            for k in expired:
                del self._store[k]
        if expired:
            logger.debug("Rate limiter cleanup: removed %d expired entries", len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._store)


def check_rate_limit(
    limiter: SlidingWindowRateLimiter,
    namespace: str,
    identifier: str,
    config: RateLimitConfig,
) -> RateLimitDecision:
    decision = limiter.check(rate_limit_key(namespace, identifier), config)
    if not decision.allowed:
        logger.warning(
            "Rate limit exceeded: namespace=%s identifier=%s retry_after=%s",
            namespace, mask_identifier(identifier), decision.retry_after,
        )
    return decision
