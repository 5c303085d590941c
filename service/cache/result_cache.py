"""
Single-slot, time-bounded cache for the pipeline output.

Why one slot:
  The pipeline always produces the same pair of feeds (all + normal) from the
  latest upstream snapshot, so there is nothing to key on. The TTL bounds the
  load we put on the upstream providers.

The clock is injectable so tests can step time instead of sleeping.
A threading.Lock guards the slot: FastAPI runs sync endpoints (health) in a
threadpool, so readers are not all on the event loop.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 30.0


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    expires_at: float


class ResultCache(Generic[T]):
    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entry: Optional[CacheEntry[T]] = None

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self) -> Optional[T]:
        """Return the cached value, or None once the TTL has passed."""
        with self._lock:
            entry = self._entry
        if entry is None or self._clock() >= entry.expires_at:
            return None
        return entry.value

    def set(self, value: T) -> None:
        expires_at = self._clock() + self._ttl
        with self._lock:
            self._entry = CacheEntry(value=value, expires_at=expires_at)
        logger.debug("Cache populated (ttl=%.1fs)", self._ttl)

    @property
    def last_value(self) -> Optional[T]:
        """Most recent value regardless of expiry. Only for stale fallback."""
        with self._lock:
            entry = self._entry
        return entry.value if entry is not None else None

    def expires_in(self) -> Optional[float]:
        """Seconds until expiry; None if empty, negative if already expired."""
        with self._lock:
            entry = self._entry
        if entry is None:
            return None
        return entry.expires_at - self._clock()
