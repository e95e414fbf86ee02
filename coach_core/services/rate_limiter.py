"""Token-bucket admission control keyed by a caller-supplied string.

Each key owns an independent bucket that refills continuously (fractional
tokens) up to its capacity. The first call for a key creates a full bucket
and spends one token from it.

The bucket table lives in an explicitly owned ``BucketStore``: create one per
process and pass it to every ``TokenBucketLimiter`` that should share it. Tests
build their own isolated store. Mutation is serialized per key, so two
concurrent ``consume`` calls on the same key never both see the pre-mutation
token count, while distinct keys proceed in parallel.
"""

from __future__ import annotations

import math
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from coach_core.config import RateLimitPolicy
from coach_core.logging_config import ctx, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TokenBucket:
    tokens: float
    last_refill_ms: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after_seconds: int = 0


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class BucketStore:
    """In-memory bucket table with one lock per key.

    Locks are kept for every key ever seen, including after ``reset``, so a
    waiter never ends up on a different lock than a later caller. The lock
    table therefore grows with the number of distinct keys; keys are
    ``"<route>:<user_id>"``, bounded by the user base.
    """

    def __init__(self) -> None:
        self._buckets: dict[str, TokenBucket] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def locked(self, key: str) -> Iterator[None]:
        """Hold the key's lock for one read-modify-write cycle."""
        lock = self._lock_for(key)
        with lock:
            yield

    def get(self, key: str) -> Optional[TokenBucket]:
        return self._buckets.get(key)

    def put(self, key: str, bucket: TokenBucket) -> None:
        self._buckets[key] = bucket

    def reset(self, key: Optional[str] = None) -> None:
        """Drop one bucket, or all of them, waiting out any in-flight consume."""
        if key is None:
            with self._registry_lock:
                keys = set(self._locks) | set(self._buckets)
        else:
            keys = [key]
        for k in keys:
            with self.locked(k):
                self._buckets.pop(k, None)

    def __len__(self) -> int:
        return len(self._buckets)


class TokenBucketLimiter:
    def __init__(self, store: BucketStore, clock: Callable[[], float] = monotonic_ms):
        self.store = store
        self._clock = clock

    def consume(self, key: str, capacity: int, refill_per_second: float) -> RateLimitDecision:
        """Spend one token from ``key``'s bucket if available.

        A rejected call still commits the refill it computed, so the time
        waited so far is never lost and the retry estimate only shrinks.
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if not math.isfinite(refill_per_second) or refill_per_second <= 0:
            raise ValueError("refill_per_second must be a positive finite number")

        with self.store.locked(key):
            now = self._clock()
            existing = self.store.get(key)

            if existing is None:
                self.store.put(key, TokenBucket(tokens=float(capacity - 1), last_refill_ms=now))
                return RateLimitDecision(allowed=True)

            elapsed_seconds = max(0.0, (now - existing.last_refill_ms) / 1000.0)
            refilled = min(float(capacity), existing.tokens + elapsed_seconds * refill_per_second)

            if refilled < 1:
                missing = 1 - refilled
                retry_after = math.ceil(missing / refill_per_second)
                self.store.put(key, TokenBucket(tokens=refilled, last_refill_ms=now))
                logger.info("rate_limited", extra=ctx(key=key, retry_after_seconds=retry_after))
                return RateLimitDecision(allowed=False, retry_after_seconds=retry_after)

            self.store.put(key, TokenBucket(tokens=refilled - 1, last_refill_ms=now))
            return RateLimitDecision(allowed=True)

    def consume_policy(self, key: str, policy: RateLimitPolicy) -> RateLimitDecision:
        return self.consume(key, policy.capacity, policy.refill_per_second)
