"""Single-slot in-memory result cache with TTL semantics."""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class _CacheEntry(Generic[T]):
    payload: T
    stored_at: float


class ResultCache(Generic[T]):
    """Holds the last successful result for ``ttl_seconds``.

    The slot is replaced by a single reference assignment, so concurrent
    writers resolve as last-writer-wins. Expiry is passive: stale entries are
    simply not returned."""

    def __init__(self, *, ttl_seconds: float, clock: Callable[[], float] = time.time) -> None:
        self._ttl_seconds = max(0.0, float(ttl_seconds))
        self._clock = clock
        self._entry: Optional[_CacheEntry[T]] = None

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def get(self) -> Optional[T]:
        entry = self._entry
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self._ttl_seconds:
            return None
        return entry.payload

    def put(self, payload: T) -> None:
        self._entry = _CacheEntry(payload=payload, stored_at=self._clock())

    def age(self) -> Optional[float]:
        entry = self._entry
        if entry is None:
            return None
        return max(0.0, self._clock() - entry.stored_at)

    def clear(self) -> None:
        self._entry = None
