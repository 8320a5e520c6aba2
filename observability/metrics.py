"""In-process counters for cache, gate and fallback activity."""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict


@dataclass
class Counter:
    """Monotonically increasing counter."""

    name: str
    _value: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def inc(self, amount: int = 1) -> None:
        if amount <= 0:
            return
        with self._lock:
            self._value += amount

    def snapshot(self) -> int:
        with self._lock:
            return self._value


class MetricsRegistry:
    """Thread-safe registry storing counters by name."""

    def __init__(self) -> None:
        self._counters: Dict[str, Counter] = {}
        self._lock = threading.Lock()

    def counter(self, name: str) -> Counter:
        with self._lock:
            counter = self._counters.get(name)
            if counter is None:
                counter = Counter(name=name)
                self._counters[name] = counter
            return counter

    def inc(self, name: str, amount: int = 1) -> None:
        self.counter(name).inc(amount)

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            counters = list(self._counters.values())
        return {counter.name: counter.snapshot() for counter in counters}


_DEFAULT_REGISTRY = MetricsRegistry()


def get_registry() -> MetricsRegistry:
    return _DEFAULT_REGISTRY


__all__ = [
    "Counter",
    "MetricsRegistry",
    "get_registry",
]
