from __future__ import annotations

import pytest

from cache.store import ResultCache
from domain.models import OptionsPayload

SIX_HOURS = 6 * 3600


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _payload(hero: str) -> OptionsPayload:
    return OptionsPayload(heroes=(hero,), stages=(), rules=(), rivals=(), bosses=())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> ResultCache[OptionsPayload]:
    return ResultCache(ttl_seconds=SIX_HOURS, clock=clock)


def test_empty_cache_returns_none(cache):
    assert cache.get() is None
    assert cache.age() is None


def test_entry_served_within_ttl(cache, clock):
    cache.put(_payload("a"))
    clock.now += SIX_HOURS - 1
    assert cache.get() == _payload("a")
    assert cache.age() == pytest.approx(SIX_HOURS - 1)


def test_entry_expires_at_ttl(cache, clock):
    cache.put(_payload("a"))
    clock.now += SIX_HOURS
    assert cache.get() is None


def test_put_replaces_previous_entry_and_resets_age(cache, clock):
    cache.put(_payload("a"))
    clock.now += SIX_HOURS - 10
    cache.put(_payload("b"))
    clock.now += 60
    assert cache.get() == _payload("b")


def test_clear_drops_entry(cache):
    cache.put(_payload("a"))
    cache.clear()
    assert cache.get() is None
