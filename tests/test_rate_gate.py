from __future__ import annotations

from types import SimpleNamespace

import httpx
import pytest
from upstash_redis.errors import UpstashError

from observability.metrics import MetricsRegistry
from services.rate_gate import (
    RateLimitDecision,
    RateLimited,
    RateLimiterError,
    RequestGate,
    UpstashRateLimiter,
    build_request_gate,
    client_identity,
)


class FakeLimiter:
    def __init__(self, decision=None, error=None):
        self.decision = decision or RateLimitDecision(allowed=True, remaining=29)
        self.error = error
        self.keys = []

    def limit(self, key):
        self.keys.append(key)
        if self.error is not None:
            raise self.error
        return self.decision


class FakeRatelimit:
    """Stands in for ``upstash_ratelimit.Ratelimit``."""

    def __init__(self, outcome):
        self.outcome = outcome
        self.identifiers = []

    def limit(self, identifier):
        self.identifiers.append(identifier)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def _upstash(outcome):
    ratelimit = FakeRatelimit(outcome)
    limiter = UpstashRateLimiter("https://example.upstash.io", "secret-token", ratelimit=ratelimit)
    return limiter, ratelimit


@pytest.mark.parametrize(
    "header,expected",
    [(None, "anon"), ("", "anon"), ("   ", "anon"), ("203.0.113.7", "203.0.113.7")],
)
def test_client_identity(header, expected):
    assert client_identity(header) == expected


def test_gate_without_limiter_allows_everything():
    gate = RequestGate(None, metrics=MetricsRegistry())
    assert gate.enabled is False
    gate.check("options", "203.0.113.7")


def test_gate_keys_by_route_and_identity():
    limiter = FakeLimiter()
    gate = RequestGate(limiter, metrics=MetricsRegistry())
    gate.check("options", "203.0.113.7")
    gate.check("synopsis", None)
    assert limiter.keys == ["options:203.0.113.7", "synopsis:anon"]


def test_gate_denial_raises_rate_limited():
    metrics = MetricsRegistry()
    gate = RequestGate(FakeLimiter(RateLimitDecision(allowed=False)), metrics=metrics)
    with pytest.raises(RateLimited) as excinfo:
        gate.check("synopsis", "198.51.100.1")
    assert excinfo.value.route == "synopsis"
    assert excinfo.value.identity == "198.51.100.1"
    assert metrics.snapshot()["gate.denied"] == 1


def test_gate_fails_open_when_limiter_errors():
    gate = RequestGate(FakeLimiter(error=RateLimiterError("down")), metrics=MetricsRegistry())
    gate.check("options", None)


def test_upstash_limiter_allows_and_reports_remaining():
    limiter, ratelimit = _upstash(SimpleNamespace(allowed=True, limit=30, remaining=29, reset=0))

    decision = limiter.limit("options:anon")

    assert decision == RateLimitDecision(allowed=True, remaining=29)
    assert ratelimit.identifiers == ["options:anon"]


def test_upstash_limiter_denies():
    limiter, _ = _upstash(SimpleNamespace(allowed=False, limit=30, remaining=0, reset=0))
    assert limiter.limit("options:anon").allowed is False


@pytest.mark.parametrize(
    "error",
    [
        UpstashError("ERR unknown command"),
        httpx.ConnectError("boom", request=httpx.Request("POST", "https://example.upstash.io")),
    ],
)
def test_upstash_limiter_errors(error):
    limiter, _ = _upstash(error)
    with pytest.raises(RateLimiterError):
        limiter.limit("synopsis:anon")


def test_gate_fails_open_on_backend_error():
    limiter, _ = _upstash(UpstashError("unavailable"))
    gate = RequestGate(limiter, metrics=MetricsRegistry())
    gate.check("synopsis", "203.0.113.7")


def test_build_request_gate_disabled_without_credentials(monkeypatch):
    monkeypatch.delenv("UPSTASH_REDIS_REST_URL", raising=False)
    monkeypatch.delenv("UPSTASH_REDIS_REST_TOKEN", raising=False)
    monkeypatch.setattr("config.UPSTASH_REDIS_REST_URL", "")
    monkeypatch.setattr("config.UPSTASH_REDIS_REST_TOKEN", "")
    assert build_request_gate().enabled is False


def test_build_request_gate_enabled_with_credentials(monkeypatch):
    monkeypatch.setenv("UPSTASH_REDIS_REST_URL", "https://example.upstash.io")
    monkeypatch.setenv("UPSTASH_REDIS_REST_TOKEN", "secret-token")
    assert build_request_gate().enabled is True
