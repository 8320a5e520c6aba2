"""Per-client request gate backed by an Upstash Redis sliding window."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import httpx
from upstash_ratelimit import Ratelimit, SlidingWindow
from upstash_redis import Redis
from upstash_redis.errors import UpstashError

from config import RATE_LIMIT_PER_MINUTE, RATE_LIMIT_WINDOW_S, rate_limiter_credentials
from observability.logger import get_logger
from observability.metrics import MetricsRegistry, get_registry

LOGGER = get_logger("setting_forge.rate_gate")

ANONYMOUS_IDENTITY = "anon"
KEY_PREFIX = "setting_forge:ratelimit"


class RateLimited(RuntimeError):
    """The gate denied the call for this route and client."""

    def __init__(self, route: str, identity: str) -> None:
        super().__init__(f"rate limit exceeded for {route}")
        self.route = route
        self.identity = identity


class RateLimiterError(RuntimeError):
    """The limiter backend could not produce a decision."""


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int = 0


def client_identity(forwarded_for: Optional[str]) -> str:
    value = (forwarded_for or "").strip()
    return value or ANONYMOUS_IDENTITY


class UpstashRateLimiter:
    """``limit(key)`` through ``upstash_ratelimit``'s sliding window."""

    def __init__(
        self,
        url: str,
        token: str,
        *,
        limit: int = RATE_LIMIT_PER_MINUTE,
        window_s: int = RATE_LIMIT_WINDOW_S,
        ratelimit: Optional[Any] = None,
    ) -> None:
        self._ratelimit = ratelimit or Ratelimit(
            redis=Redis(url=url, token=token),
            limiter=SlidingWindow(max_requests=max(1, int(limit)), window=max(1, int(window_s))),
            prefix=KEY_PREFIX,
        )

    def limit(self, key: str) -> RateLimitDecision:
        try:
            response = self._ratelimit.limit(key)
        except (UpstashError, httpx.HTTPError) as exc:
            raise RateLimiterError(f"limiter request failed: {exc}") from exc
        return RateLimitDecision(allowed=bool(response.allowed), remaining=max(0, int(response.remaining)))


class RequestGate:
    """Consulted before any upstream work; disabled when no limiter is configured."""

    def __init__(self, limiter: Optional[UpstashRateLimiter] = None, *, metrics: Optional[MetricsRegistry] = None) -> None:
        self._limiter = limiter
        self._metrics = metrics or get_registry()

    @property
    def enabled(self) -> bool:
        return self._limiter is not None

    def check(self, route: str, forwarded_for: Optional[str]) -> None:
        if self._limiter is None:
            return
        identity = client_identity(forwarded_for)
        try:
            decision = self._limiter.limit(f"{route}:{identity}")
        except RateLimiterError as exc:
            LOGGER.warning("rate_limit_unavailable", extra={"route": route, "error": str(exc)})
            return
        if not decision.allowed:
            self._metrics.inc("gate.denied")
            LOGGER.warning("rate_limit_denied", extra={"route": route, "identity": identity})
            raise RateLimited(route, identity)


def build_request_gate() -> RequestGate:
    url, token = rate_limiter_credentials()
    if not (url and token):
        LOGGER.info("rate_limit_disabled", extra={"reason": "UPSTASH_REDIS_REST_URL/TOKEN not set"})
        return RequestGate(None)
    return RequestGate(UpstashRateLimiter(url, token))


__all__ = [
    "ANONYMOUS_IDENTITY",
    "RateLimitDecision",
    "RateLimited",
    "RateLimiterError",
    "RequestGate",
    "UpstashRateLimiter",
    "build_request_gate",
    "client_identity",
]
