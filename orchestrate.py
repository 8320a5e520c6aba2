"""Request handlers wiring gate, cache, generation and degradation together."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from cache import ResultCache
from config import OPTIONS_CACHE_TTL_S, REQUEST_DEADLINE_S, resolve_gemini_api_key
from domain.degradation_policy import fallback_options_payload, service_unavailable_body
from domain.models import OptionsPayload
from domain.prompt_builder import build_options_prompt, build_synopsis_prompt
from llm_client import Deadline, GenerationRequest, ProviderError
from observability.logger import get_logger, log_degradation
from observability.metrics import MetricsRegistry, get_registry
from services.guardrails import (
    EmptyResult,
    MalformedPayload,
    normalize_freeform_text,
    normalize_options_payload,
)
from services.llm_client import GenerationService, RetryExhausted, get_default_service
from services.rate_gate import RateLimited, RequestGate
from validators import InvalidRequest, validate_synopsis_request

LOGGER = get_logger("setting_forge.orchestrate")

OPTIONS_ROUTE = "options"
SYNOPSIS_ROUTE = "synopsis"

CACHE_CONTROL_LONG = "s-maxage=21600, stale-while-revalidate=600"
CACHE_CONTROL_NO_STORE = "no-store"

RATE_LIMITED_BODY = {"error": "rate_limited"}
INVALID_REQUEST_BODY = {"error": "invalid_request"}


@dataclass
class HandlerResponse:
    status: int
    body: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)


def _options_response(payload: OptionsPayload, *, cacheable: bool) -> HandlerResponse:
    cache_control = CACHE_CONTROL_LONG if cacheable else CACHE_CONTROL_NO_STORE
    return HandlerResponse(200, payload.to_dict(), {"Cache-Control": cache_control})


class OptionsHandler:
    """GET /options: cached or freshly generated choices, static fallback otherwise."""

    def __init__(
        self,
        *,
        gate: RequestGate,
        cache: ResultCache[OptionsPayload],
        service: Optional[GenerationService] = None,
        deadline_s: float = REQUEST_DEADLINE_S,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self._gate = gate
        self._cache = cache
        self._service = service or get_default_service()
        self._deadline_s = deadline_s
        self._metrics = metrics or get_registry()

    def _fallback(
        self,
        reason: str,
        *,
        attempts: Optional[int] = None,
        error: Optional[BaseException] = None,
        **details: Any,
    ) -> HandlerResponse:
        self._metrics.inc("options.fallback_served")
        log_degradation(LOGGER, route=OPTIONS_ROUTE, reason=reason, attempts=attempts, error=error, **details)
        return _options_response(fallback_options_payload(), cacheable=False)

    def handle(self, forwarded_for: Optional[str]) -> HandlerResponse:
        try:
            self._gate.check(OPTIONS_ROUTE, forwarded_for)
        except RateLimited:
            return HandlerResponse(429, dict(RATE_LIMITED_BODY))

        cached = self._cache.get()
        if cached is not None:
            self._metrics.inc("options.cache_hit")
            LOGGER.info("options_cache_hit", extra={"age_s": self._cache.age()})
            return _options_response(cached, cacheable=True)

        if not resolve_gemini_api_key():
            LOGGER.warning("gemini_api_key_missing", extra={"route": OPTIONS_ROUTE})
            return self._fallback("missing_api_key")

        request = GenerationRequest(prompt=build_options_prompt(), structured=True)
        try:
            raw = self._service.generate(request, deadline=Deadline(self._deadline_s))
        except RetryExhausted as exc:
            return self._fallback("retry_exhausted", attempts=exc.attempts, error=exc.last_error)
        except ProviderError as exc:
            return self._fallback("provider_error", error=exc)

        try:
            payload = normalize_options_payload(raw)
        except MalformedPayload as exc:
            return self._fallback("malformed_payload", error=exc, raw_preview=(raw or "")[:200])
        except EmptyResult as exc:
            return self._fallback("empty_result", error=exc)

        self._cache.put(payload)
        self._metrics.inc("options.generated")
        return _options_response(payload, cacheable=True)


class SynopsisHandler:
    """POST /synopsis: validated settings in, generated prose out, 503 on exhaustion."""

    def __init__(
        self,
        *,
        gate: RequestGate,
        service: Optional[GenerationService] = None,
        deadline_s: float = REQUEST_DEADLINE_S,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self._gate = gate
        self._service = service or get_default_service()
        self._deadline_s = deadline_s
        self._metrics = metrics or get_registry()

    def handle(self, forwarded_for: Optional[str], body: Any) -> HandlerResponse:
        try:
            self._gate.check(SYNOPSIS_ROUTE, forwarded_for)
        except RateLimited:
            return HandlerResponse(429, dict(RATE_LIMITED_BODY))

        try:
            synopsis_request = validate_synopsis_request(body)
        except InvalidRequest as exc:
            LOGGER.info("synopsis_invalid_request", extra={"errors": exc.errors})
            return HandlerResponse(400, dict(INVALID_REQUEST_BODY))

        request = GenerationRequest(prompt=build_synopsis_prompt(synopsis_request), structured=False)
        try:
            raw = self._service.generate(request, deadline=Deadline(self._deadline_s))
        except (RetryExhausted, ProviderError) as exc:
            self._metrics.inc("synopsis.unavailable")
            LOGGER.error(
                "synopsis_unavailable",
                extra={
                    "attempts": getattr(exc, "attempts", None),
                    "last_error": str(getattr(exc, "last_error", exc)),
                },
            )
            return HandlerResponse(503, service_unavailable_body())

        self._metrics.inc("synopsis.generated")
        return HandlerResponse(200, {"synopsis": normalize_freeform_text(raw)})


def _mask_key(value: str) -> str:
    if not value:
        return ""
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}…{value[-4:]}"


def gather_health_status(
    *,
    gate: RequestGate,
    cache: ResultCache[OptionsPayload],
    metrics: Optional[MetricsRegistry] = None,
) -> Dict[str, Any]:
    registry = metrics or get_registry()
    api_key = resolve_gemini_api_key()
    checks: Dict[str, Dict[str, object]] = {
        "gemini_key": {
            "ok": bool(api_key),
            "message": f"key found ({_mask_key(api_key)})" if api_key else "GEMINI_API_KEY not set; options serve fallback",
        },
        "rate_limiter": {
            "ok": True,
            "enabled": gate.enabled,
            "message": "Upstash limiter configured" if gate.enabled else "rate limiting disabled",
        },
        "options_cache": {
            "ok": True,
            "fresh": cache.get() is not None,
            "age_s": cache.age(),
            "ttl_s": cache.ttl_seconds,
        },
    }
    return {
        "ok": all(bool(check.get("ok")) for check in checks.values()),
        "checks": checks,
        "metrics": registry.snapshot(),
    }


def build_options_cache() -> ResultCache[OptionsPayload]:
    return ResultCache(ttl_seconds=OPTIONS_CACHE_TTL_S)


__all__ = [
    "CACHE_CONTROL_LONG",
    "CACHE_CONTROL_NO_STORE",
    "HandlerResponse",
    "OptionsHandler",
    "SynopsisHandler",
    "build_options_cache",
    "gather_health_status",
]
