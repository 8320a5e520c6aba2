"""Service layer utilities."""

from .llm_client import GenerationService, RetryExhausted, RetryPolicy, get_default_service  # noqa: F401
from .guardrails import (  # noqa: F401
    EmptyResult,
    MalformedPayload,
    normalize_freeform_text,
    normalize_options_payload,
)
from .rate_gate import RateLimited, RequestGate, UpstashRateLimiter, build_request_gate  # noqa: F401

__all__ = [
    "GenerationService",
    "RetryExhausted",
    "RetryPolicy",
    "get_default_service",
    "EmptyResult",
    "MalformedPayload",
    "normalize_freeform_text",
    "normalize_options_payload",
    "RateLimited",
    "RequestGate",
    "UpstashRateLimiter",
    "build_request_gate",
]
