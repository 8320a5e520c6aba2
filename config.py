# -*- coding: utf-8 -*-

import os


def _env_int(name: str, default: int) -> int:
    value = str(os.getenv(name, "")).strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = str(os.getenv(name, "")).strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_str(name: str, default: str = "") -> str:
    return str(os.getenv(name, default)).strip() or default


# Gemini provider
GEMINI_API_KEY = _env_str("GEMINI_API_KEY")
GEMINI_MODEL_PRIMARY = _env_str("GEMINI_MODEL_PRIMARY", "gemini-1.5-flash")
GEMINI_MODEL_FALLBACK = _env_str("GEMINI_MODEL_FALLBACK", "gemini-1.5-flash-8b")
GEMINI_TIMEOUT_S = max(1.0, _env_float("GEMINI_TIMEOUT_S", 20.0))

# Structured output leans creative, prose slightly less so.
GEMINI_TEMPERATURE_JSON = 0.9
GEMINI_TEMPERATURE_TEXT = 0.8

# Retry policy around the fallback selector
LLM_MAX_ATTEMPTS = max(1, _env_int("LLM_MAX_ATTEMPTS", 3))
LLM_RETRY_BASE_DELAY_S = max(0.0, _env_float("LLM_RETRY_BASE_DELAY_S", 0.3))
LLM_RETRY_FACTOR = max(1.0, _env_float("LLM_RETRY_FACTOR", 2.0))
REQUEST_DEADLINE_S = max(1.0, _env_float("REQUEST_DEADLINE_S", 25.0))

# Options cache: 6 hours, mirrored in the public Cache-Control header
OPTIONS_CACHE_TTL_S = max(1, _env_int("OPTIONS_CACHE_TTL_S", 6 * 3600))

# Rate limiting (Upstash Redis REST)
UPSTASH_REDIS_REST_URL = _env_str("UPSTASH_REDIS_REST_URL")
UPSTASH_REDIS_REST_TOKEN = _env_str("UPSTASH_REDIS_REST_TOKEN")
RATE_LIMIT_PER_MINUTE = max(1, _env_int("RATE_LIMIT_PER_MINUTE", 30))
RATE_LIMIT_WINDOW_S = 60


def resolve_gemini_api_key() -> str:
    """Return the provider credential, re-reading the environment on each call."""

    return (os.getenv("GEMINI_API_KEY") or GEMINI_API_KEY or "").strip()


def rate_limiter_credentials() -> tuple[str, str]:
    url = (os.getenv("UPSTASH_REDIS_REST_URL") or UPSTASH_REDIS_REST_URL or "").strip()
    token = (os.getenv("UPSTASH_REDIS_REST_TOKEN") or UPSTASH_REDIS_REST_TOKEN or "").strip()
    return url, token
