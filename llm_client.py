# -*- coding: utf-8 -*-
"""Thin Gemini generateContent client with a single-hop model fallback."""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import httpx

from config import (
    GEMINI_MODEL_FALLBACK,
    GEMINI_MODEL_PRIMARY,
    GEMINI_TEMPERATURE_JSON,
    GEMINI_TEMPERATURE_TEXT,
    GEMINI_TIMEOUT_S,
    resolve_gemini_api_key,
)
from observability.logger import get_logger

GEMINI_API_URL_TEMPLATE = (
    "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
)
DEFAULT_MODEL_PREFERENCE: Tuple[str, ...] = (GEMINI_MODEL_PRIMARY, GEMINI_MODEL_FALLBACK)

_HTTP_CLIENT_LIMITS = httpx.Limits(
    max_connections=16,
    max_keepalive_connections=16,
    keepalive_expiry=120.0,
)
_HTTP_CLIENT: Optional[httpx.Client] = None
_HTTP_CLIENT_LOCK = threading.Lock()

LOGGER = get_logger("setting_forge.llm_client")


class ProviderError(RuntimeError):
    """Non-2xx answer or transport failure from the model provider."""

    def __init__(self, message: str, *, status: Optional[int] = None, model: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status
        self.model = model
        self.message = message

    def __str__(self) -> str:
        prefix = f"Gemini {self.status}" if self.status else "Gemini"
        return f"{prefix}: {self.message}"


class DeadlineExceeded(ProviderError):
    """The request deadline ran out before the provider could be called."""


class Deadline:
    """Absolute point in time after which no new upstream work should start."""

    def __init__(self, seconds: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._expires_at = clock() + max(0.0, float(seconds))

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0


@dataclass(frozen=True)
class GenerationRequest:
    prompt: str
    structured: bool
    model_preference: Tuple[str, ...] = DEFAULT_MODEL_PREFERENCE


def reset_http_client_cache() -> None:
    """Close and drop the pooled HTTP client.

    Intended for test code so patched clients do not leak between tests."""

    global _HTTP_CLIENT
    with _HTTP_CLIENT_LOCK:
        pooled_client, _HTTP_CLIENT = _HTTP_CLIENT, None
    if pooled_client is not None:
        try:
            pooled_client.close()
        except Exception:  # pragma: no cover - best effort cleanup
            pass


def _request_timeout(timeout_value: float) -> httpx.Timeout:
    return httpx.Timeout(
        timeout=timeout_value,
        connect=min(10.0, timeout_value),
        read=timeout_value,
        write=timeout_value,
    )


def _acquire_http_client() -> httpx.Client:
    """Return the process-wide client; per-call timeouts are passed to ``post``."""

    global _HTTP_CLIENT
    with _HTTP_CLIENT_LOCK:
        if _HTTP_CLIENT is None:
            _HTTP_CLIENT = httpx.Client(
                timeout=_request_timeout(float(GEMINI_TIMEOUT_S)),
                limits=_HTTP_CLIENT_LIMITS,
                headers={"Connection": "keep-alive"},
                http2=True,
            )
        return _HTTP_CLIENT


def build_generate_payload(prompt: str, *, structured: bool) -> Dict[str, object]:
    if structured:
        generation_config: Dict[str, object] = {
            "responseMimeType": "application/json",
            "temperature": GEMINI_TEMPERATURE_JSON,
        }
    else:
        generation_config = {"temperature": GEMINI_TEMPERATURE_TEXT}
    return {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": generation_config,
    }


def _extract_error_message(response: httpx.Response) -> str:
    message = ""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        error_block = payload.get("error")
        if isinstance(error_block, dict):
            message = str(error_block.get("message", ""))
    if not message:
        message = response.text or ""
    return message.strip()[:500]


def _extract_candidate_text(data: object) -> str:
    """Pull ``candidates[0].content.parts[0].text``; anything missing yields ''."""

    if not isinstance(data, dict):
        return ""
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    first = candidates[0]
    content = first.get("content") if isinstance(first, dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list) or not parts:
        return ""
    part = parts[0]
    text = part.get("text") if isinstance(part, dict) else None
    if not isinstance(text, str):
        return ""
    return text.strip()


def generate(
    prompt: str,
    *,
    structured: bool,
    model: str = GEMINI_MODEL_PRIMARY,
    api_key: Optional[str] = None,
    deadline: Optional[Deadline] = None,
) -> str:
    """Issue exactly one generateContent call and return the extracted text."""

    key = (api_key if api_key is not None else resolve_gemini_api_key()).strip()
    if not key:
        raise ProviderError("GEMINI_API_KEY is not configured", model=model)

    timeout_value = float(GEMINI_TIMEOUT_S)
    if deadline is not None:
        remaining = deadline.remaining()
        if remaining <= 0.0:
            raise DeadlineExceeded("request deadline exceeded before call", model=model)
        timeout_value = min(timeout_value, remaining)

    url = GEMINI_API_URL_TEMPLATE.format(model=model)
    payload = build_generate_payload(prompt, structured=structured)
    http_client = _acquire_http_client()
    started_at = time.perf_counter()
    try:
        response = http_client.post(
            url,
            params={"key": key},
            headers={"content-type": "application/json"},
            json=payload,
            timeout=_request_timeout(timeout_value),
        )
    except httpx.TimeoutException as exc:
        raise ProviderError(f"timeout after {timeout_value:.1f}s", model=model) from exc
    except httpx.HTTPError as exc:
        raise ProviderError(f"transport error: {exc.__class__.__name__}", model=model) from exc

    if response.status_code < 200 or response.status_code >= 300:
        raise ProviderError(
            _extract_error_message(response) or "empty error body",
            status=response.status_code,
            model=model,
        )
    try:
        data = response.json()
    except ValueError as exc:
        raise ProviderError("response body is not JSON", status=response.status_code, model=model) from exc

    text = _extract_candidate_text(data)
    LOGGER.info(
        "llm_request_succeeded",
        extra={
            "model": model,
            "structured": structured,
            "duration_ms": int((time.perf_counter() - started_at) * 1000),
            "text_len": len(text),
        },
    )
    return text


def generate_with_fallback(
    request: GenerationRequest,
    *,
    deadline: Optional[Deadline] = None,
    generate_fn: Optional[Callable[..., str]] = None,
) -> str:
    """Try each preferred model once; raise the last model's error if all fail."""

    call = generate_fn or generate
    models = request.model_preference or DEFAULT_MODEL_PREFERENCE
    last_error: Optional[ProviderError] = None
    for index, model in enumerate(models):
        try:
            return call(
                request.prompt,
                structured=request.structured,
                model=model,
                deadline=deadline,
            )
        except ProviderError as exc:
            last_error = exc
            if index + 1 < len(models):
                LOGGER.warning(
                    "llm_model_fallback",
                    extra={"model": model, "next_model": models[index + 1], "error": str(exc)},
                )
    if last_error is None:  # pragma: no cover - preference always has a model
        raise ProviderError("no model configured")
    raise last_error


__all__ = [
    "DEFAULT_MODEL_PREFERENCE",
    "Deadline",
    "DeadlineExceeded",
    "GEMINI_API_URL_TEMPLATE",
    "GenerationRequest",
    "ProviderError",
    "build_generate_payload",
    "generate",
    "generate_with_fallback",
    "reset_http_client_cache",
]
