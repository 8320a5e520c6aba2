"""Generation facade: bounded exponential-backoff retry around the model fallback."""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from config import LLM_MAX_ATTEMPTS, LLM_RETRY_BASE_DELAY_S, LLM_RETRY_FACTOR
from llm_client import Deadline, GenerationRequest, ProviderError, generate, generate_with_fallback
from observability.logger import get_logger
from observability.metrics import MetricsRegistry, get_registry

LOGGER = get_logger("setting_forge.services.llm_client")

FailedAttemptHook = Callable[[int, ProviderError], None]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = LLM_MAX_ATTEMPTS
    base_delay: float = LLM_RETRY_BASE_DELAY_S
    factor: float = LLM_RETRY_FACTOR

    def delay_for(self, attempt: int) -> float:
        """Backoff to wait after the given 1-based failed attempt."""

        return self.base_delay * (self.factor ** max(0, attempt - 1))


class RetryExhausted(RuntimeError):
    """All attempts failed; carries the attempt count and the last provider error."""

    def __init__(self, attempts: int, last_error: ProviderError) -> None:
        super().__init__(f"generation failed after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class GenerationService:
    """Runs the fallback model selector under a retry policy."""

    def __init__(
        self,
        *,
        policy: Optional[RetryPolicy] = None,
        generate_fn: Callable[..., str] = generate,
        sleep: Callable[[float], None] = time.sleep,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self._policy = policy or RetryPolicy()
        self._generate_fn = generate_fn
        self._sleep = sleep
        self._metrics = metrics or get_registry()

    def generate(
        self,
        request: GenerationRequest,
        *,
        deadline: Optional[Deadline] = None,
        on_failed_attempt: Optional[FailedAttemptHook] = None,
    ) -> str:
        max_attempts = max(1, self._policy.max_attempts)
        attempt = 0
        while True:
            attempt += 1
            try:
                return generate_with_fallback(request, deadline=deadline, generate_fn=self._generate_fn)
            except ProviderError as exc:
                attempts_left = max_attempts - attempt
                self._metrics.inc("llm.attempt_failed")
                LOGGER.warning(
                    "llm_attempt_failed",
                    extra={
                        "attempt": attempt,
                        "attempts_left": attempts_left,
                        "status": exc.status,
                        "model": exc.model,
                        "error": str(exc),
                    },
                )
                if on_failed_attempt is not None:
                    on_failed_attempt(attempt, exc)
                if attempts_left <= 0:
                    raise RetryExhausted(attempt, exc) from exc
                delay = self._policy.delay_for(attempt)
                if deadline is not None and deadline.remaining() <= delay:
                    LOGGER.warning(
                        "llm_retry_deadline_reached",
                        extra={"attempt": attempt, "delay_s": delay, "remaining_s": deadline.remaining()},
                    )
                    raise RetryExhausted(attempt, exc) from exc
                self._sleep(delay)


_default_service = GenerationService()


def get_default_service() -> GenerationService:
    return _default_service


__all__ = ["GenerationService", "RetryExhausted", "RetryPolicy", "get_default_service"]
