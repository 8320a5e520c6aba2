from __future__ import annotations

import pytest

from config import GEMINI_MODEL_FALLBACK, GEMINI_MODEL_PRIMARY
from llm_client import Deadline, GenerationRequest, ProviderError
from observability.metrics import MetricsRegistry
from services.llm_client import GenerationService, RetryExhausted, RetryPolicy


class ScriptedModel:
    """Model client stand-in: pops one outcome per call, repeating the last one."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.models = []

    def __call__(self, prompt, *, structured, model, deadline=None):
        self.models.append(model)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def sleeps():
    return []


def _service(model, sleeps, *, metrics=None, clock=None):
    def _sleep(delay):
        sleeps.append(delay)
        if clock is not None:
            clock.now += delay

    return GenerationService(
        policy=RetryPolicy(max_attempts=3, base_delay=0.3, factor=2.0),
        generate_fn=model,
        sleep=_sleep,
        metrics=metrics or MetricsRegistry(),
    )


def test_retry_policy_delays_grow_exponentially():
    policy = RetryPolicy(max_attempts=3, base_delay=0.3, factor=2.0)
    assert policy.delay_for(1) == pytest.approx(0.3)
    assert policy.delay_for(2) == pytest.approx(0.6)
    assert policy.delay_for(3) == pytest.approx(1.2)


def test_exhausts_after_exactly_three_attempts(sleeps):
    model = ScriptedModel([ProviderError("overloaded", status=503)])
    metrics = MetricsRegistry()
    service = _service(model, sleeps, metrics=metrics)

    with pytest.raises(RetryExhausted) as excinfo:
        service.generate(GenerationRequest("p", structured=True))

    assert excinfo.value.attempts == 3
    assert isinstance(excinfo.value.last_error, ProviderError)
    assert excinfo.value.last_error.status == 503
    assert model.models == [GEMINI_MODEL_PRIMARY, GEMINI_MODEL_FALLBACK] * 3
    assert sleeps == [pytest.approx(0.3), pytest.approx(0.6)]
    assert metrics.snapshot()["llm.attempt_failed"] == 3


def test_recovers_on_second_attempt(sleeps):
    failure = ProviderError("busy", status=429)
    model = ScriptedModel([failure, failure, "generated"])
    service = _service(model, sleeps)

    result = service.generate(GenerationRequest("p", structured=False))

    assert result == "generated"
    assert model.models == [GEMINI_MODEL_PRIMARY, GEMINI_MODEL_FALLBACK, GEMINI_MODEL_PRIMARY]
    assert sleeps == [pytest.approx(0.3)]


def test_each_failed_attempt_is_observable(sleeps):
    model = ScriptedModel([ProviderError("down", status=500)])
    service = _service(model, sleeps)
    observed = []

    with pytest.raises(RetryExhausted):
        service.generate(
            GenerationRequest("p", structured=True),
            on_failed_attempt=lambda attempt, error: observed.append((attempt, error.status)),
        )

    assert observed == [(1, 500), (2, 500), (3, 500)]


def test_deadline_stops_retrying_early(sleeps):
    clock = FakeClock()
    model = ScriptedModel([ProviderError("slow", status=504)])
    service = _service(model, sleeps, clock=clock)
    deadline = Deadline(0.5, clock=clock)

    with pytest.raises(RetryExhausted) as excinfo:
        service.generate(GenerationRequest("p", structured=True), deadline=deadline)

    assert excinfo.value.attempts == 2
    assert sleeps == [pytest.approx(0.3)]


def test_unexpected_errors_are_not_retried(sleeps):
    model = ScriptedModel([KeyError("bug")])
    service = _service(model, sleeps)

    with pytest.raises(KeyError):
        service.generate(GenerationRequest("p", structured=True))

    assert model.models == [GEMINI_MODEL_PRIMARY]
    assert sleeps == []
