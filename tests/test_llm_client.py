"""Tests for the shared provider call discipline in BaseContentProvider."""

import asyncio

import pytest

from clinical_document_processing.clients.llm_client import (
    BaseContentProvider,
    ContentProviderProtocol,
)
from clinical_document_processing.clients.rate_limiter import RateLimiter
from clinical_document_processing.clients.retry import RetryController
from clinical_document_processing.core.enums import ProviderRole
from clinical_document_processing.core.exceptions import (
    FatalProviderError,
    ProviderCallError,
    ProviderError,
    TransientProviderError,
)


class CountingRateLimiter(RateLimiter):
    def __init__(self, clock):
        super().__init__(requests_per_minute=60, name="scripted", clock=clock, sleep=clock.sleep)
        self.acquisitions = 0

    async def acquire(self) -> float:
        self.acquisitions += 1
        return await super().acquire()


class ScriptedProvider(BaseContentProvider):
    """Provider whose SDK call replays a list of outcomes; the last one repeats."""

    def __init__(self, outcomes, clock):
        self._outcomes = list(outcomes)
        self.api_calls = 0
        super().__init__(
            api_key="test-key",
            model_name="scripted-1",
            role=ProviderRole.HIGH_FIDELITY,
            rate_limiter=CountingRateLimiter(clock),
            retry_controller=RetryController(max_retries=3, sleep=clock.sleep, rng=lambda: 0.0),
        )

    async def _call_api(self, prompt: str) -> str:
        self.api_calls += 1
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def provider_name(self) -> str:
        return "scripted"


class TestBaseContentProvider:
    def test_satisfies_provider_protocol(self, fake_clock):
        provider = ScriptedProvider(["ok"], fake_clock)

        assert isinstance(provider, ContentProviderProtocol)
        assert provider.model_name == "scripted-1"
        assert provider.role is ProviderRole.HIGH_FIDELITY

    def test_successful_call_returns_text(self, fake_clock):
        provider = ScriptedProvider(["{\"a\": 1}"], fake_clock)

        assert asyncio.run(provider.generate_content("prompt")) == "{\"a\": 1}"
        assert provider.total_calls == 1
        assert provider.success_rate == 100.0

    def test_exhausted_transient_failure_becomes_transient_provider_error(self, fake_clock):
        provider = ScriptedProvider(
            [ProviderCallError("scripted API error: 503 Service Unavailable", provider="scripted")],
            fake_clock,
        )

        with pytest.raises(TransientProviderError) as raised:
            asyncio.run(provider.generate_content("prompt"))

        assert raised.value.provider == "scripted"
        assert raised.value.attempts == 4
        assert "503" in str(raised.value.original_error)
        assert provider.api_calls == 4
        assert provider.failed_calls == 1

    def test_fatal_failure_becomes_fatal_provider_error_after_one_attempt(self, fake_clock):
        provider = ScriptedProvider(
            [ProviderCallError("scripted API error: invalid api key", provider="scripted")],
            fake_clock,
        )

        with pytest.raises(FatalProviderError) as raised:
            asyncio.run(provider.generate_content("prompt"))

        assert isinstance(raised.value, ProviderError)
        assert raised.value.attempts == 1
        assert provider.api_calls == 1

    def test_rate_limiter_acquired_once_per_logical_call(self, fake_clock):
        provider = ScriptedProvider(
            [ProviderCallError("timeout", provider="scripted"), ProviderCallError("timeout", provider="scripted"), "done"],
            fake_clock,
        )

        assert asyncio.run(provider.generate_content("prompt")) == "done"
        assert provider.rate_limiter.acquisitions == 1
        assert provider.api_calls == 3

    def test_success_rate_counts_failed_calls(self, fake_clock):
        provider = ScriptedProvider(["first", ProviderCallError("invalid request", provider="scripted")], fake_clock)

        async def scenario():
            await provider.generate_content("one")
            with pytest.raises(FatalProviderError):
                await provider.generate_content("two")

        asyncio.run(scenario())

        assert provider.success_rate == 50.0
