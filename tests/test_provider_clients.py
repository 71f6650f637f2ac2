"""Tests for the Gemini and OpenAI adapters with the SDK calls mocked out."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest

from clinical_document_processing.clients import GeminiClient, OpenAIClient, RateLimiter, RetryController
from clinical_document_processing.core.enums import ProviderRole
from clinical_document_processing.core.exceptions import (
    FatalProviderError,
    TransientProviderError,
)


def resilience(clock):
    return {
        "rate_limiter": RateLimiter(60, clock=clock, sleep=clock.sleep),
        "retry_controller": RetryController(max_retries=3, sleep=clock.sleep, rng=lambda: 0.0),
    }


def chat_completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def gemini_response(*texts, block_reason=None):
    parts = [SimpleNamespace(text=text) for text in texts]
    return SimpleNamespace(
        prompt_feedback=SimpleNamespace(block_reason=block_reason),
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))],
    )


@pytest.fixture
def openai_client(fake_clock):
    client = OpenAIClient(api_key="sk-test", **resilience(fake_clock))
    create = AsyncMock()
    client._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return client, create


@pytest.fixture
def gemini_client(fake_clock):
    client = GeminiClient(api_key="g-test", **resilience(fake_clock))
    generate = AsyncMock()
    client._model = SimpleNamespace(generate_content_async=generate)
    return client, generate


class TestOpenAIClient:
    def test_defaults(self, openai_client):
        client, _ = openai_client

        assert client.provider_name == "openai"
        assert client.role is ProviderRole.HIGH_FIDELITY
        assert client.model_name == "gpt-4o"

    def test_returns_message_content(self, openai_client):
        client, create = openai_client
        create.return_value = chat_completion('{"studyTitle": "GLY-301"}')

        assert asyncio.run(client.generate_content("prompt")) == '{"studyTitle": "GLY-301"}'
        assert create.await_args.kwargs["messages"] == [{"role": "user", "content": "prompt"}]

    def test_rate_limit_error_is_retried(self, openai_client):
        client, create = openai_client
        create.side_effect = [RuntimeError("Error code: 429 - Rate limit reached"), chat_completion("ok")]

        assert asyncio.run(client.generate_content("prompt")) == "ok"
        assert create.await_count == 2

    def test_sdk_timeout_is_transient(self, openai_client):
        client, create = openai_client
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        create.side_effect = openai.APITimeoutError(request=request)

        with pytest.raises(TransientProviderError) as raised:
            asyncio.run(client.generate_content("prompt"))

        assert raised.value.attempts == 4
        assert "OpenAI API timeout" in str(raised.value.original_error)

    def test_empty_response_is_fatal(self, openai_client):
        client, create = openai_client
        create.return_value = chat_completion(None)

        with pytest.raises(FatalProviderError):
            asyncio.run(client.generate_content("prompt"))

        assert create.await_count == 1


class TestGeminiClient:
    def test_defaults(self, gemini_client):
        client, _ = gemini_client

        assert client.provider_name == "gemini"
        assert client.role is ProviderRole.HIGH_THROUGHPUT

    def test_joins_candidate_parts(self, gemini_client):
        client, generate = gemini_client
        generate.return_value = gemini_response('{"a"', ": 1}")

        assert asyncio.run(client.generate_content("prompt")) == '{"a": 1}'

    def test_deadline_exceeded_is_classified_as_timeout(self, gemini_client):
        client, generate = gemini_client
        generate.side_effect = RuntimeError("504 Deadline Exceeded")

        with pytest.raises(TransientProviderError) as raised:
            asyncio.run(client.generate_content("prompt"))

        assert generate.await_count == 4
        assert "timeout: 504 Deadline Exceeded" in str(raised.value.original_error)

    def test_invalid_key_is_fatal(self, gemini_client):
        client, generate = gemini_client
        generate.side_effect = RuntimeError("400 API key not valid. Please pass a valid API key.")

        with pytest.raises(FatalProviderError) as raised:
            asyncio.run(client.generate_content("prompt"))

        assert raised.value.provider == "gemini"
        assert generate.await_count == 1

    def test_blocked_prompt_is_fatal(self, gemini_client):
        client, generate = gemini_client
        generate.return_value = gemini_response(block_reason="SAFETY")

        with pytest.raises(FatalProviderError):
            asyncio.run(client.generate_content("prompt"))
