import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from election_dashboard.ai_feature.llm import GeminiClient, LLMError
from election_dashboard.core.config import Settings


def make_sdk(side_effect):
    """Stand-in for genai.Client exposing only aio.models.generate_content."""
    generate_content = AsyncMock(side_effect=side_effect)
    sdk = SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate_content)))
    return sdk, generate_content


def make_client(side_effect, max_attempts=2, timeout=5.0):
    sdk, generate_content = make_sdk(side_effect)
    client = GeminiClient(
        api_key="test-key",
        model="gemini-test",
        timeout=timeout,
        max_attempts=max_attempts,
        backoff=0,
        client=sdk,
    )
    return client, generate_content


@pytest.mark.asyncio
async def test_generate_returns_model_text():
    client, generate_content = make_client([SimpleNamespace(text="SELECT 1;")])

    assert await client.generate("prompt") == "SELECT 1;"
    generate_content.assert_awaited_once_with(model="gemini-test", contents="prompt")


@pytest.mark.asyncio
async def test_generate_retries_once_after_failure():
    """One failed call is retried, the second answer is used"""
    client, generate_content = make_client(
        [RuntimeError("429 quota exceeded"), SimpleNamespace(text="answer")]
    )

    assert await client.generate("prompt") == "answer"
    assert generate_content.await_count == 2


@pytest.mark.asyncio
async def test_generate_gives_up_after_max_attempts():
    client, generate_content = make_client(
        [RuntimeError("boom"), RuntimeError("boom again")]
    )

    with pytest.raises(LLMError) as exc_info:
        await client.generate("prompt")

    assert "boom again" in str(exc_info.value)
    assert generate_content.await_count == 2


@pytest.mark.asyncio
async def test_empty_response_counts_as_failure():
    client, generate_content = make_client(
        [SimpleNamespace(text="  "), SimpleNamespace(text="real answer")]
    )

    assert await client.generate("prompt") == "real answer"
    assert generate_content.await_count == 2


@pytest.mark.asyncio
async def test_generate_times_out():
    async def slow_call(**kwargs):
        await asyncio.sleep(1)
        return SimpleNamespace(text="too late")

    client, _ = make_client(slow_call, max_attempts=1)

    with pytest.raises(LLMError) as exc_info:
        await client.generate("prompt", timeout=0.01)
    assert "timed out" in str(exc_info.value)


@pytest.mark.asyncio
async def test_missing_api_key_fails_without_calling_out():
    client = GeminiClient(api_key="")

    with pytest.raises(LLMError) as exc_info:
        await client.generate("prompt")
    assert "GEMINI_API_KEY" in str(exc_info.value)


def test_from_settings_copies_llm_options():
    config = Settings(
        GEMINI_API_KEY="key",
        GEMINI_MODEL="gemini-x",
        LLM_TIMEOUT_SECONDS=12.5,
        LLM_MAX_ATTEMPTS=3,
        LLM_RETRY_BACKOFF_SECONDS=0.5,
    )
    client = GeminiClient.from_settings(config)

    assert client.api_key == "key"
    assert client.model == "gemini-x"
    assert client.timeout == 12.5
    assert client.max_attempts == 3
    assert client.backoff == 0.5
