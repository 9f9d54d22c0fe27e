"""
Unit tests for the LLM clients and provider router.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from hazardwatch.agents.llm.anthropic_client import AnthropicLLMClient
from hazardwatch.agents.llm.openai_client import OpenAILLMClient
from hazardwatch.agents.llm.provider_router import get_llm_client


@pytest.fixture(autouse=True)
def _no_configured_keys():
    settings = MagicMock()
    settings.api_key_for.return_value = None
    with (
        patch("hazardwatch.agents.llm.anthropic_client.get_settings", return_value=settings),
        patch("hazardwatch.agents.llm.openai_client.get_settings", return_value=settings),
    ):
        yield


class TestProviderRouter:
    """Tests for get_llm_client."""

    def test_default_is_anthropic(self):
        client = get_llm_client()
        assert isinstance(client, AnthropicLLMClient)
        assert client.model_name == "claude-3-haiku-20240307"

    def test_openai(self):
        client = get_llm_client(" OpenAI ", model_name="gpt-4o")
        assert isinstance(client, OpenAILLMClient)
        assert client.model_name == "gpt-4o"

    def test_unknown_provider_falls_back(self):
        assert isinstance(get_llm_client("mystery"), AnthropicLLMClient)


class TestAnthropicClient:
    """Tests for AnthropicLLMClient."""

    def test_unavailable_without_key(self):
        client = AnthropicLLMClient()
        assert not client.is_available
        assert asyncio.run(client.complete("sys", "user")) == ""

    def test_complete(self):
        client = AnthropicLLMClient(api_key="sk-test")
        sdk = MagicMock()
        sdk.messages.create = AsyncMock(
            return_value=SimpleNamespace(
                content=[SimpleNamespace(text="volcano")],
                usage=SimpleNamespace(input_tokens=40, output_tokens=2),
            )
        )
        client._client = sdk

        answer = asyncio.run(client.complete("sys", "user", temperature=0.0, max_tokens=10))

        assert answer == "volcano"
        kwargs = sdk.messages.create.await_args.kwargs
        assert kwargs["system"] == "sys"
        assert kwargs["messages"] == [{"role": "user", "content": "user"}]
        assert kwargs["max_tokens"] == 10
        assert client.get_token_usage() == {"prompt_tokens": 40, "completion_tokens": 2, "total": 42}


class TestOpenAIClient:
    """Tests for OpenAILLMClient."""

    def test_unavailable_without_key(self):
        assert not OpenAILLMClient().is_available

    def test_complete(self):
        client = OpenAILLMClient(api_key="sk-test")
        sdk = MagicMock()
        sdk.chat.completions.create = AsyncMock(
            return_value=SimpleNamespace(
                choices=[SimpleNamespace(message=SimpleNamespace(content="flood"))],
                usage=SimpleNamespace(prompt_tokens=30, completion_tokens=1, total_tokens=31),
            )
        )
        client._client = sdk

        assert asyncio.run(client.complete("sys", "user")) == "flood"
        messages = sdk.chat.completions.create.await_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "sys"}
        assert client.get_token_usage()["total"] == 31
