"""
Anthropic Claude client using the Anthropic SDK.

Uses claude-3-haiku by default; a single-word category answer needs nothing
larger.
"""

import logging

from hazardwatch.agents.llm.base_llm_client import BaseLLMClient
from hazardwatch.configs.settings import get_settings

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-3-haiku-20240307"


class AnthropicLLMClient(BaseLLMClient):
    """
    Anthropic Claude client.

    Lazy initialization: the SDK client is only built on first use and only
    if an API key is available.
    """

    provider = "anthropic"

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        api_key: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 10,
    ):
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens

        self._api_key: str | None = api_key or get_settings().api_key_for(self.provider)
        self._client = None
        self._last_usage: dict[str, int] = self._empty_usage()

    @property
    def is_available(self) -> bool:
        return bool(self._api_key)

    def _get_client(self):
        if self._client is not None:
            return self._client
        if not self._api_key:
            return None

        import anthropic

        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        return self._client

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        client = self._get_client()
        if not client:
            return ""
        resp = await client.messages.create(
            model=self.model_name,
            max_tokens=max_tokens or self.max_tokens,
            temperature=temperature if temperature is not None else self.temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
        self._last_usage = {
            "prompt_tokens": resp.usage.input_tokens,
            "completion_tokens": resp.usage.output_tokens,
            "total": resp.usage.input_tokens + resp.usage.output_tokens,
        }
        return resp.content[0].text if resp.content else ""
