"""
OpenAI client using the OpenAI SDK.

Uses gpt-4o-mini by default.
"""

import logging

from hazardwatch.agents.llm.base_llm_client import BaseLLMClient
from hazardwatch.configs.settings import get_settings

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"


class OpenAILLMClient(BaseLLMClient):
    """
    OpenAI chat-completions client.

    Lazy initialization: the SDK client is only built on first use and only
    if an API key is available.
    """

    provider = "openai"

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

        from openai import AsyncOpenAI

        self._client = AsyncOpenAI(api_key=self._api_key)
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
        resp = await client.chat.completions.create(
            model=self.model_name,
            temperature=temperature if temperature is not None else self.temperature,
            max_tokens=max_tokens or self.max_tokens,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        )
        if resp.usage:
            self._last_usage = {
                "prompt_tokens": resp.usage.prompt_tokens,
                "completion_tokens": resp.usage.completion_tokens,
                "total": resp.usage.total_tokens,
            }
        return resp.choices[0].message.content or ""
