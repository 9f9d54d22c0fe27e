"""
Abstract LLM client interface.

Provider implementations (Anthropic, OpenAI) extend BaseLLMClient. The
pipeline only ever asks for short plain-text answers, so the interface is a
single async complete() call plus availability and usage reporting.
"""

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class BaseLLMClient(ABC):
    """
    Abstract async LLM client.

    complete() raises whatever the underlying SDK raises; callers decide how
    a failed request is handled.
    """

    provider: str = "base"
    model_name: str = ""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Raw text completion."""
        ...

    def get_token_usage(self) -> dict[str, int]:
        """Returns {'prompt_tokens': N, 'completion_tokens': N, 'total': N} for last call."""
        return getattr(self, "_last_usage", self._empty_usage())

    @property
    def is_available(self) -> bool:
        """Returns True if the client has a valid API key and can make calls."""
        return False

    def _empty_usage(self) -> dict[str, int]:
        return {"prompt_tokens": 0, "completion_tokens": 0, "total": 0}
