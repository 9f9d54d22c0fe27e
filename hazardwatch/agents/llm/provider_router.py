"""
Provider router: selects the LLM client by provider name.

Supported providers:
  "anthropic"  (Claude via the Anthropic SDK)
  "openai"     (GPT via the OpenAI SDK)
"""

import logging

from hazardwatch.agents.llm.base_llm_client import BaseLLMClient

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("anthropic", "openai")


def get_llm_client(
    provider: str = "anthropic",
    model_name: str | None = None,
    api_key: str | None = None,
    temperature: float = 0.0,
    max_tokens: int = 10,
) -> BaseLLMClient:
    """
    Factory: returns the appropriate LLM client for the given provider.

    Args:
        provider: "anthropic" | "openai"
        model_name: Model identifier; each client has its own default
        api_key: Explicit key, otherwise read from settings
        temperature: Sampling temperature
        max_tokens: Max response tokens

    Returns:
        Concrete BaseLLMClient instance (may report is_available=False when
        no API key is configured)
    """
    provider = provider.lower().strip()

    if provider == "openai":
        from hazardwatch.agents.llm.openai_client import DEFAULT_MODEL, OpenAILLMClient

        return OpenAILLMClient(
            model_name=model_name or DEFAULT_MODEL,
            api_key=api_key,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    if provider != "anthropic":
        logger.warning(
            f"Unknown LLM provider '{provider}'. Supported: {', '.join(SUPPORTED_PROVIDERS)}. Defaulting to anthropic."
        )

    from hazardwatch.agents.llm.anthropic_client import AnthropicLLMClient, DEFAULT_MODEL

    return AnthropicLLMClient(
        model_name=model_name or DEFAULT_MODEL,
        api_key=api_key,
        temperature=temperature,
        max_tokens=max_tokens,
    )
