from hazardwatch.agents.llm.base_llm_client import BaseLLMClient
from hazardwatch.agents.llm.provider_router import get_llm_client

__all__ = ["BaseLLMClient", "get_llm_client"]
