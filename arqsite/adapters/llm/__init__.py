"""LLM adapter layer - abstracts over LLM providers."""

from arqsite.adapters.llm.base import AbstractLLMClient
from arqsite.adapters.llm.factory import create_llm_client
from arqsite.adapters.llm.openai_client import OpenAIClient

__all__ = [
    "AbstractLLMClient",
    "OpenAIClient",
    "create_llm_client",
]
