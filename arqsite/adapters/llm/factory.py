"""Factory pattern for creating LLM client instances."""

import logging

from arqsite.adapters.llm.base import AbstractLLMClient
from arqsite.adapters.llm.openai_client import OpenAIClient
from arqsite.core.config import settings
from arqsite.core.errors import ConfigurationAppError

logger = logging.getLogger(__name__)


def create_llm_client() -> AbstractLLMClient | None:
    """Instantiate the configured LLM client.

    AI is optional on the site: without ``LLM_API_KEY`` this returns None
    and callers fall back (lead enrichment skipped, chat fallback reply).

    Returns:
        AbstractLLMClient | None: Configured client, or None when disabled.

    Raises:
        ConfigurationAppError: If an unknown provider is configured.
    """
    if not settings.llm.enabled:
        logger.info("llm.disabled")
        return None

    provider = settings.llm.provider.lower()

    if provider == "openai":
        return OpenAIClient(
            api_key=settings.llm.api_key,
            model=settings.llm.model,
            base_url=settings.llm.base_url,
            timeout_seconds=settings.llm.timeout_seconds,
        )

    raise ConfigurationAppError(
        code="llm_unknown_provider",
        message=f"Unknown LLM provider: '{provider}'. Supported providers: openai",
    )
