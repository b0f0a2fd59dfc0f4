"""Builds the provider registry from the environment."""

import os
from typing import Optional

from task_coordinator.observability.logging import get_logger
from task_coordinator.providers.base import ProviderRegistry, TextGenerationProvider
from task_coordinator.providers.gemini_provider import GeminiTextProvider
from task_coordinator.providers.llm_backed import (
    LLMSummarizer,
    LLMTranslator,
    LLMWriter,
)
from task_coordinator.providers.openai_provider import OpenAITextProvider

logger = get_logger(__name__)


def create_text_provider(name: Optional[str] = None) -> TextGenerationProvider:
    """Selects the text-generation provider.

    Args:
        name: ``openai`` (default), or ``gemini``/``google``. Falls back to
            the LLM_PROVIDER environment variable.
    """
    provider = (name or os.environ.get("LLM_PROVIDER", "openai")).lower()
    if provider in ("gemini", "google"):
        logger.info("Using Gemini text-generation provider")
        return GeminiTextProvider()
    if provider != "openai":
        logger.warning(
            f"Unknown LLM_PROVIDER '{provider}', using OpenAI",
            extra={"extra_fields": {"provider": provider}},
        )
    logger.info("Using OpenAI text-generation provider")
    return OpenAITextProvider()


def build_registry(
    text_generation: Optional[TextGenerationProvider] = None,
) -> ProviderRegistry:
    """Registry whose capabilities are all served by one text-generation provider."""
    llm = text_generation or create_text_provider()
    return ProviderRegistry(
        text_generation=llm,
        summarizer=LLMSummarizer(llm),
        translator=LLMTranslator(llm),
        writer=LLMWriter(llm),
    )
