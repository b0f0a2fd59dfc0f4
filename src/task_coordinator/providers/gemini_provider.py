"""Gemini-based text-generation provider.

This module provides a provider that uses Google's Gemini models through the
asynchronous ``generate_content_async`` call.
"""

import asyncio
import os
from typing import Optional

import google.generativeai as genai

from task_coordinator.errors import ProviderTimeoutError, ProviderUnavailableError
from task_coordinator.observability.logging import get_logger
from task_coordinator.observability.metrics import LLM_TOKEN_USAGE_TOTAL
from task_coordinator.providers.base import (
    ProviderCapabilities,
    TextGenerationProvider,
)
from task_coordinator.providers.openai_provider import DEFAULT_SYSTEM_PROMPT

logger = get_logger(__name__)


class GeminiTextProvider(TextGenerationProvider):
    """Text generation through Google Gemini."""

    name = "gemini"
    remediation = (
        "Set GOOGLE_API_KEY (and optionally GEMINI_MODEL), "
        "or select another provider with LLM_PROVIDER=openai."
    )

    def __init__(
        self,
        model_name: str = "gemini-2.0-flash",
        system_prompt: Optional[str] = None,
    ):
        """Initializes the Gemini provider.

        Args:
            model_name: The identifier of the Gemini model to use.
                Defaults to 'gemini-2.0-flash' unless overridden by the
                GEMINI_MODEL environment variable.
            system_prompt: System instruction for the model.
        """
        self.api_key = os.environ.get("GOOGLE_API_KEY")
        if self.api_key:
            genai.configure(api_key=self.api_key)

        self.model_name = os.environ.get("GEMINI_MODEL", model_name)
        self.system_prompt = system_prompt or DEFAULT_SYSTEM_PROMPT

    async def capabilities(self) -> ProviderCapabilities:
        if not self.api_key:
            return ProviderCapabilities(
                supported=False,
                availability="no",
                error="GOOGLE_API_KEY is not set.",
            )
        return ProviderCapabilities(supported=True, availability="readily")

    async def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise ProviderUnavailableError(
                self.name, "GOOGLE_API_KEY is not set.", self.remediation
            )

        model = genai.GenerativeModel(
            model_name=self.model_name,
            system_instruction=self.system_prompt,
        )
        try:
            response = await model.generate_content_async(prompt)
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError("Gemini request timed out.") from e

        usage = getattr(response, "usage_metadata", None)
        if usage is not None and getattr(usage, "total_token_count", None):
            LLM_TOKEN_USAGE_TOTAL.labels(model=self.model_name).inc(
                usage.total_token_count
            )

        text = response.text or ""
        logger.debug(
            "Gemini response received",
            extra={"extra_fields": {"model": self.model_name, "chars": len(text)}},
        )
        return text
