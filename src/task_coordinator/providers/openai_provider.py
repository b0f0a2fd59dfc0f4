"""OpenAI-based text-generation provider.

This module provides a provider that uses OpenAI's asynchronous Chat
Completion API to answer the classification, planning and research prompts
of the coordinator.
"""

import os
from typing import Optional

import openai
from openai import AsyncOpenAI

from task_coordinator.errors import ProviderTimeoutError, ProviderUnavailableError
from task_coordinator.observability.logging import get_logger
from task_coordinator.observability.metrics import LLM_TOKEN_USAGE_TOTAL
from task_coordinator.providers.base import (
    ProviderCapabilities,
    TextGenerationProvider,
)

logger = get_logger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a precise assistant. When asked for JSON, respond with a single "
    "JSON object and nothing else."
)


class OpenAITextProvider(TextGenerationProvider):
    """Text generation through an OpenAI-compatible endpoint."""

    name = "openai"
    remediation = (
        "Set OPENAI_API_KEY (and optionally OPENAI_API_BASE and OPENAI_MODEL), "
        "or select another provider with LLM_PROVIDER=gemini."
    )

    def __init__(
        self,
        model_name: str = "gpt-4o-mini",
        system_prompt: Optional[str] = None,
    ):
        """Initializes the OpenAI provider.

        Args:
            model_name: The identifier of the OpenAI model to use.
                Defaults to 'gpt-4o-mini' unless overridden by the
                OPENAI_MODEL environment variable.
            system_prompt: System message sent with every prompt.
        """
        api_key = os.environ.get("OPENAI_API_KEY")
        base_url = os.environ.get("OPENAI_API_BASE")

        self.model_name = os.environ.get("OPENAI_MODEL", model_name)
        self.system_prompt = system_prompt or DEFAULT_SYSTEM_PROMPT
        self.client: Optional[AsyncOpenAI] = None
        if api_key:
            self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def capabilities(self) -> ProviderCapabilities:
        if self.client is None:
            return ProviderCapabilities(
                supported=False,
                availability="no",
                error="OPENAI_API_KEY is not set.",
            )
        return ProviderCapabilities(supported=True, availability="readily")

    async def generate(self, prompt: str) -> str:
        if self.client is None:
            raise ProviderUnavailableError(
                self.name, "OPENAI_API_KEY is not set.", self.remediation
            )

        try:
            completion = await self.client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {"role": "system", "content": self.system_prompt},
                    {"role": "user", "content": prompt},
                ],
            )
        except openai.APITimeoutError as e:
            raise ProviderTimeoutError(f"OpenAI request timed out: {e}") from e
        except (openai.APIConnectionError, openai.AuthenticationError) as e:
            raise ProviderUnavailableError(
                self.name, str(e), self.remediation
            ) from e

        if getattr(completion, "usage", None):
            LLM_TOKEN_USAGE_TOTAL.labels(model=self.model_name).inc(
                completion.usage.total_tokens
            )

        content = completion.choices[0].message.content or ""
        logger.debug(
            "OpenAI completion received",
            extra={
                "extra_fields": {"model": self.model_name, "chars": len(content)}
            },
        )
        return content
