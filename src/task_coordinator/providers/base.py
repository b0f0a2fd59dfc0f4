"""Abstract interfaces for the external capability providers.

The coordinator never implements a capability itself. It talks to four kinds
of provider through the interfaces below and only relies on their call
contracts: text generation, summarization, translation and writing.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Literal, Optional

from pydantic import Field

from task_coordinator.models.base import LanguageCode, ModelBase
from task_coordinator.models.enums import Agent, SummaryLength, SummaryType

Availability = Literal["readily", "after-download", "no"]


class ProviderCapabilities(ModelBase):
    """Readiness report of one provider.

    Attributes:
        supported: Whether the provider exists in this environment at all.
        availability: ``readily`` when usable now, ``after-download`` when it
            must be prepared first, ``no`` otherwise.
        error: Why the provider is not usable, if known.
    """

    supported: bool = Field(..., description="Whether the provider exists.")
    availability: Availability = Field(
        default="no", description="Current usability of the provider."
    )
    error: Optional[str] = Field(
        default=None, description="Why the provider is not usable."
    )

    @property
    def available(self) -> bool:
        return self.supported and self.availability == "readily"


class SummarizeOptions(ModelBase):
    type: SummaryType = SummaryType.KEY_POINTS
    length: SummaryLength = SummaryLength.MEDIUM
    format: Literal["markdown", "plain-text"] = "markdown"
    language: Optional[LanguageCode] = None
    shared_context: Optional[str] = None


class WriteOptions(ModelBase):
    tone: str = "neutral"
    length: str = "medium"
    format: Literal["markdown", "plain-text"] = "markdown"
    content_type: Optional[str] = None
    language: Optional[str] = None
    purpose: Optional[str] = None


class LanguageDetection(ModelBase):
    language: LanguageCode = Field(..., description="Detected ISO-639-1 code.")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class CapabilityProvider(ABC):
    """Common base of every provider.

    A provider is used through :meth:`session`, which acquires a handle for a
    single call and releases it on every exit path. Providers that are
    single-session by nature override :meth:`acquire` to create a fresh
    handle; the default handle is the provider itself.
    """

    name: str = "provider"
    remediation: str = ""

    @abstractmethod
    async def capabilities(self) -> ProviderCapabilities:
        """Reports whether the provider can be used right now."""
        pass  # pragma: no cover

    async def acquire(self) -> Any:
        return self

    async def release(self, handle: Any) -> None:
        return None

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Any]:
        handle = await self.acquire()
        try:
            yield handle
        finally:
            await self.release(handle)


class TextGenerationProvider(CapabilityProvider):
    name = "text-generation"

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Generates free text for ``prompt``.

        The text may embed a JSON object in surrounding prose.
        """
        pass  # pragma: no cover


class SummarizationProvider(CapabilityProvider):
    name = "summarizer"

    @abstractmethod
    async def summarize(self, text: str, options: SummarizeOptions) -> str:
        pass  # pragma: no cover


class TranslationProvider(CapabilityProvider):
    name = "translator"

    @abstractmethod
    async def translate(
        self,
        text: str,
        source_language: LanguageCode,
        target_language: LanguageCode,
    ) -> str:
        pass  # pragma: no cover

    @abstractmethod
    async def detect_language(self, text: str) -> LanguageDetection:
        pass  # pragma: no cover


class WritingProvider(CapabilityProvider):
    """Composes new content.

    Implementations may return a "feature not yet available" placeholder
    instead of real content; callers pass it through unchanged.
    """

    name = "writer"

    @abstractmethod
    async def write(self, prompt: str, options: WriteOptions) -> str:
        pass  # pragma: no cover


class ProviderRegistry:
    """Holds the provider behind each agent.

    Built once and handed to the coordination engine at construction time.
    The research agent is served by the text-generation provider.
    """

    def __init__(
        self,
        *,
        text_generation: TextGenerationProvider,
        summarizer: SummarizationProvider,
        translator: TranslationProvider,
        writer: WritingProvider,
    ):
        self.text_generation = text_generation
        self.summarizer = summarizer
        self.translator = translator
        self.writer = writer

    def for_agent(self, agent: Agent) -> CapabilityProvider:
        if agent == Agent.SUMMARIZER:
            return self.summarizer
        if agent == Agent.TRANSLATOR:
            return self.translator
        if agent == Agent.WRITER:
            return self.writer
        return self.text_generation

    def by_agent(self) -> dict[Agent, CapabilityProvider]:
        return {agent: self.for_agent(agent) for agent in Agent}

    async def capabilities(self) -> dict[str, ProviderCapabilities]:
        """Collects the readiness report of every agent's provider.

        A provider whose report itself fails is reported as unsupported.
        """
        report: dict[str, ProviderCapabilities] = {}
        for agent, provider in self.by_agent().items():
            try:
                report[agent.value] = await provider.capabilities()
            except Exception as e:
                report[agent.value] = ProviderCapabilities(
                    supported=False, availability="no", error=str(e)
                )
        return report
