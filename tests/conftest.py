import asyncio
import json
from typing import Callable, Optional, Union

import pytest

from task_coordinator.config import EngineConfig
from task_coordinator.execution.engine import CoordinationEngine
from task_coordinator.models.request import PageContext
from task_coordinator.observability.metrics import EngineMetrics
from task_coordinator.providers.base import (
    LanguageDetection,
    ProviderCapabilities,
    ProviderRegistry,
    SummarizationProvider,
    SummarizeOptions,
    TextGenerationProvider,
    TranslationProvider,
    WriteOptions,
    WritingProvider,
)

Responder = Union[str, Exception, Callable[[str], str]]


class CountingMixin:
    """Tracks calls and open sessions of a fake provider."""

    def _init_counters(self, ready: bool = True):
        self.calls = 0
        self.ready = ready
        self.capability_checks = 0
        self.open_sessions = 0
        self.released = 0

    async def capabilities(self) -> ProviderCapabilities:
        self.capability_checks += 1
        if not self.ready:
            return ProviderCapabilities(
                supported=True, availability="after-download", error="model not downloaded"
            )
        return ProviderCapabilities(supported=True, availability="readily")

    async def acquire(self):
        self.open_sessions += 1
        return self

    async def release(self, handle):
        self.open_sessions -= 1
        self.released += 1


class FakeTextProvider(CountingMixin, TextGenerationProvider):
    name = "fake-llm"
    remediation = "Configure the fake model."

    def __init__(self, responder: Responder = "{}", ready: bool = True):
        self._init_counters(ready)
        self.responder = responder
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.calls += 1
        self.prompts.append(prompt)
        if isinstance(self.responder, Exception):
            raise self.responder
        if callable(self.responder):
            return self.responder(prompt)
        return self.responder


class FakeSummarizer(CountingMixin, SummarizationProvider):
    name = "fake-summarizer"
    remediation = "Enable the summarizer."

    def __init__(self, error: Optional[Exception] = None, ready: bool = True):
        self._init_counters(ready)
        self.error = error
        self.options: list[SummarizeOptions] = []
        self.texts: list[str] = []

    async def summarize(self, text: str, options: SummarizeOptions) -> str:
        self.calls += 1
        self.texts.append(text)
        self.options.append(options)
        if self.error is not None:
            raise self.error
        return f"SUMMARY({text[:20]})"


class FakeTranslator(CountingMixin, TranslationProvider):
    name = "fake-translator"
    remediation = "Enable the translator."

    def __init__(
        self,
        error: Optional[Exception] = None,
        detected: str = "en",
        detected_confidence: float = 0.9,
        ready: bool = True,
    ):
        self._init_counters(ready)
        self.error = error
        self.detected = detected
        self.detected_confidence = detected_confidence
        self.requests: list[tuple[str, str, str]] = []

    async def translate(self, text: str, source_language: str, target_language: str) -> str:
        self.calls += 1
        self.requests.append((text, source_language, target_language))
        if self.error is not None:
            raise self.error
        return f"{target_language.upper()}({text})"

    async def detect_language(self, text: str) -> LanguageDetection:
        return LanguageDetection(
            language=self.detected, confidence=self.detected_confidence
        )


class FakeWriter(CountingMixin, WritingProvider):
    name = "fake-writer"
    remediation = "Enable the writer."

    def __init__(self, error: Optional[Exception] = None, ready: bool = True):
        self._init_counters(ready)
        self.error = error
        self.options: list[WriteOptions] = []
        self.prompts: list[str] = []

    async def write(self, prompt: str, options: WriteOptions) -> str:
        self.calls += 1
        self.prompts.append(prompt)
        self.options.append(options)
        if self.error is not None:
            raise self.error
        return f"WRITTEN({prompt[:20]})"


class SlowSummarizer(FakeSummarizer):
    """Waits on a barrier so concurrent execution can be observed."""

    def __init__(self, barrier: asyncio.Event, **kwargs):
        super().__init__(**kwargs)
        self.barrier = barrier

    async def summarize(self, text: str, options: SummarizeOptions) -> str:
        await asyncio.wait_for(self.barrier.wait(), timeout=1)
        return await super().summarize(text, options)


def classification(primary: str, **fields) -> str:
    """A prose-wrapped classification answer."""
    return "Here is the classification:\n" + json.dumps({"primary": primary, **fields})


def routed(classify: Responder = None, plan: Responder = None) -> Callable[[str], str]:
    """Answers classification and planning prompts differently."""

    def respond(prompt: str) -> str:
        answer = plan if "execution plan" in prompt else classify
        if answer is None:
            raise RuntimeError("no answer configured")
        if isinstance(answer, Exception):
            raise answer
        return answer

    return respond


@pytest.fixture
def text_provider():
    return FakeTextProvider(responder=RuntimeError("model offline"))


@pytest.fixture
def summarizer():
    return FakeSummarizer()


@pytest.fixture
def translator():
    return FakeTranslator()


@pytest.fixture
def writer():
    return FakeWriter()


@pytest.fixture
def registry(text_provider, summarizer, translator, writer):
    return ProviderRegistry(
        text_generation=text_provider,
        summarizer=summarizer,
        translator=translator,
        writer=writer,
    )


@pytest.fixture
def config():
    return EngineConfig(classification_timeout_s=1, planning_timeout_s=1)


@pytest.fixture
def engine(registry, config):
    return CoordinationEngine(registry, config, EngineMetrics())


@pytest.fixture
def page():
    return PageContext(
        title="Quantum Computing",
        url="https://example.org/quantum",
        content="Quantum computers use qubits to explore many states at once.",
    )


def total_calls(*providers) -> int:
    return sum(p.calls + p.capability_checks for p in providers)
