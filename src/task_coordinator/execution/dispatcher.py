"""Capability dispatch.

Maps an (agent, action) pair onto the provider registered for that agent,
checks the provider's readiness before calling it, and returns the
provider's plain-text answer. Display formatting is left to the result
formatter.
"""

import re
from typing import Any, Optional, Union

from task_coordinator.config import EngineConfig
from task_coordinator.coordination.languages import AUTO, language_name
from task_coordinator.errors import ProviderUnavailableError, StepExecutionError
from task_coordinator.models.base import CURRENT_PAGE, USER_MESSAGE
from task_coordinator.models.enums import (
    AGENT_ACTIONS,
    Action,
    Agent,
    CATEGORY_AGENTS,
    IntentCategory,
    SummaryLength,
    SummaryType,
)
from task_coordinator.models.intent import Intent
from task_coordinator.models.plan import ExecutionStep
from task_coordinator.models.request import PageContext
from task_coordinator.execution.progress import ProgressChannel
from task_coordinator.observability.logging import get_logger
from task_coordinator.providers.base import (
    CapabilityProvider,
    ProviderRegistry,
    SummarizeOptions,
    WriteOptions,
)
from task_coordinator.utils import truncate

logger = get_logger(__name__)

StepInput = Union[str, PageContext, None]

DETECTION_CONFIDENCE = 0.5

_PAGE_REFERENCE = re.compile(r"\b(page|this|current)\b", re.IGNORECASE)
_QUOTED_TEXT = re.compile(r"\"([^\"]+)\"|'([^']+)'")
_SUMMARIZE_TEXT = re.compile(r"summarize\s+(.+)$", re.IGNORECASE)
_TRANSLATE_TEXT = re.compile(
    r"translate\s+(.+?)(?:\s+to\s+\w+)?$", re.IGNORECASE
)

RESEARCH_PROMPT = """You are a helpful research assistant. Provide accurate, informative, and well-structured responses to user queries. If you don't know something, say so rather than guessing.

User query: {query}

Please provide a comprehensive response:"""


def _first_group(pattern: re.Pattern, prompt: str) -> str:
    for candidate in (_QUOTED_TEXT, pattern):
        match = candidate.search(prompt)
        if match:
            for group in match.groups():
                if group and group.strip():
                    return group.strip()
    return prompt


def extract_text_to_summarize(prompt: str) -> str:
    """Pulls the text to summarize out of a request.

    Quoted text wins, then whatever follows "summarize". Falls back to the
    whole prompt.
    """
    return _first_group(_SUMMARIZE_TEXT, prompt)


def extract_text_to_translate(prompt: str) -> str:
    """Pulls the text to translate out of a request.

    Quoted text wins, then whatever follows "translate" up to a trailing
    "to <language>". Falls back to the whole prompt.
    """
    return _first_group(_TRANSLATE_TEXT, prompt)


def refers_to_page(prompt: str, context: Optional[PageContext]) -> bool:
    """True when the request points at the current page and one is available."""
    return context is not None and bool(_PAGE_REFERENCE.search(prompt))


def build_research_prompt(
    query: str, context: Optional[PageContext], preview_chars: int
) -> str:
    lowered = query.lower()
    if context is not None and ("this page" in lowered or "current page" in lowered):
        query = f'Based on the current page "{context.title}" ({context.url}), {query}'
        preview = context.preview(preview_chars)
        if preview:
            query = f"{query}\n\nPage content: {preview}"
    return RESEARCH_PROMPT.format(query=query)


def route_intent(
    category: IntentCategory,
    intent: Intent,
    context: Optional[PageContext],
    step: int = 1,
) -> tuple[ExecutionStep, StepInput]:
    """Chooses the action and input for one category of a single-step intent.

    Returns:
        The step to run and its already-resolved input.
    """
    prompt = intent.crafted_prompt or intent.original_message
    agent = CATEGORY_AGENTS[category]
    wants_page = refers_to_page(prompt, context) or refers_to_page(
        intent.original_message, context
    )

    if category == IntentCategory.SUMMARIZE:
        params = {
            "type": (intent.summarization_type or SummaryType.KEY_POINTS).value,
            "length": (intent.summarization_length or SummaryLength.MEDIUM).value,
        }
        if wants_page:
            return (
                ExecutionStep(
                    step=step,
                    agent=agent,
                    action=Action.SUMMARIZE_PAGE,
                    input=CURRENT_PAGE,
                    params=params,
                ),
                context,
            )
        return (
            ExecutionStep(
                step=step,
                agent=agent,
                action=Action.SUMMARIZE_TEXT,
                input=USER_MESSAGE,
                params=params,
            ),
            extract_text_to_summarize(prompt),
        )

    if category == IntentCategory.TRANSLATE:
        params = {
            "target_language": intent.target_language,
            "source_language": intent.source_language or AUTO,
        }
        if wants_page:
            return (
                ExecutionStep(
                    step=step,
                    agent=agent,
                    action=Action.TRANSLATE_PAGE,
                    input=CURRENT_PAGE,
                    params=params,
                ),
                context,
            )
        return (
            ExecutionStep(
                step=step,
                agent=agent,
                action=Action.TRANSLATE_TEXT,
                input=USER_MESSAGE,
                params=params,
            ),
            extract_text_to_translate(prompt),
        )

    if category == IntentCategory.WRITE:
        action = Action.WRITE_CONTENT
    else:
        action = Action.RESEARCH_QUERY
    return (
        ExecutionStep(
            step=step, agent=agent, action=action, input=USER_MESSAGE
        ),
        prompt,
    )


class CapabilityDispatcher:
    """Invokes capability providers for (agent, action) pairs.

    Stateless between calls apart from the provider handles held by the
    registry. Every call acquires a provider session and releases it on every
    exit path.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self._registry = registry
        self._config = config or EngineConfig()

    async def ensure_ready(self, agent: Agent) -> CapabilityProvider:
        """Checks that the provider behind ``agent`` can be used now.

        Raises:
            ProviderUnavailableError: With a remediation hint, without the
                provider having been called.
        """
        provider = self._registry.for_agent(agent)
        try:
            readiness = await provider.capabilities()
        except Exception as e:
            raise ProviderUnavailableError(
                provider.name, f"capability check failed: {e}", provider.remediation
            ) from e

        if not readiness.supported:
            detail = readiness.error or "not supported in this environment"
        elif not readiness.available:
            detail = readiness.error or f"availability is '{readiness.availability}'"
        else:
            return provider
        raise ProviderUnavailableError(provider.name, detail, provider.remediation)

    async def dispatch(
        self,
        agent: Agent,
        action: Action,
        step_input: StepInput,
        params: Optional[dict[str, Any]] = None,
        context: Optional[PageContext] = None,
        *,
        progress: Optional[ProgressChannel] = None,
        step: int = 1,
    ) -> str:
        """Runs one capability call and returns its text.

        Progress events for the call are emitted on ``progress`` when given.

        Raises:
            ProviderUnavailableError: If the provider is not ready.
            StepExecutionError: If the pair is invalid or the input is empty.
            Exception: Whatever the provider raises, including timeouts.
        """
        if action not in AGENT_ACTIONS[agent]:
            raise StepExecutionError(
                f"Unknown action {action.value} for agent {agent.value}"
            )

        def notify(stage, message=""):
            if progress is not None:
                progress.emit(
                    stage, agent=agent, action=action, step=step, message=message
                )

        try:
            provider = await self.ensure_ready(agent)
            notify("started")
            async with provider.session() as session:
                result, skipped = await self._invoke(
                    session, action, step_input, params or {}, context
                )
        except Exception as e:
            notify("failed", str(e))
            raise

        notify("skipped" if skipped else "completed")
        return result

    async def _invoke(
        self,
        session,
        action: Action,
        step_input: StepInput,
        params: dict[str, Any],
        context: Optional[PageContext],
    ) -> tuple[str, bool]:
        if action == Action.SUMMARIZE_PAGE:
            text = self._page_text(step_input, context, "summarize")
            return await self._summarize(session, text, params, context), False
        if action == Action.SUMMARIZE_TEXT:
            text = self._text(step_input, "summarize")
            return await self._summarize(session, text, params, context), False
        if action == Action.TRANSLATE_PAGE:
            text = self._page_text(step_input, context, "translate")
            return await self._translate(session, text, params)
        if action == Action.TRANSLATE_TEXT:
            text = self._text(step_input, "translate")
            return await self._translate(session, text, params)
        if action == Action.WRITE_CONTENT:
            text = self._text(step_input, "write about")
            return await self._write(session, text, params, context), False
        if action == Action.RESEARCH_QUERY:
            prompt = build_research_prompt(
                self._text(step_input, "research"),
                context,
                self._config.preview_chars,
            )
            return await session.generate(prompt), False
        return await session.generate(self._text(step_input, "process")), False

    def _page_text(
        self, step_input: StepInput, context: Optional[PageContext], verb: str
    ) -> str:
        page = step_input if isinstance(step_input, PageContext) else context
        if page is None or not page.has_content:
            raise StepExecutionError(
                f"No page content available to {verb}. "
                "Open a page with text content first."
            )
        return page.content

    def _text(self, step_input: StepInput, verb: str) -> str:
        if isinstance(step_input, PageContext):
            text = step_input.content
        else:
            text = step_input or ""
        if not text.strip():
            raise StepExecutionError(
                f"No text provided to {verb}. Please specify it in your request."
            )
        return text

    async def _summarize(
        self,
        session,
        text: str,
        params: dict[str, Any],
        context: Optional[PageContext],
    ) -> str:
        options = SummarizeOptions(
            type=_enum_or(SummaryType, params.get("type"), SummaryType.KEY_POINTS),
            length=_enum_or(
                SummaryLength, params.get("length"), SummaryLength.MEDIUM
            ),
            language=params.get("language"),
            shared_context=(
                f"Page: {context.title}" if context and context.title else None
            ),
        )
        if len(text) > self._config.max_input_chars:
            logger.warning(
                "Summarization input truncated",
                extra={
                    "extra_fields": {
                        "chars": len(text),
                        "limit": self._config.max_input_chars,
                    }
                },
            )
            text = truncate(text, self._config.max_input_chars)
        return await session.summarize(text, options)

    async def _translate(
        self, session, text: str, params: dict[str, Any]
    ) -> tuple[str, bool]:
        """Translates ``text``; the flag is True when translation was skipped."""
        target = params.get("target_language") or self._config.default_language
        source = params.get("source_language") or AUTO

        if source == AUTO:
            detection = await session.detect_language(text)
            confident = detection.confidence >= DETECTION_CONFIDENCE
            if confident and detection.language == target:
                logger.info(
                    "Translation skipped, text already in target language",
                    extra={"extra_fields": {"language": target}},
                )
                note = (
                    f"*Text is already in {language_name(target)}; "
                    "no translation needed.*"
                )
                return f"{text}\n\n{note}", True
            if confident:
                source = detection.language

        return await session.translate(text, source, target), False

    async def _write(
        self,
        session,
        prompt: str,
        params: dict[str, Any],
        context: Optional[PageContext],
    ) -> str:
        if context is not None and (context.title or context.url):
            prompt = f"{prompt}\n\nContext: {context.title} - {context.url}"
        text_format = params.get("format")
        if text_format not in ("markdown", "plain-text"):
            text_format = "markdown"
        options = WriteOptions(
            tone=params.get("tone") or "neutral",
            length=params.get("length") or "medium",
            format=text_format,
            content_type=params.get("content_type"),
            language=params.get("language"),
            purpose=params.get("purpose"),
        )
        # Placeholder answers ("not yet available") pass through unchanged.
        return await session.write(prompt, options)


def _enum_or(enum_cls, value, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default
