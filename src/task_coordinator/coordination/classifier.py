"""Intent classification.

The classifier asks the text-generation provider for a JSON classification
and falls back to the deterministic pattern scorer on any failure. Whichever
path chose the primary category, the category-specific parameters are
completed by the same extraction rules.
"""

import asyncio
from typing import Any, Optional

import jsonschema

from task_coordinator.config import EngineConfig
from task_coordinator.coordination.languages import (
    AUTO,
    LANGUAGE_VARIATIONS,
    code_for_word,
)
from task_coordinator.coordination.patterns import (
    classify_by_patterns,
    extract_parameters,
)
from task_coordinator.errors import (
    MalformedResponseError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from task_coordinator.models.enums import IntentCategory, SummaryLength, SummaryType
from task_coordinator.models.intent import AIError, Intent
from task_coordinator.models.request import PageContext
from task_coordinator.observability.logging import get_logger
from task_coordinator.observability.metrics import EngineMetrics
from task_coordinator.providers.base import TextGenerationProvider
from task_coordinator.utils import extract_json_object

logger = get_logger(__name__)

DEFAULT_AI_CONFIDENCE = 0.8

CLASSIFICATION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["primary"],
    "properties": {
        "primary": {
            "type": "string",
            "enum": [c.value for c in IntentCategory],
        },
        "confidence": {"type": ["number", "null"]},
        "secondary": {
            "type": ["array", "null"],
            "items": {"type": "string"},
        },
        "reasoning": {"type": ["string", "null"]},
        "crafted_prompt": {"type": ["string", "null"]},
        "summarization_type": {"type": ["string", "null"]},
        "summarization_length": {"type": ["string", "null"]},
        "target_language": {"type": ["string", "null"]},
        "source_language": {"type": ["string", "null"]},
    },
}

CLASSIFICATION_PROMPT = """You are an intent classifier for an assistant that helps users with text tasks. Classify the user message into one of these categories:

INTENT CATEGORIES:
1. "summarize" - condense content (page, article, text, document)
2. "translate" - translate text or page content into another language
3. "write" - write, compose, draft or create content (emails, cover letters, blog posts, code samples)
4. "research" - research, learn about, or get information on a topic

CLASSIFICATION RULES:
- summarize, summary, tldr, overview, brief, main points, condense -> "summarize"
- translate, translation, convert language, or a language name -> "translate"
- write, compose, draft, create, generate, help with writing -> "write"
- research, find, search, learn, explain, tell me about, what is -> "research"
- A message can have several intents: choose the primary one and list the others as secondary.

SUMMARIZATION PARAMETERS (only when summarizing):
- summarization_type: "key-points" (bullets, main points, takeaways), "tldr" (quick, brief, condensed), "teaser" (intriguing preview, hook), "headline" (title, one sentence)
- summarization_length: "short" (brief, concise), "medium" (default), "long" (detailed, comprehensive, in-depth)

TRANSLATION PARAMETERS (only when translating):
- target_language: ISO 639-1 code of the language to translate TO. Use "{default_language}" for "my language" or when none is named.
- source_language: ISO 639-1 code of the language to translate FROM, or "auto" when not specified.
- Codes: en=English, es=Spanish, fr=French, de=German, it=Italian, pt=Portuguese, ru=Russian, ja=Japanese, ko=Korean, zh=Chinese, ar=Arabic, hi=Hindi, tr=Turkish, pl=Polish, nl=Dutch, sv=Swedish, da=Danish, no=Norwegian, fi=Finnish

EXAMPLES:
- "Quick tldr of this page" -> primary "summarize", type "tldr", length "short"
- "Translate this to Spanish" -> primary "translate", target_language "es", source_language "auto"
- "Convert from French to English" -> primary "translate", target_language "en", source_language "fr"
- "Help me draft an email response" -> primary "write"
- "Tell me about quantum computing" -> primary "research"

RESPONSE FORMAT:
Respond with one JSON object:
{{
  "primary": "summarize|translate|write|research",
  "confidence": 0.0-1.0,
  "secondary": ["intent", ...],
  "reasoning": "brief explanation",
  "crafted_prompt": "the user message rewritten for the target capability",
  "summarization_type": "key-points|tldr|teaser|headline" or null,
  "summarization_length": "short|medium|long" or null,
  "target_language": "code" or null,
  "source_language": "code or auto" or null
}}"""


def build_classification_prompt(
    message: str,
    context: Optional[PageContext],
    default_language: str,
    preview_chars: int,
) -> str:
    prompt = CLASSIFICATION_PROMPT.format(default_language=default_language)
    if context is not None:
        prompt += (
            "\n\nCURRENT PAGE CONTEXT:\n"
            f"Title: {context.title or 'Unknown'}\n"
            f"URL: {context.url or 'Unknown'}\n"
            f"Content Preview: {context.preview(preview_chars) or 'Not available'}"
        )
    return (
        f'{prompt}\n\nUSER MESSAGE: "{message}"\n\n'
        "Analyze this message and respond with the JSON classification:"
    )


def categorize_ai_error(error: BaseException) -> AIError:
    """Maps an AI-path failure onto its diagnostic category."""
    if isinstance(error, ProviderUnavailableError):
        category = "api_unavailable"
    elif isinstance(error, (asyncio.TimeoutError, ProviderTimeoutError)):
        category = "timeout"
    elif isinstance(error, MalformedResponseError) and error.code == "intent.invalid":
        category = "invalid_intent"
    elif isinstance(error, (MalformedResponseError, jsonschema.ValidationError)):
        category = "response_parsing"
    else:
        category = "unexpected"
    return AIError(category=category, message=str(error) or type(error).__name__)


def _coerce_language(value: Any, allow_auto: bool = False) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    value = value.strip().lower()
    if allow_auto and value == AUTO:
        return AUTO
    if value in LANGUAGE_VARIATIONS:
        return value
    return code_for_word(value)


def _coerce_enum(enum_cls, value: Any):
    try:
        return enum_cls(value)
    except ValueError:
        return None


def _coerce_confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_AI_CONFIDENCE
    return max(0.0, min(1.0, float(value)))


class IntentClassifier:
    """Turns a raw request into a single-step :class:`Intent`.

    ``classify`` never raises: a provider error, a timeout, undecodable
    output or an unknown category all route to the pattern fallback, and a
    failure of the fallback itself yields the default research intent.
    """

    def __init__(
        self,
        provider: TextGenerationProvider,
        config: Optional[EngineConfig] = None,
        metrics: Optional[EngineMetrics] = None,
    ) -> None:
        self._provider = provider
        self._config = config or EngineConfig()
        self._metrics = metrics or EngineMetrics()

    async def classify(
        self, message: str, context: Optional[PageContext] = None
    ) -> Intent:
        if not isinstance(message, str) or not message.strip():
            return self.default_intent(
                message if isinstance(message, str) else "",
                reasoning="Empty request; nothing to classify",
            )

        try:
            intent = await self._classify_with_ai(message, context)
        except Exception as e:
            ai_error = categorize_ai_error(e)
            logger.warning(
                "AI intent classification failed, using pattern fallback",
                extra={
                    "extra_fields": {
                        "error_category": ai_error.category,
                        "error": ai_error.message,
                    }
                },
            )
        else:
            self._metrics.inc("classify.ai")
            logger.info(
                "Intent classified by AI",
                extra={
                    "extra_fields": {
                        "primary": intent.primary.value,
                        "confidence": intent.confidence,
                    }
                },
            )
            return intent

        try:
            intent = self._classify_with_patterns(message, ai_error)
        except Exception as e:
            logger.error(
                "Pattern classification failed, using default intent",
                exc_info=True,
            )
            return self.default_intent(
                message,
                reasoning="Default fallback due to system errors",
                ai_error=AIError(category="unexpected", message=str(e)),
            )

        self._metrics.inc("classify.fallback")
        return intent

    def default_intent(
        self,
        message: str,
        reasoning: str,
        ai_error: Optional[AIError] = None,
    ) -> Intent:
        """The last-resort low-confidence research intent."""
        return Intent(
            primary=IntentCategory.RESEARCH,
            confidence=0.5,
            reasoning=reasoning,
            crafted_prompt=message,
            original_message=message,
            ai_powered=False,
            fallback_used=True,
            ai_error=ai_error,
        )

    async def _classify_with_ai(
        self, message: str, context: Optional[PageContext]
    ) -> Intent:
        readiness = await self._provider.capabilities()
        if not readiness.available:
            raise ProviderUnavailableError(
                self._provider.name,
                readiness.error or f"availability is '{readiness.availability}'",
                self._provider.remediation,
            )

        prompt = build_classification_prompt(
            message,
            context,
            self._config.default_language,
            self._config.preview_chars,
        )
        async with self._provider.session() as session:
            response = await asyncio.wait_for(
                session.generate(prompt),
                timeout=self._config.classification_timeout_s,
            )

        data = extract_json_object(response)
        try:
            jsonschema.validate(instance=data, schema=CLASSIFICATION_SCHEMA)
        except jsonschema.ValidationError as e:
            if list(e.absolute_path) == ["primary"]:
                raise MalformedResponseError(
                    f"Invalid primary intent: {data.get('primary')!r}",
                    code="intent.invalid",
                ) from e
            raise

        primary = IntentCategory(data["primary"])
        secondary = [
            category
            for category in (
                _coerce_enum(IntentCategory, value)
                for value in (data.get("secondary") or [])
            )
            if category is not None
        ]
        return self._build_intent(
            message,
            primary=primary,
            secondary=secondary,
            confidence=_coerce_confidence(data.get("confidence")),
            reasoning=data.get("reasoning") or f"AI classified as {primary.value}",
            crafted_prompt=data.get("crafted_prompt") or message,
            ai_powered=True,
            suggested=data,
        )

    def _classify_with_patterns(
        self, message: str, ai_error: Optional[AIError]
    ) -> Intent:
        result = classify_by_patterns(message)
        return self._build_intent(
            message,
            primary=result.primary,
            secondary=list(result.secondary),
            confidence=result.confidence,
            reasoning=result.reasoning,
            crafted_prompt=message,
            ai_powered=False,
            ai_error=ai_error,
        )

    def _build_intent(
        self,
        message: str,
        *,
        primary: IntentCategory,
        secondary: list[IntentCategory],
        confidence: float,
        reasoning: str,
        crafted_prompt: str,
        ai_powered: bool,
        suggested: Optional[dict[str, Any]] = None,
        ai_error: Optional[AIError] = None,
    ) -> Intent:
        categories = [primary, *secondary]
        params = extract_parameters(
            message, categories, self._config.default_language
        )
        suggested = suggested or {}

        summarization_type = summarization_length = None
        if IntentCategory.SUMMARIZE in categories:
            summarization_type = (
                _coerce_enum(SummaryType, suggested.get("summarization_type"))
                or params.summarization_type
            )
            summarization_length = (
                _coerce_enum(SummaryLength, suggested.get("summarization_length"))
                or params.summarization_length
            )

        target_language = source_language = None
        if IntentCategory.TRANSLATE in categories:
            target_language = (
                _coerce_language(suggested.get("target_language"))
                or params.target_language
            )
            source_language = (
                _coerce_language(suggested.get("source_language"), allow_auto=True)
                or params.source_language
            )

        return Intent(
            primary=primary,
            secondary=secondary,
            confidence=confidence,
            reasoning=reasoning,
            crafted_prompt=crafted_prompt,
            original_message=message,
            ai_powered=ai_powered,
            summarization_type=summarization_type,
            summarization_length=summarization_length,
            target_language=target_language,
            source_language=source_language,
            ai_error=ai_error,
        )
