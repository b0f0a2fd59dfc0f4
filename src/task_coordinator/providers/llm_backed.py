"""Capability providers implemented with a text-generation provider.

These let the coordinator run end to end with nothing more than an OpenAI or
Gemini key: summarization, translation and writing are phrased as prompts to
the wrapped text-generation provider.
"""

from task_coordinator.coordination.languages import AUTO, language_name
from task_coordinator.errors import MalformedResponseError
from task_coordinator.observability.logging import get_logger
from task_coordinator.providers.base import (
    LanguageDetection,
    ProviderCapabilities,
    SummarizationProvider,
    SummarizeOptions,
    TextGenerationProvider,
    TranslationProvider,
    WriteOptions,
    WritingProvider,
)
from task_coordinator.utils import extract_json_object

logger = get_logger(__name__)

SUMMARY_STYLES = {
    "key-points": "as a bulleted list of the key points",
    "tldr": "as a TL;DR",
    "teaser": "as an intriguing teaser that makes the reader want more",
    "headline": "as a single headline",
}

SUMMARY_LENGTHS = {
    "short": "Keep it short.",
    "medium": "Use a moderate length.",
    "long": "Be detailed and thorough.",
}

DETECTION_PROMPT = """Identify the language of the text below. Respond with one JSON object: {{"language": "<ISO 639-1 code>", "confidence": <0.0-1.0>}}

Text:
{text}"""


class _LLMBacked:
    """Mixin delegating readiness and naming to the wrapped provider."""

    def __init__(self, llm: TextGenerationProvider):
        self.llm = llm
        self.remediation = llm.remediation

    async def capabilities(self) -> ProviderCapabilities:
        return await self.llm.capabilities()

    async def _generate(self, prompt: str) -> str:
        async with self.llm.session() as session:
            return (await session.generate(prompt)).strip()


class LLMSummarizer(_LLMBacked, SummarizationProvider):
    name = "llm-summarizer"

    async def summarize(self, text: str, options: SummarizeOptions) -> str:
        style = SUMMARY_STYLES[options.type.value]
        prompt = (
            f"Summarize the following content {style}. "
            f"{SUMMARY_LENGTHS[options.length.value]}"
        )
        if options.format == "plain-text":
            prompt += " Use plain text without markdown."
        else:
            prompt += " Format the answer as markdown."
        if options.language:
            prompt += f" Write the summary in {language_name(options.language)}."
        if options.shared_context:
            prompt += f"\n\nContext: {options.shared_context}"
        return await self._generate(f"{prompt}\n\nContent:\n{text}")


class LLMTranslator(_LLMBacked, TranslationProvider):
    name = "llm-translator"

    async def translate(
        self, text: str, source_language: str, target_language: str
    ) -> str:
        source = (
            "the detected language"
            if source_language == AUTO
            else language_name(source_language)
        )
        prompt = (
            f"Translate the following text from {source} to "
            f"{language_name(target_language)}. Preserve formatting and reply "
            f"with the translation only.\n\nText:\n{text}"
        )
        return await self._generate(prompt)

    async def detect_language(self, text: str) -> LanguageDetection:
        response = await self._generate(DETECTION_PROMPT.format(text=text[:1000]))
        try:
            data = extract_json_object(response)
            return LanguageDetection(
                language=str(data["language"]).strip().lower(),
                confidence=max(0.0, min(1.0, float(data.get("confidence", 0.0)))),
            )
        except (MalformedResponseError, KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Language detection answer unusable",
                extra={"extra_fields": {"error": str(e)[:200]}},
            )
            return LanguageDetection(language=AUTO, confidence=0.0)


class LLMWriter(_LLMBacked, WritingProvider):
    name = "llm-writer"

    async def write(self, prompt: str, options: WriteOptions) -> str:
        instructions = [f"Use a {options.tone} tone and {options.length} length."]
        if options.content_type == "code":
            language = options.language
            if language and language != AUTO:
                instructions.append(f"Write {language} code.")
            else:
                instructions.append("Write code in a suitable language.")
        elif options.language:
            instructions.append(f"Write in {language_name(options.language)}.")
        if options.purpose:
            instructions.append(f"Purpose: {options.purpose}.")
        if options.format == "plain-text":
            instructions.append("Use plain text without markdown.")
        else:
            instructions.append("Format the answer as markdown.")
        return await self._generate(
            f"{' '.join(instructions)}\n\nRequest:\n{prompt}"
        )
