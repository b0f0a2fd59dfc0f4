"""Deterministic pattern matching used when the text-generation provider fails.

Contains the keyword/regex category scorer, the summarization cue
vocabulary, the narrow multi-step plan detector, and the cheap heuristic
that decides whether a request is worth sending to the plan synthesizer.
"""

import re
from dataclasses import dataclass
from typing import Optional

from task_coordinator.coordination.languages import (
    AUTO,
    FOREIGN_LANGUAGE_NAMES,
    extract_source_language,
    extract_target_language,
    find_language_name,
)
from task_coordinator.models.base import CURRENT_PAGE, LanguageCode
from task_coordinator.models.enums import (
    Action,
    Agent,
    ExecutionType,
    IntentCategory,
    SummaryLength,
    SummaryType,
)
from task_coordinator.models.plan import ExecutionPlan, ExecutionStep

KEYWORD_SCORE = 1
PATTERN_SCORE = 2
NO_MATCH_CONFIDENCE = 0.5

_LANGS = "spanish|french|german|chinese|japanese|italian|portuguese|russian|korean|arabic|hindi|english"
_FOREIGN = "|".join(FOREIGN_LANGUAGE_NAMES)


def _compile(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


@dataclass(frozen=True)
class CategoryRules:
    keywords: tuple[str, ...]
    patterns: tuple[re.Pattern, ...]


CATEGORY_RULES: dict[IntentCategory, CategoryRules] = {
    IntentCategory.SUMMARIZE: CategoryRules(
        keywords=(
            "summarize", "summary", "tldr", "brief", "overview", "sum up",
            "digest", "condense",
        ),
        patterns=_compile(
            r"summarize (this|the|current)? ?(page|article|content|text)",
            r"give me a (summary|overview|brief)",
            r"what (is|are) the (main|key) points",
            r"tldr",
            r"can you summarize",
        ),
    ),
    IntentCategory.TRANSLATE: CategoryRules(
        keywords=(
            "translate", "translation", "convert", "language", "spanish",
            "french", "german", "italian", "portuguese", "russian",
            "japanese", "chinese", "korean", "arabic", "hindi", "english",
        ),
        patterns=_compile(
            r"translate (this|the|current)? ?(page|text|content)? ?(to|into|in) ?\w+",
            r"translate (this|the|current)? ?(page|text|content)?$",
            rf"({_LANGS})\s+(translation|version)",
            r"what does this mean in \w+",
            r"convert (this|the|current)? ?(page|text|content)? ?(to|into|in) ?\w+",
            r"convert to \w+ language",
            rf"make (this|it) ({_LANGS})",
            rf"put (this|it) in ({_LANGS})",
            rf"(from|in) ({_LANGS}) to ({_LANGS})",
            r"change language to \w+",
            r"to (my )?language",
        ),
    ),
    IntentCategory.WRITE: CategoryRules(
        keywords=(
            "write", "compose", "draft", "create", "help me write",
            "generate", "email", "letter", "cover letter", "blog", "post",
            "article", "response", "reply", "code", "sample", "example",
            "script", "function",
        ),
        patterns=_compile(
            r"help me write (a|an)? ?\w+",
            r"compose (a|an)? ?\w+",
            r"draft (a|an)? ?\w+",
            r"create (a|an)? ?\w+",
            r"generate (a|an)? ?\w+",
            r"write (a|an)? ?(email|letter|blog|post|article|response|reply|cover\s*letter|proposal|report|code|sample|example|script|function)",
            r"draft (email|letter|blog|post|article|response|reply|cover\s*letter|proposal|report)",
            r"(email|letter|blog|post|article) (response|reply)",
            r"cover\s*letter",
            r"job\s*application",
            r"help (with|me) writ",
            r"compose\s+(email|message|letter|text)",
            r"create\s+(content|post|article|blog)",
            r"write about",
            r"generate\s+(text|content|post|email|code|sample|example)",
            r"(sample|example)\s+(code|script|function)",
            r"write\s+(sample|code|example)",
            r"show\s+me\s+(code|sample|example)",
            r"give\s+me\s+(a\s+)?(code|sample|example)",
        ),
    ),
    IntentCategory.RESEARCH: CategoryRules(
        keywords=(
            "research", "find", "search", "learn", "tell me about",
            "explain", "what is",
        ),
        patterns=_compile(
            r"tell me about \w+",
            r"what is \w+",
            r"explain \w+",
            r"research \w+",
            r"find (information|info) about",
            r"learn (more )?about",
        ),
    ),
}


@dataclass(frozen=True)
class PatternClassification:
    """Outcome of the keyword/regex scorer."""

    primary: IntentCategory
    secondary: tuple[IntentCategory, ...]
    confidence: float
    reasoning: str
    scores: dict[IntentCategory, int]


def score_categories(message: str) -> dict[IntentCategory, int]:
    """Scores every category: +1 per keyword found, +2 per pattern match."""
    lowered = message.lower()
    scores: dict[IntentCategory, int] = {}
    for category, rules in CATEGORY_RULES.items():
        score = sum(KEYWORD_SCORE for k in rules.keywords if k in lowered)
        score += sum(PATTERN_SCORE for p in rules.patterns if p.search(message))
        scores[category] = score
    return scores


def classify_by_patterns(message: str) -> PatternClassification:
    """Classifies a request with the deterministic scorer.

    The highest score wins; ties keep the category declaration order. With no
    match at all the request is treated as research with confidence 0.5.
    """
    scores = score_categories(message)
    ranked = sorted(
        (item for item in scores.items() if item[1] > 0),
        key=lambda item: item[1],
        reverse=True,
    )

    if not ranked:
        return PatternClassification(
            primary=IntentCategory.RESEARCH,
            secondary=(),
            confidence=NO_MATCH_CONFIDENCE,
            reasoning="Pattern-based classification (fallback) - no clear match, defaulting to research",
            scores=scores,
        )

    primary, max_score = ranked[0]
    return PatternClassification(
        primary=primary,
        secondary=tuple(category for category, _ in ranked[1:]),
        confidence=min(max_score / 3, 1.0),
        reasoning=f"Pattern-based classification (fallback) - found {len(ranked)} intents",
        scores=scores,
    )


# Summarization cues, checked in order.
SUMMARY_TYPE_CUES: tuple[tuple[SummaryType, tuple[str, ...]], ...] = (
    (
        SummaryType.TLDR,
        ("tldr", "brief", "quick", "condensed", "executive summary", "overview"),
    ),
    (
        SummaryType.KEY_POINTS,
        (
            "key points", "main points", "bullet", "list", "highlights",
            "takeaways", "important points", "structured",
        ),
    ),
    (
        SummaryType.TEASER,
        ("teaser", "preview", "hook", "intriguing", "compelling", "draw interest"),
    ),
    (
        SummaryType.HEADLINE,
        ("headline", "title", "one sentence", "one-liner", "main point", "in a sentence"),
    ),
)

SUMMARY_LENGTH_CUES: tuple[tuple[SummaryLength, tuple[str, ...]], ...] = (
    (
        SummaryLength.SHORT,
        ("short", "brief", "quick", "concise", "compact", "few sentences"),
    ),
    (
        SummaryLength.LONG,
        (
            "long", "detailed", "comprehensive", "thorough", "in-depth",
            "extensive", "multiple paragraphs", "full summary",
        ),
    ),
    (SummaryLength.MEDIUM, ("medium", "standard", "regular", "balanced")),
)


def detect_summary_type(message: str) -> SummaryType:
    lowered = message.lower()
    for summary_type, cues in SUMMARY_TYPE_CUES:
        if any(cue in lowered for cue in cues):
            return summary_type
    return SummaryType.KEY_POINTS


def detect_summary_length(
    message: str, summary_type: Optional[SummaryType] = None
) -> SummaryLength:
    lowered = message.lower()
    for length, cues in SUMMARY_LENGTH_CUES:
        if any(cue in lowered for cue in cues):
            return length
    if summary_type in (SummaryType.TLDR, SummaryType.HEADLINE):
        return SummaryLength.SHORT
    return SummaryLength.MEDIUM


@dataclass(frozen=True)
class CategoryParameters:
    """Category-specific parameters derived from the request text."""

    summarization_type: Optional[SummaryType] = None
    summarization_length: Optional[SummaryLength] = None
    target_language: Optional[LanguageCode] = None
    source_language: Optional[LanguageCode] = None


def extract_parameters(
    message: str,
    categories: list[IntentCategory],
    default_language: LanguageCode,
) -> CategoryParameters:
    """Derives parameters for every category present in ``categories``."""
    summary_type = summary_length = None
    target = source = None

    if IntentCategory.SUMMARIZE in categories:
        summary_type = detect_summary_type(message)
        summary_length = detect_summary_length(message, summary_type)

    if IntentCategory.TRANSLATE in categories:
        target = extract_target_language(message, default_language)
        source = extract_source_language(message)

    return CategoryParameters(
        summarization_type=summary_type,
        summarization_length=summary_length,
        target_language=target,
        source_language=source,
    )


# Narrow multi-step detection

_SUMMARY_CUE = r"(brief|short|quick|overview|summary|summarize|tldr)"

SUMMARY_TRANSLATE_PATTERNS = _compile(
    rf"\b{_SUMMARY_CUE}\s+in\s+({_FOREIGN})\b",
    rf"\b({_FOREIGN})\s+(brief|short|overview|summary)\b",
    rf"\b(give|show|provide)\s+me\s+(a\s+)?({_FOREIGN})\s+(brief|short|overview|summary)\b",
    rf"\bsummarize\s+(this|the|it|that|page|article|content)?\s*(in|to)\s+({_FOREIGN})\b",
    rf"\b(tell|explain)\s+me\s+about\s+.+\s+in\s+({_FOREIGN})\b",
)

SUMMARY_CODE_PATTERNS = _compile(
    r"\b(brief|short|overview|summary|summarize)\s+(this|the|page|article|content)?\s*and\s+(write|create|generate|show|give|provide)\s+(sample\s+)?(code|example|script|function)",
    r"\b(brief|short|quick)\s+(summary|overview)\s+and\s+(code|sample|example|script)",
    r"\bsummarize\s+(this|the|current)?\s*(page|article|content)?\s*and\s+write\s+(a\s+)?(sample|code|example)",
    r"\b(overview|summary)\s+and\s+(generate|create|write)\s+(a\s+)?(code|sample|example)",
    r"\b(explain|describe|summarize)\s+(this|the|it)?\s*and\s+(show|give|provide|create)\s+(a\s+)?(code|sample|example)",
)

_SUMMARIZE_THEN_TRANSLATE = re.compile(r"summari[sz]e.+translat", re.IGNORECASE)
_THEN = re.compile(r"\bthen\b", re.IGNORECASE)
_AND_VERB = re.compile(
    r"\band\s+(then\s+)?(translate|summari[sz]e|write|research|create|generate|show|give|provide)\b",
    re.IGNORECASE,
)

PROGRAMMING_LANGUAGES: tuple[tuple[str, str], ...] = (
    ("javascript", "javascript"),
    ("js", "javascript"),
    ("python", "python"),
    ("py", "python"),
    ("java", "java"),
    ("typescript", "typescript"),
    ("ts", "typescript"),
    ("c++", "cpp"),
    ("cpp", "cpp"),
    ("c#", "csharp"),
    ("csharp", "csharp"),
    ("ruby", "ruby"),
    ("go", "go"),
    ("rust", "rust"),
    ("php", "php"),
    ("swift", "swift"),
    ("kotlin", "kotlin"),
)


def detect_programming_language(message: str) -> str:
    lowered = message.lower()
    for keyword, language in PROGRAMMING_LANGUAGES:
        if re.search(rf"(?<![\w+#]){re.escape(keyword)}(?![\w+#])", lowered):
            return language
    return AUTO


def _summary_step(summary_type: SummaryType, length: SummaryLength) -> ExecutionStep:
    return ExecutionStep(
        step=1,
        agent=Agent.SUMMARIZER,
        action=Action.SUMMARIZE_PAGE,
        input=CURRENT_PAGE,
        output="summary_text",
        params={"type": summary_type.value, "length": length.value},
    )


def _summary_translate_plan(
    target: LanguageCode,
    summary_type: SummaryType,
    length: SummaryLength,
    confidence: float,
    reasoning: str,
) -> ExecutionPlan:
    return ExecutionPlan(
        execution_type=ExecutionType.SEQUENTIAL,
        steps=[
            _summary_step(summary_type, length),
            ExecutionStep(
                step=2,
                agent=Agent.TRANSLATOR,
                action=Action.TRANSLATE_TEXT,
                input="summary_text",
                output="final_result",
                params={"target_language": target, "source_language": AUTO},
            ),
        ],
        final_output_language=target,
        primary=IntentCategory.SUMMARIZE,
        secondary=[IntentCategory.TRANSLATE],
        reasoning=reasoning,
        confidence=confidence,
        ai_powered=False,
    )


def detect_multi_step_plan(
    message: str, default_language: LanguageCode = "en"
) -> Optional[ExecutionPlan]:
    """Recognises the few high-value multi-step shapes without a model.

    In priority order: a summarization cue with a language name, an explicit
    "summarize ... then translate", and a summary followed by sample code.

    Returns:
        A sequential plan, or None when no shape matches.
    """
    lowered = message.lower()

    if any(p.search(lowered) for p in SUMMARY_TRANSLATE_PATTERNS):
        target = find_language_name(lowered)
        if target:
            summary_type = SummaryType.KEY_POINTS
            length = SummaryLength.MEDIUM
            if re.search(r"\b(brief|short|quick)\b", lowered):
                summary_type, length = SummaryType.TLDR, SummaryLength.SHORT
            elif re.search(r"\b(detailed|comprehensive)\b", lowered):
                length = SummaryLength.LONG
            return _summary_translate_plan(
                target,
                summary_type,
                length,
                confidence=0.88,
                reasoning="Pattern-based detection: page summarized then translated",
            )

    mentions_both = ("summarize" in lowered and "translate" in lowered) or (
        "summary" in lowered and "translat" in lowered
    )
    if mentions_both and (
        _THEN.search(lowered) or _SUMMARIZE_THEN_TRANSLATE.search(lowered)
    ):
        return _summary_translate_plan(
            extract_target_language(message, default_language),
            SummaryType.KEY_POINTS,
            SummaryLength.MEDIUM,
            confidence=0.85,
            reasoning="Pattern-based detection: summarize then translate (sequential)",
        )

    if any(p.search(lowered) for p in SUMMARY_CODE_PATTERNS):
        summary_type = SummaryType.KEY_POINTS
        if re.search(r"\b(brief|short|quick)\b", lowered):
            summary_type = SummaryType.TLDR
        return ExecutionPlan(
            execution_type=ExecutionType.SEQUENTIAL,
            steps=[
                _summary_step(summary_type, SummaryLength.SHORT),
                ExecutionStep(
                    step=2,
                    agent=Agent.WRITER,
                    action=Action.WRITE_CONTENT,
                    input="summary_text",
                    output="final_result",
                    params={
                        "content_type": "code",
                        "language": detect_programming_language(lowered),
                        "purpose": "sample code based on page content",
                        "tone": "neutral",
                        "format": "markdown",
                    },
                ),
            ],
            primary=IntentCategory.SUMMARIZE,
            secondary=[IntentCategory.WRITE],
            reasoning="Pattern-based detection: page summarized then code written from the summary",
            confidence=0.88,
            ai_powered=False,
        )

    return None


def suggests_multi_step(message: str, secondary: list[IntentCategory]) -> bool:
    """Cheap check deciding whether plan synthesis is worth attempting."""
    if secondary:
        return True
    if _THEN.search(message) or _AND_VERB.search(message):
        return True
    lowered = message.lower()
    has_cue = re.search(rf"\b{_SUMMARY_CUE}\b", lowered) is not None
    return has_cue and find_language_name(lowered) is not None

