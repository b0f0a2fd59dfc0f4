"""Language table and language extraction from free-form requests.

Codes are ISO-639-1. Each language lists the words a user may type for it:
its English name, its native name and common abbreviations.
"""

import re
from typing import Optional

from task_coordinator.models.base import LanguageCode

AUTO = "auto"

LANGUAGE_VARIATIONS: dict[LanguageCode, tuple[str, ...]] = {
    "en": ("english", "en", "eng"),
    "es": ("spanish", "español", "es", "spa", "castilian"),
    "fr": ("french", "français", "fr", "fra", "francais"),
    "de": ("german", "deutsch", "de", "ger", "deu"),
    "it": ("italian", "italiano", "it", "ita"),
    "pt": ("portuguese", "português", "pt", "por", "portugues"),
    "ru": ("russian", "русский", "ru", "rus"),
    "ja": ("japanese", "日本語", "ja", "jpn", "nihongo"),
    "ko": ("korean", "한국어", "ko", "kor", "hangul"),
    "zh": ("chinese", "中文", "zh", "chi", "mandarin", "cantonese"),
    "ar": ("arabic", "العربية", "ar", "ara"),
    "hi": ("hindi", "हिन्दी", "hi", "hin"),
    "tr": ("turkish", "türkçe", "tr", "tur", "turkce"),
    "pl": ("polish", "polski", "pl", "pol"),
    "nl": ("dutch", "nederlands", "nl", "nld", "flemish"),
    "sv": ("swedish", "svenska", "sv", "swe"),
    "da": ("danish", "dansk", "da", "dan"),
    "no": ("norwegian", "norsk", "no", "nor"),
    "fi": ("finnish", "suomi", "fi", "fin"),
}

LANGUAGE_NAMES: dict[LanguageCode, str] = {
    code: variations[0].capitalize()
    for code, variations in LANGUAGE_VARIATIONS.items()
}

# English names of every language except English itself; a request such as
# "summary in English" is not a translation request.
FOREIGN_LANGUAGE_NAMES: tuple[str, ...] = tuple(
    variations[0]
    for code, variations in LANGUAGE_VARIATIONS.items()
    if code != "en"
)

_TARGET_PATTERN = re.compile(r"\b(?:to|into|in)\s+(\w+)", re.IGNORECASE)
_CONVERT_PATTERN = re.compile(
    r"\b(?:make\s+(?:it|this)|convert\s+(?:to|into))\s+(\w+)", re.IGNORECASE
)
_SOURCE_PATTERN = re.compile(r"\b(?:from|out\s+of)\s+(\w+)", re.IGNORECASE)
_PAIR_PATTERN = re.compile(r"\b(\w+)\s+to\s+\w+", re.IGNORECASE)

_NON_LANGUAGE_WORDS = frozenset(
    {"this", "that", "it", "text", "page", "content", "no"}
)


def code_for_word(word: str) -> Optional[LanguageCode]:
    """Maps one word (name, native name or abbreviation) to its code."""
    word = word.strip().lower()
    for code, variations in LANGUAGE_VARIATIONS.items():
        if word in variations:
            return code
    return None


def language_name(code: Optional[LanguageCode]) -> str:
    if not code:
        return ""
    return LANGUAGE_NAMES.get(code, code)


def _mentions(text: str, variation: str) -> bool:
    if not variation.isascii():
        return variation in text
    return re.search(rf"(?<!\w){re.escape(variation)}(?!\w)", text) is not None


def _first_code(
    pattern: re.Pattern, text: str, skip=frozenset()
) -> Optional[LanguageCode]:
    for match in pattern.finditer(text):
        word = match.group(1).lower()
        if word in skip:
            continue
        code = code_for_word(word)
        if code:
            return code
    return None


def extract_target_language(
    message: str, default: LanguageCode = "en"
) -> LanguageCode:
    """Finds the language a request wants its output in.

    Checked in order: "to/into/in <language>", "make it <language>" and
    "convert to <language>", then any standalone language name. Anything
    else, including "my language", resolves to ``default``.
    """
    text = message.lower()

    code = _first_code(
        _TARGET_PATTERN, text, skip=_NON_LANGUAGE_WORDS
    ) or _first_code(_CONVERT_PATTERN, text, skip=_NON_LANGUAGE_WORDS)
    if code:
        return code

    for code, variations in LANGUAGE_VARIATIONS.items():
        for variation in variations:
            # Short abbreviations collide with ordinary words ("it", "nor").
            if len(variation) > 3 and _mentions(text, variation):
                return code

    return default


def extract_source_language(message: str) -> LanguageCode:
    """Finds the language a request says its input is in, else ``auto``."""
    text = message.lower()
    return (
        _first_code(_SOURCE_PATTERN, text)
        or _first_code(_PAIR_PATTERN, text, skip=_NON_LANGUAGE_WORDS)
        or AUTO
    )


def find_language_name(message: str) -> Optional[LanguageCode]:
    """Returns the code of the first foreign language named in ``message``."""
    text = message.lower()
    for name in FOREIGN_LANGUAGE_NAMES:
        if _mentions(text, name):
            return code_for_word(name)
    return None
