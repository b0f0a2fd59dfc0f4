"""Utility functions for the task coordinator.

This module provides shared helpers used across the coordinator, most
importantly the extraction of a JSON object from free-form model output.
"""

import json
import re
from typing import Any

from task_coordinator.errors import MalformedResponseError

_CODE_FENCE = re.compile(r"```(?:json|JSON)?")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_SMART_QUOTES = str.maketrans(
    {"“": '"', "”": '"', "‘": "'", "’": "'"}
)


def find_balanced_object(text: str) -> str:
    """Returns the first balanced ``{...}`` span of ``text``.

    Braces inside JSON string literals (including escaped quotes) do not
    count towards the nesting depth.

    Args:
        text: Arbitrary text that may contain a JSON object.

    Returns:
        The substring from the first ``{`` to its matching ``}``.

    Raises:
        MalformedResponseError: If there is no opening brace or it is never
            closed.
    """
    start = text.find("{")
    if start < 0:
        raise MalformedResponseError("No JSON object found in response.")

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]

    raise MalformedResponseError("Unbalanced braces in JSON response.")


def _lenient(candidate: str) -> str:
    return _TRAILING_COMMA.sub(r"\1", candidate.translate(_SMART_QUOTES))


def extract_json_object(text: str) -> dict[str, Any]:
    """Extracts and decodes the first JSON object embedded in ``text``.

    Markdown code fences are ignored. When strict decoding fails, one lenient
    re-parse is attempted after normalising typographic quotes and removing
    trailing commas.

    Args:
        text: Model output, possibly wrapping the object in prose.

    Returns:
        The decoded object.

    Raises:
        MalformedResponseError: If no object can be decoded.
    """
    if not text or not text.strip():
        raise MalformedResponseError("Empty response.")

    cleaned = _CODE_FENCE.sub("", text)
    try:
        candidate = find_balanced_object(cleaned)
    except MalformedResponseError:
        # Typographic quotes can hide string boundaries from the scanner.
        candidate = find_balanced_object(cleaned.translate(_SMART_QUOTES))

    try:
        decoded = json.loads(candidate)
    except json.JSONDecodeError:
        try:
            decoded = json.loads(_lenient(candidate))
        except json.JSONDecodeError as e:
            raise MalformedResponseError(
                f"Could not decode JSON object: {e.msg}"
            ) from e

    return decoded


def truncate(text: str, limit: int) -> str:
    """Returns ``text`` cut to at most ``limit`` characters."""
    if limit <= 0 or len(text) <= limit:
        return text
    return text[:limit]

