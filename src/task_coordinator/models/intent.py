from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import ConfigDict, Field, ValidationInfo, field_validator

from .base import LanguageCode, ModelBase
from .enums import IntentCategory, SummaryLength, SummaryType


AIErrorCategory = Literal[
    "api_unavailable",
    "response_parsing",
    "timeout",
    "invalid_intent",
    "unexpected",
]


class AIError(ModelBase):
    """Why the AI classification path was abandoned for the fallback."""

    category: AIErrorCategory = Field(
        ..., description="Coarse failure category."
    )
    message: str = Field(..., description="Underlying error text.")


class Intent(ModelBase):
    """
    Single-step classification of one request.

    Produced once by the intent classifier and only read afterwards.
    Category-specific parameters are filled in identically whether the
    AI path or the pattern fallback chose the primary category.
    """

    model_config = ConfigDict(extra="forbid")

    primary: IntentCategory = Field(
        ...,
        description="Main task category.",
    )

    secondary: list[IntentCategory] = Field(
        default_factory=list,
        description="Further categories detected, in order, excluding primary.",
    )

    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Classifier confidence in [0, 1].",
    )

    reasoning: str = Field(
        default="",
        description="Short explanation of the classification.",
    )

    crafted_prompt: str = Field(
        default="",
        description="Request rewritten for the target capability.",
    )

    original_message: str = Field(
        default="",
        description="The raw request text.",
    )

    ai_powered: bool = Field(
        default=False,
        description="Whether the text-generation provider produced the primary category.",
    )

    is_multi_step: bool = Field(
        default=False,
        description="Always false for a classifier intent; plans describe multi-step work.",
    )

    fallback_used: bool = Field(
        default=False,
        description="Whether the last-resort default intent was used.",
    )

    # Summarization parameters
    summarization_type: Optional[SummaryType] = Field(
        default=None,
        description="Summary style (only for summarize requests).",
    )

    summarization_length: Optional[SummaryLength] = Field(
        default=None,
        description="Summary length (only for summarize requests).",
    )

    # Translation parameters
    target_language: Optional[LanguageCode] = Field(
        default=None,
        description="ISO-639-1 target language (only for translate requests).",
    )

    source_language: Optional[LanguageCode] = Field(
        default=None,
        description="ISO-639-1 source language or 'auto'.",
    )

    ai_error: Optional[AIError] = Field(
        default=None,
        description="Diagnostic for a failed AI classification attempt.",
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the intent was produced.",
    )

    @field_validator("secondary")
    @classmethod
    def _exclude_primary(
        cls, value: list[IntentCategory], info: ValidationInfo
    ) -> list[IntentCategory]:
        primary = info.data.get("primary")
        ordered: list[IntentCategory] = []
        for category in value:
            if category == primary or category in ordered:
                continue
            ordered.append(category)
        return ordered
