"""Static configuration for the coordination engine."""

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from task_coordinator.observability.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_OUTPUT_LANGUAGES = ("en", "es", "ja")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class EngineConfig(BaseModel):
    """
    Static configuration for the coordination engine.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    default_language: str = Field(
        default="en",
        description="Language used when a translation target cannot be detected.",
    )
    classification_timeout_s: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound for one AI intent classification call.",
    )
    planning_timeout_s: float = Field(
        default=120.0,
        gt=0,
        description="Upper bound for one AI plan synthesis call.",
    )
    preview_chars: int = Field(
        default=500,
        ge=0,
        description="Length of the page content preview embedded in prompts.",
    )
    max_input_chars: int = Field(
        default=100_000,
        gt=0,
        description="Summarization input is truncated to this many characters.",
    )
    dispatch_secondary_intents: bool = Field(
        default=True,
        description="Whether the single-step path also dispatches secondary intents.",
    )

    @field_validator("default_language")
    @classmethod
    def _supported_language(cls, value: str) -> str:
        value = (value or "").strip().lower()
        if value not in SUPPORTED_OUTPUT_LANGUAGES:
            logger.warning(
                f"Language '{value}' not supported. Supported languages: "
                f"{', '.join(SUPPORTED_OUTPUT_LANGUAGES)}. Defaulting to 'en'."
            )
            return "en"
        return value

    @classmethod
    def from_env(cls, **overrides) -> "EngineConfig":
        """Builds a config from ``COORDINATOR_*`` environment variables.

        Args:
            **overrides: Explicit values that win over the environment.

        Returns:
            A frozen EngineConfig.
        """
        values: dict[str, Optional[object]] = {
            "default_language": os.environ.get(
                "COORDINATOR_DEFAULT_LANGUAGE", "en"
            ),
            "classification_timeout_s": float(
                os.environ.get("COORDINATOR_CLASSIFY_TIMEOUT", "30")
            ),
            "planning_timeout_s": float(
                os.environ.get("COORDINATOR_PLAN_TIMEOUT", "120")
            ),
            "preview_chars": int(
                os.environ.get("COORDINATOR_PREVIEW_CHARS", "500")
            ),
            "max_input_chars": int(
                os.environ.get("COORDINATOR_MAX_INPUT_CHARS", "100000")
            ),
            "dispatch_secondary_intents": _env_bool(
                "COORDINATOR_DISPATCH_SECONDARY", True
            ),
        }
        values.update(overrides)
        return cls(**values)
