"""Data models describing one incoming coordination request."""

from typing import Optional

from pydantic import ConfigDict, Field, model_validator

from .base import ModelBase

DEFAULT_PREVIEW_CHARS = 500


class PageContext(ModelBase):
    """The document the user is currently looking at.

    Attributes:
        title: Document title.
        url: Document location.
        content: Extracted plain-text content.
        content_preview: Short excerpt used in prompts.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    title: str = Field(default="", description="Document title.")
    url: str = Field(default="", description="Document location.")
    content: str = Field(default="", description="Extracted plain-text content.")
    content_preview: Optional[str] = Field(
        default=None,
        description="Short excerpt of the content used in prompts.",
    )

    @model_validator(mode="after")
    def _derive_preview(self) -> "PageContext":
        if self.content_preview is None and self.content:
            # frozen model: bypass assignment validation
            object.__setattr__(
                self, "content_preview", self.content[:DEFAULT_PREVIEW_CHARS]
            )
        return self

    @property
    def has_content(self) -> bool:
        return bool(self.content and self.content.strip())

    def preview(self, limit: int) -> str:
        """Returns at most ``limit`` characters of the content."""
        if self.content:
            return self.content[:limit]
        return self.content_preview or ""


class CoordinationRequest(ModelBase):
    """Immutable request for one coordination call."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    message: str = Field(..., description="Raw user request text.")
    context: Optional[PageContext] = Field(
        default=None, description="Optional current page context."
    )
