"""
Meme generation schemas.

This module contains all Pydantic models for the conversation-to-caption
pipeline: catalog payloads, templates, session state pieces, and the
request/response bodies of the HTTP API.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ConversationType(str, Enum):
    """Supported conversation classifications (closed set)."""
    TEXT = "text"
    TWEET = "tweet"
    CHAT = "chat"


class GenerationErrorKind(str, Enum):
    """Why the last caption generation failed."""
    CONFIGURATION = "configuration"
    UPSTREAM = "upstream"
    EMPTY_RESPONSE = "empty_response"


class TemplatesStatus(str, Enum):
    """Lifecycle of the template gallery."""
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    UNAVAILABLE = "unavailable"


# =============================================================================
# DOMAIN MODELS
# =============================================================================

class ConversationInput(BaseModel):
    """The pasted conversation and its user-chosen type."""

    text: str = ""
    type: ConversationType = ConversationType.TEXT


class TextBox(BaseModel):
    """
    A caption region on a template.

    Coordinates are percentages of the image size; (x, y) is the center.
    """

    x: float = Field(..., ge=0, le=100)
    y: float = Field(..., ge=0, le=100)
    width: float = Field(..., ge=0, le=100)
    height: float = Field(..., ge=0, le=100)
    text: str = ""


class MemeTemplate(BaseModel):
    """A meme image plus its ordered caption regions."""

    id: str
    name: str
    image_url: str
    text_boxes: list[TextBox] = Field(default_factory=list)

    @property
    def has_text(self) -> bool:
        """Check if any box carries caption text."""
        return any(box.text for box in self.text_boxes)


class ProcessedText(BaseModel):
    """Lifecycle of the asynchronous caption generation call."""

    lines: list[str] = Field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None
    error_kind: Optional[GenerationErrorKind] = None


# =============================================================================
# IMGFLIP CATALOG SCHEMAS
# =============================================================================

class ImgflipMeme(BaseModel):
    """One catalog entry as returned by Imgflip."""

    id: str
    name: str
    url: str
    width: int
    height: int
    box_count: int = Field(..., ge=0)


class ImgflipData(BaseModel):
    memes: list[ImgflipMeme] = Field(default_factory=list)


class ImgflipResponse(BaseModel):
    """
    Raw catalog payload from ``GET /get_memes``.

    Imgflip omits ``data`` and sets ``error_message`` when ``success`` is false.
    """

    success: bool
    data: Optional[ImgflipData] = None
    error_message: Optional[str] = None


# =============================================================================
# HTTP REQUEST/RESPONSE SCHEMAS
# =============================================================================

class CaptionRequest(BaseModel):
    """Request schema for stand-alone caption generation."""

    text: str = Field(
        ...,
        min_length=1,
        max_length=5000,
        description="The conversation to turn into captions",
        examples=["A: did you push to prod?\nB: it's Friday, what do you think"],
    )
    type: ConversationType = Field(
        ConversationType.TEXT,
        description="How the conversation should be described to the model",
    )
    line_count: int = Field(
        ...,
        ge=1,
        le=10,
        description="Number of caption lines wanted (usually the template's box count)",
    )

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        """Reject whitespace-only conversations."""
        if not v.strip():
            raise ValueError("Conversation text cannot be empty")
        return v


class CaptionResponse(BaseModel):
    lines: list[str]


class TemplateListResponse(BaseModel):
    templates: list[MemeTemplate]


class BindRequest(BaseModel):
    """Bind caption lines onto a template's text boxes."""

    template: MemeTemplate
    lines: list[str] = Field(default_factory=list)


class RenderRequest(BaseModel):
    """Flatten a bound template into a downloadable image."""

    template: MemeTemplate


class SessionInputUpdate(BaseModel):
    """Partial update of the session's conversation input."""

    text: Optional[str] = None
    type: Optional[ConversationType] = None


class SelectTemplateRequest(BaseModel):
    template_id: str = Field(..., min_length=1)


# =============================================================================
# ERROR RESPONSE SCHEMA
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str = Field(..., description="Error type/code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[dict] = Field(None, description="Additional error details")
