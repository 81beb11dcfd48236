# Schemas package - Pydantic models for request/response validation
from app.schemas.meme import (
    ConversationType,
    ConversationInput,
    TextBox,
    MemeTemplate,
    ProcessedText,
    GenerationErrorKind,
    TemplatesStatus,
    ImgflipMeme,
    ImgflipResponse,
    CaptionRequest,
    CaptionResponse,
    ErrorResponse,
)

__all__ = [
    "ConversationType",
    "ConversationInput",
    "TextBox",
    "MemeTemplate",
    "ProcessedText",
    "GenerationErrorKind",
    "TemplatesStatus",
    "ImgflipMeme",
    "ImgflipResponse",
    "CaptionRequest",
    "CaptionResponse",
    "ErrorResponse",
]
