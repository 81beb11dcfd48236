"""
Caption Generation Service (OpenAI).

This module turns a conversation into short meme caption lines using the
OpenAI chat completions API:
1. Builds the instruction from the conversation, its type and the line count
2. Calls the completion endpoint (single request, SDK-level retries only)
3. Splits the first completion into at most ``line_count`` lines

A missing OPENAI_API_KEY is reported before any client is created, so
callers can show setup guidance instead of a generic failure.
"""

import logging
from typing import Any, Optional

import openai
from openai import AsyncOpenAI

from app.config import (
    CompletionCredential,
    Settings,
    get_completion_credential,
    get_settings,
    resolve_completion_credential,
)
from app.schemas.meme import ConversationType
from app.services.conversation import SYSTEM_INSTRUCTION, build_caption_instruction

# Configure logging
logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = (
    "OpenAI API key is not configured. "
    "Please add OPENAI_API_KEY to your .env file."
)


class CaptionServiceError(Exception):
    """Base exception for caption generation errors."""
    pass


class CaptionConfigurationError(CaptionServiceError):
    """Raised when the completion credential is missing."""
    pass


class CaptionUpstreamError(CaptionServiceError):
    """Raised when the completion request fails (network, rate limit, bad payload)."""
    pass


class CaptionEmptyResponseError(CaptionServiceError):
    """Raised when the completion contains no text."""
    pass


def split_caption_lines(content: str, line_count: int) -> list[str]:
    """
    Split a completion into caption lines.

    Lines are stripped, blank lines dropped, and the result truncated to
    ``line_count``. Shortfalls are not padded.
    """
    lines = [line.strip() for line in content.strip().splitlines()]
    # Unlike a positional split, a blank line never takes a box slot.
    return [line for line in lines if line][:line_count]


class CaptionService:
    """
    Service for generating meme captions with an OpenAI chat model.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        credential: Optional[CompletionCredential] = None,
    ):
        """
        Initialize the caption service.

        Args:
            settings: Optional settings instance. If not provided, uses default settings.
            credential: Optional pre-resolved credential. When settings are given
                without a credential, the credential is resolved from those settings.
        """
        if settings is None:
            self.settings = get_settings()
            self.credential = credential or get_completion_credential()
        else:
            self.settings = settings
            self.credential = credential or resolve_completion_credential(settings)
        self._client: Optional[AsyncOpenAI] = None

    @property
    def is_configured(self) -> bool:
        return self.credential is not None

    def _get_client(self) -> AsyncOpenAI:
        """Lazy-initialize the OpenAI client once a credential is known."""
        if self.credential is None:
            raise CaptionConfigurationError(MISSING_KEY_MESSAGE)
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.credential.api_key,
                timeout=self.settings.OPENAI_TIMEOUT,
                max_retries=self.settings.OPENAI_MAX_RETRIES,
            )
        return self._client

    def _build_messages(
        self, text: str, conversation_type: ConversationType, line_count: int
    ) -> list[dict[str, str]]:
        prompt = build_caption_instruction(
            text,
            conversation_type,
            line_count,
            max_chars=self.settings.MAX_CAPTION_CHARS,
        )
        return [
            {"role": "system", "content": SYSTEM_INSTRUCTION},
            {"role": "user", "content": prompt},
        ]

    @staticmethod
    def _first_completion_text(response: Any) -> str:
        """Return the first choice's message content, or an empty string."""
        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""
        message = getattr(choices[0], "message", None)
        return (getattr(message, "content", None) or "").strip()

    async def generate_captions(
        self,
        text: str,
        conversation_type: ConversationType,
        line_count: int,
    ) -> list[str]:
        """
        Generate caption lines for a conversation.

        Args:
            text: The conversation to caption (must not be blank)
            conversation_type: How the conversation should be described
            line_count: Maximum number of lines wanted (usually the box count)

        Returns:
            list[str]: At most ``line_count`` caption lines

        Raises:
            ValueError: If text is blank or line_count is not positive
            CaptionConfigurationError: If OPENAI_API_KEY is not configured
            CaptionUpstreamError: If the completion request fails
            CaptionEmptyResponseError: If the completion has no text
        """
        if not text or not text.strip():
            raise ValueError("Conversation text cannot be empty")
        if line_count < 1:
            raise ValueError(f"line_count must be positive, got {line_count}")

        # Fail before touching the network when the credential is missing
        client = self._get_client()
        messages = self._build_messages(text, conversation_type, line_count)

        logger.info(
            f"Requesting {line_count} caption line(s) for a "
            f"{ConversationType(conversation_type).value} of {len(text)} chars "
            f"from {self.settings.OPENAI_CHAT_MODEL}"
        )

        try:
            response = await client.chat.completions.create(
                model=self.settings.OPENAI_CHAT_MODEL,
                messages=messages,
                temperature=self.settings.OPENAI_TEMPERATURE,
                max_tokens=self.settings.OPENAI_MAX_TOKENS,
            )
        except openai.APITimeoutError as e:
            logger.error(f"Completion request timed out: {e}")
            raise CaptionUpstreamError(
                f"Completion request timed out after {self.settings.OPENAI_TIMEOUT} seconds."
            ) from e
        except openai.APIConnectionError as e:
            logger.error(f"Failed to connect to the completion service: {e}")
            raise CaptionUpstreamError(
                "Failed to connect to the completion service. Please try again."
            ) from e
        except openai.APIStatusError as e:
            logger.error(f"Completion service returned status {e.status_code}: {e}")
            raise CaptionUpstreamError(
                f"Completion service returned status {e.status_code}. Please try again."
            ) from e
        except openai.OpenAIError as e:
            logger.error(f"Completion request failed: {e}")
            raise CaptionUpstreamError(
                f"Failed to process text: {str(e)}"
            ) from e

        content = self._first_completion_text(response)
        if not content:
            logger.error("Completion service returned an empty response")
            raise CaptionEmptyResponseError("No response from AI")

        lines = split_caption_lines(content, line_count)
        if not lines:
            logger.error("Completion contained only blank lines")
            raise CaptionEmptyResponseError("No response from AI")

        logger.info(f"Generated {len(lines)} of {line_count} caption line(s)")
        return lines


# Convenience function for dependency injection
async def get_caption_service() -> CaptionService:
    """Get a CaptionService instance for dependency injection."""
    return CaptionService()
