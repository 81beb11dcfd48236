"""
Configuration module for the Conversation Meme Generator Backend.

This module handles all environment variable loading and configuration settings.
All external dependencies (API URLs, credentials, layout defaults) are configured here.
"""

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All sensitive values and external endpoints should be configured
    via environment variables or a .env file.
    """

    # ==========================================================================
    # APPLICATION SETTINGS
    # ==========================================================================

    APP_NAME: str = "Conversation Meme Generator"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # ==========================================================================
    # OPENAI (CAPTION GENERATION) SETTINGS
    # ==========================================================================

    # The only required secret. Without it caption generation fails fast
    # with a configuration error and no request is made.
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_CHAT_MODEL: str = "gpt-3.5-turbo"
    OPENAI_TEMPERATURE: float = 0.7
    OPENAI_MAX_TOKENS: int = 150

    # Timeout for completion calls (in seconds)
    OPENAI_TIMEOUT: float = 30.0

    # Retries for transient upstream failures (the SDK backs off between attempts)
    OPENAI_MAX_RETRIES: int = 2

    # Requested upper bound for each generated caption line
    MAX_CAPTION_CHARS: int = 50

    # ==========================================================================
    # IMGFLIP (TEMPLATE CATALOG) SETTINGS
    # ==========================================================================

    IMGFLIP_API_URL: str = "https://api.imgflip.com/get_memes"
    IMGFLIP_TIMEOUT: float = 15.0

    # Number of catalog entries kept for the gallery
    TEMPLATE_PAGE_SIZE: int = Field(default=9, ge=1)

    # Synthesized text box geometry, in percent of the image size.
    # Imgflip does not publish caption regions, so every template gets the
    # same layout: first box at the top, last at the bottom, others centered.
    TEXT_BOX_TOP_Y: float = 10.0
    TEXT_BOX_MIDDLE_Y: float = 50.0
    TEXT_BOX_BOTTOM_Y: float = 90.0
    TEXT_BOX_X: float = 50.0
    TEXT_BOX_WIDTH: float = 80.0
    TEXT_BOX_HEIGHT: float = 20.0

    # ==========================================================================
    # RENDERING (DOWNLOAD) SETTINGS
    # ==========================================================================

    # Timeout for downloading the template image before compositing
    RENDER_IMAGE_TIMEOUT: float = 20.0
    WATERMARK_TEXT: str = "yourautomeme.com"

    # ==========================================================================
    # CORS SETTINGS
    # ==========================================================================

    # Comma separated list of allowed frontend origins
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS string into a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    class Config:
        # Load settings from .env file if it exists
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


class CompletionCredential(BaseModel):
    """A resolved, non-empty credential for the completion service."""

    api_key: str = Field(..., min_length=1)

    def __repr__(self) -> str:
        return "CompletionCredential(api_key='***')"

    __str__ = __repr__


def resolve_completion_credential(settings: Settings) -> Optional[CompletionCredential]:
    """
    Resolve the completion credential from settings.

    Returns None when the key is missing or blank, so callers can detect
    the missing configuration before issuing any request.
    """
    api_key = (settings.OPENAI_API_KEY or "").strip()
    if not api_key:
        return None
    return CompletionCredential(api_key=api_key)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once
    and reused across the application.

    Returns:
        Settings: The application settings instance
    """
    return Settings()


@lru_cache()
def get_completion_credential() -> Optional[CompletionCredential]:
    """Resolve the completion credential once for the whole process."""
    return resolve_completion_credential(get_settings())
