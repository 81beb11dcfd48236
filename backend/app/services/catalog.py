"""
Imgflip Template Catalog Service.

This module fetches the public meme template catalog from Imgflip and
turns the first page of entries into local MemeTemplate objects with
synthesized text box geometry.

The catalog is fetched on demand; nothing is cached between calls.
"""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from app.config import Settings, get_settings
from app.schemas.meme import ImgflipMeme, ImgflipResponse, MemeTemplate, TextBox

# Configure logging
logger = logging.getLogger(__name__)


class TemplateFetchError(Exception):
    """Base exception for template catalog errors."""
    pass


class CatalogConnectionError(TemplateFetchError):
    """Raised when unable to reach the catalog service."""
    pass


class CatalogResponseError(TemplateFetchError):
    """Raised when the catalog returns an error or an unexpected payload."""
    pass


class TemplateCatalogService:
    """
    Service for fetching meme templates from the Imgflip catalog.

    Imgflip only reports how many caption boxes a template has, not where
    they are, so box positions come from a fixed heuristic: first box near
    the top, last box near the bottom, any others centered. Templates whose
    real caption regions differ will get misplaced text.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def build_text_boxes(self, box_count: int) -> list[TextBox]:
        """
        Synthesize placeholder text boxes for a template.

        Args:
            box_count: Number of caption boxes the template has

        Returns:
            Ordered list of empty text boxes
        """
        settings = self.settings
        boxes = []
        for i in range(box_count):
            if i == 0:
                y = settings.TEXT_BOX_TOP_Y
            elif i == box_count - 1:
                y = settings.TEXT_BOX_BOTTOM_Y
            else:
                y = settings.TEXT_BOX_MIDDLE_Y
            boxes.append(
                TextBox(
                    x=settings.TEXT_BOX_X,
                    y=y,
                    width=settings.TEXT_BOX_WIDTH,
                    height=settings.TEXT_BOX_HEIGHT,
                    text="",
                )
            )
        return boxes

    def to_template(self, meme: ImgflipMeme) -> MemeTemplate:
        """Convert one catalog entry into a MemeTemplate."""
        return MemeTemplate(
            id=meme.id,
            name=meme.name,
            image_url=meme.url,
            text_boxes=self.build_text_boxes(meme.box_count),
        )

    def _parse_response(self, response_data: object) -> list[MemeTemplate]:
        """
        Validate the catalog payload and build the template page.

        Raises:
            CatalogResponseError: If the payload is malformed or reports failure
        """
        try:
            catalog = ImgflipResponse.model_validate(response_data)
        except ValidationError as e:
            logger.error(f"Failed to parse Imgflip response: {e}")
            raise CatalogResponseError(
                f"Imgflip returned an unexpected payload: {str(e)}"
            ) from e

        if not catalog.success:
            error_msg = catalog.error_message or "Unknown error"
            logger.error(f"Imgflip reported failure: {error_msg}")
            raise CatalogResponseError(f"Imgflip catalog request failed: {error_msg}")

        if catalog.data is None:
            raise CatalogResponseError("Imgflip response is missing the data field")

        page = catalog.data.memes[: self.settings.TEMPLATE_PAGE_SIZE]
        return [self.to_template(meme) for meme in page]

    async def fetch_templates(self) -> list[MemeTemplate]:
        """
        Fetch the first page of meme templates.

        Either the whole page is returned or an error is raised; a partial
        result is never produced.

        Returns:
            list[MemeTemplate]: Up to TEMPLATE_PAGE_SIZE templates

        Raises:
            CatalogConnectionError: If the catalog cannot be reached
            CatalogResponseError: If the catalog returns an invalid or error response
        """
        url = self.settings.IMGFLIP_API_URL
        logger.info(f"Fetching meme templates from {url}")

        try:
            async with httpx.AsyncClient(timeout=self.settings.IMGFLIP_TIMEOUT) as client:
                response = await client.get(url)

                if response.status_code != 200:
                    logger.error(
                        f"Imgflip returned status {response.status_code}: "
                        f"{response.text[:500]}"
                    )
                    raise CatalogResponseError(
                        f"Imgflip returned status {response.status_code}"
                    )

                try:
                    response_data = response.json()
                except ValueError as e:
                    raise CatalogResponseError(
                        "Imgflip response is not valid JSON"
                    ) from e

        except httpx.TimeoutException as e:
            logger.error(f"Imgflip request timed out: {e}")
            raise CatalogConnectionError(
                f"Imgflip request timed out after {self.settings.IMGFLIP_TIMEOUT} seconds."
            ) from e

        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling Imgflip: {e}")
            raise CatalogConnectionError(
                f"Failed to reach the Imgflip catalog at {url}: {str(e)}"
            ) from e

        templates = self._parse_response(response_data)
        logger.info(f"Loaded {len(templates)} meme templates")
        return templates


# Convenience function for dependency injection
async def get_catalog_service() -> TemplateCatalogService:
    """Get a TemplateCatalogService instance for dependency injection."""
    return TemplateCatalogService()
