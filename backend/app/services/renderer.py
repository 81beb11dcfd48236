"""
Meme Rendering Service.

Flattens a bound template into a downloadable PNG:
1. Downloads the template image
2. Draws each text box's caption centered on its (x, y) percentage point,
   word-wrapped to the box width and scaled down to fit the box height
3. Stamps a small watermark in the bottom-right corner

Classic meme styling: white text with a black outline.
"""

import logging
import os
from io import BytesIO
from typing import Any, Optional

import httpx
from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from app.config import Settings, get_settings
from app.schemas.meme import MemeTemplate, TextBox

# Configure logging
logger = logging.getLogger(__name__)

FONT_PATHS = [
    "C:\\Windows\\Fonts\\impact.ttf" if os.name == "nt" else None,
    "/usr/share/fonts/truetype/msttcorefonts/Impact.ttf",
    "/System/Library/Fonts/Supplemental/Impact.ttf",
    "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
]

MIN_FONT_SIZE = 12
MAX_FONT_SIZE = 72


class RenderServiceError(Exception):
    """Base exception for meme rendering errors."""
    pass


class RenderConnectionError(RenderServiceError):
    """Raised when the template image cannot be downloaded."""
    pass


class RenderImageError(RenderServiceError):
    """Raised when the template image cannot be decoded."""
    pass


class MemeRenderService:
    """
    Service for compositing caption text onto template images.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.font_path = next(
            (p for p in FONT_PATHS if p and os.path.exists(p)), None
        )
        if not self.font_path:
            logger.warning("No Impact-like font found; using Pillow's default font.")

    def _load_font(self, size: int) -> Any:
        if self.font_path:
            return ImageFont.truetype(self.font_path, size)
        return ImageFont.load_default(size=size)

    @staticmethod
    def _measure(text: str, font: Any) -> int:
        bbox = font.getbbox(text)
        return bbox[2] - bbox[0]

    @staticmethod
    def _line_height(font: Any) -> int:
        bbox = font.getbbox("Ay")
        return int((bbox[3] - bbox[1]) * 1.15)

    def _wrap_text_to_fit(self, text: str, max_width: int, font: Any) -> list[str]:
        """Wrap text into lines that fit within max_width. Over-long words are split."""
        words = text.split()
        if not words:
            return []
        lines: list[str] = []
        current = ""
        for word in words:
            candidate = f"{current} {word}".strip() if current else word
            if self._measure(candidate, font) <= max_width:
                current = candidate
            else:
                if current:
                    lines.append(current)
                current = word
                while self._measure(current, font) > max_width and len(current) > 1:
                    lines.append(current[: len(current) // 2])
                    current = current[len(current) // 2 :]
        if current:
            lines.append(current)
        return lines

    def _fit_text(self, text: str, max_width: int, max_height: int, start_size: int):
        """
        Pick the largest font size (down to MIN_FONT_SIZE) whose wrapped
        text fits inside the box.

        Returns:
            Tuple of (font, lines, line_height)
        """
        font_size = max(MIN_FONT_SIZE, min(MAX_FONT_SIZE, start_size))
        while True:
            font = self._load_font(font_size)
            lines = self._wrap_text_to_fit(text, max_width, font)
            line_height = self._line_height(font)
            if line_height * len(lines) <= max_height or font_size <= MIN_FONT_SIZE:
                return font, lines, line_height
            font_size = max(MIN_FONT_SIZE, font_size - 4)

    def _draw_box(self, draw: ImageDraw.ImageDraw, size: tuple[int, int], box: TextBox) -> None:
        w, h = size
        center_x = w * box.x / 100
        center_y = h * box.y / 100
        max_width = max(1, int(w * box.width / 100))
        max_height = max(1, int(h * box.height / 100))

        font, lines, line_height = self._fit_text(box.text, max_width, max_height, h // 10)
        stroke_w = max(1, line_height // 18)
        top = center_y - line_height * len(lines) / 2 + line_height / 2
        for i, line in enumerate(lines):
            draw.text(
                (center_x, top + i * line_height),
                line,
                font=font,
                fill="white",
                stroke_width=stroke_w,
                stroke_fill="black",
                anchor="mm",
            )

    def _draw_watermark(self, draw: ImageDraw.ImageDraw, size: tuple[int, int]) -> None:
        text = self.settings.WATERMARK_TEXT
        if not text:
            return
        w, h = size
        font = self._load_font(max(MIN_FONT_SIZE, h // 40))
        padding = max(4, w // 100)
        draw.text(
            (w - padding, h - padding),
            text,
            font=font,
            fill="white",
            stroke_width=1,
            stroke_fill="black",
            anchor="rd",
        )

    def compose(self, image_bytes: bytes, template: MemeTemplate) -> bytes:
        """
        Draw the template's captions onto the given image.

        Args:
            image_bytes: Encoded template image (any format Pillow reads)
            template: Bound template whose non-empty boxes are drawn

        Returns:
            bytes: PNG encoded meme

        Raises:
            RenderImageError: If the image cannot be decoded
        """
        try:
            img = Image.open(BytesIO(image_bytes)).convert("RGB")
        except (UnidentifiedImageError, OSError) as e:
            raise RenderImageError(
                f"Could not decode image for template {template.id}: {str(e)}"
            ) from e

        draw = ImageDraw.Draw(img)
        for box in template.text_boxes:
            if box.text:
                self._draw_box(draw, img.size, box)
        self._draw_watermark(draw, img.size)

        out = BytesIO()
        img.save(out, format="PNG")
        return out.getvalue()

    async def _download_image(self, url: str) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.RENDER_IMAGE_TIMEOUT, follow_redirects=True
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            logger.error(f"Failed to download template image {url}: {e}")
            raise RenderConnectionError(
                f"Failed to download template image from {url}"
            ) from e

        if response.status_code != 200:
            logger.error(f"Template image {url} returned status {response.status_code}")
            raise RenderConnectionError(
                f"Template image returned status {response.status_code}"
            )
        return response.content

    async def render(self, template: MemeTemplate) -> bytes:
        """
        Download the template image and composite the captions onto it.

        Raises:
            RenderConnectionError: If the image cannot be downloaded
            RenderImageError: If the image cannot be decoded
        """
        logger.info(f"Rendering meme for template {template.id} ({template.name})")
        image_bytes = await self._download_image(template.image_url)
        return self.compose(image_bytes, template)


# Dependency injection support
_render_service = None


def get_render_service() -> MemeRenderService:
    global _render_service
    if _render_service is None:
        _render_service = MemeRenderService()
    return _render_service
