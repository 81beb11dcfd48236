"""Shared fixtures for the backend tests."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.config import Settings
from app.schemas.meme import MemeTemplate, TextBox


def build_settings(**overrides) -> Settings:
    """Settings isolated from the real environment and .env file."""
    values = {"OPENAI_API_KEY": "sk-test"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def imgflip_payload(count: int = 12, box_count: int = 2, success: bool = True) -> dict:
    memes = [
        {
            "id": str(1000 + i),
            "name": f"Template {i}",
            "url": f"https://i.imgflip.com/{i}.jpg",
            "width": 500,
            "height": 400,
            "box_count": box_count,
        }
        for i in range(count)
    ]
    return {"success": success, "data": {"memes": memes}}


def completion(content):
    """An object shaped like an OpenAI chat completion response."""
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )


def http_response(status_code: int = 200, json_data=None, content: bytes = b"", text: str = ""):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.content = content
    response.text = text
    return response


def make_template(box_count: int = 2, template_id: str = "181913649") -> MemeTemplate:
    ys = [10.0] + [50.0] * max(0, box_count - 2) + ([90.0] if box_count > 1 else [])
    return MemeTemplate(
        id=template_id,
        name="Drake Hotline Bling",
        image_url="https://i.imgflip.com/30b1gx.jpg",
        text_boxes=[TextBox(x=50, y=y, width=80, height=20) for y in ys[:box_count]],
    )


@pytest.fixture
def settings() -> Settings:
    return build_settings()


@pytest.fixture
def openai_client():
    """A stand-in for AsyncOpenAI with an awaitable chat.completions.create."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=completion("Line one\nLine two"))
    return client
