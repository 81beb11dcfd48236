"""API tests with the external services replaced through dependency overrides."""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock, patch

from app.config import CompletionCredential
from app.main import app
from app.services.captions import (
    CaptionConfigurationError,
    CaptionEmptyResponseError,
    CaptionUpstreamError,
    get_caption_service,
)
from app.services.catalog import CatalogResponseError, get_catalog_service
from app.services.renderer import RenderConnectionError, get_render_service
from app.services.session import MemeSession, get_meme_session
from conftest import make_template


@pytest.fixture
def catalog():
    service = MagicMock()
    service.fetch_templates = AsyncMock(return_value=[make_template(2, "a"), make_template(3, "b")])
    return service


@pytest.fixture
def captions():
    service = MagicMock()
    service.generate_captions = AsyncMock(return_value=["Hey there", "Sup dude"])
    return service


@pytest.fixture
def renderer():
    service = MagicMock()
    service.render = AsyncMock(return_value=b"\x89PNG\r\n\x1a\nfake")
    return service


@pytest.fixture
def client(catalog, captions, renderer):
    session = MemeSession(catalog=catalog, captions=captions, renderer=renderer)

    async def override_catalog():
        return catalog

    async def override_captions():
        return captions

    app.dependency_overrides[get_catalog_service] = override_catalog
    app.dependency_overrides[get_caption_service] = override_captions
    app.dependency_overrides[get_render_service] = lambda: renderer
    app.dependency_overrides[get_meme_session] = lambda: session
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"


def test_health(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_ready_without_credential(client):
    with patch("app.routes.meme.get_completion_credential", return_value=None):
        response = client.get("/api/v1/health/ready")
    data = response.json()
    assert data["status"] == "not_ready"
    assert data["configuration"]["openai_configured"] is False
    assert data["warnings"]


def test_ready_with_credential(client):
    with patch(
        "app.routes.meme.get_completion_credential",
        return_value=CompletionCredential(api_key="sk-test"),
    ):
        response = client.get("/api/v1/health/ready")
    assert response.json()["status"] == "ready"


# --- Stateless pipeline endpoints ---

def test_list_templates(client):
    response = client.get("/api/v1/templates")
    assert response.status_code == 200
    templates = response.json()["templates"]
    assert [t["id"] for t in templates] == ["a", "b"]
    assert [box["y"] for box in templates[1]["text_boxes"]] == [10, 50, 90]


def test_list_templates_unavailable(client, catalog):
    catalog.fetch_templates.side_effect = CatalogResponseError("Imgflip catalog request failed")
    response = client.get("/api/v1/templates")
    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "templates_unavailable"


def test_generate_captions(client, captions):
    response = client.post(
        "/api/v1/captions",
        json={"text": "A: hi\nB: hi", "type": "chat", "line_count": 2},
    )
    assert response.status_code == 200
    assert response.json() == {"lines": ["Hey there", "Sup dude"]}
    args = captions.generate_captions.call_args.args
    assert args[0] == "A: hi\nB: hi"
    assert args[1].value == "chat"
    assert args[2] == 2


@pytest.mark.parametrize(
    "body",
    [
        {"text": "   ", "type": "chat", "line_count": 2},
        {"text": "hi", "type": "email", "line_count": 2},
        {"text": "hi", "type": "text", "line_count": 0},
    ],
)
def test_generate_captions_validation(client, captions, body):
    response = client.post("/api/v1/captions", json=body)
    assert response.status_code == 422
    captions.generate_captions.assert_not_called()


@pytest.mark.parametrize(
    "error, status_code, code",
    [
        (CaptionConfigurationError("OpenAI API key is not configured."), 503, "configuration_error"),
        (CaptionUpstreamError("Rate limited"), 502, "upstream_error"),
        (CaptionEmptyResponseError("No response from AI"), 502, "empty_response"),
    ],
)
def test_generate_captions_errors(client, captions, error, status_code, code):
    captions.generate_captions.side_effect = error
    response = client.post(
        "/api/v1/captions", json={"text": "hi", "type": "text", "line_count": 1}
    )
    assert response.status_code == status_code
    detail = response.json()["detail"]
    assert detail["error"] == code
    assert detail["message"] == str(error)


def test_configuration_error_carries_setup_hint(client, captions):
    captions.generate_captions.side_effect = CaptionConfigurationError("missing")
    response = client.post(
        "/api/v1/captions", json={"text": "hi", "type": "text", "line_count": 1}
    )
    assert "OPENAI_API_KEY" in response.json()["detail"]["details"]["action"]


def test_bind(client):
    template = make_template(3).model_dump()
    response = client.post("/api/v1/bind", json={"template": template, "lines": ["only"]})
    assert response.status_code == 200
    assert [box["text"] for box in response.json()["text_boxes"]] == ["only", "", ""]


def test_render(client, renderer):
    template = make_template(2).model_dump()
    template["text_boxes"][0]["text"] = "Hey there"
    response = client.post("/api/v1/render", json={"template": template})
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert 'filename="meme-181913649.png"' in response.headers["content-disposition"]
    assert response.content.startswith(b"\x89PNG")


def test_render_image_unavailable(client, renderer):
    renderer.render.side_effect = RenderConnectionError("Template image returned status 404")
    response = client.post("/api/v1/render", json={"template": make_template(2).model_dump()})
    assert response.status_code == 502
    assert response.json()["detail"]["error"] == "template_image_unavailable"


# --- Session endpoints ---

def test_session_full_flow(client, captions):
    state = client.get("/api/v1/session").json()
    assert state["templates_status"] == "idle"

    state = client.post("/api/v1/session/templates/refresh").json()
    assert state["templates_status"] == "ready"
    assert state["selected_template"]["id"] == "a"

    state = client.patch("/api/v1/session/input", json={"text": "A: hi\nB: hi", "type": "chat"}).json()
    assert state["input"] == {"text": "A: hi\nB: hi", "type": "chat"}

    state = client.post("/api/v1/session/generate").json()
    assert [box["text"] for box in state["selected_template"]["text_boxes"]] == ["Hey there", "Sup dude"]
    assert state["processed_text"]["lines"] == ["Hey there", "Sup dude"]

    response = client.get("/api/v1/session/download")
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"


def test_session_refresh_failure(client, catalog):
    catalog.fetch_templates.side_effect = CatalogResponseError("Imgflip catalog request failed")
    response = client.post("/api/v1/session/templates/refresh")
    assert response.status_code == 200
    state = response.json()
    assert state["templates_status"] == "unavailable"
    assert state["templates"] == []
    assert state["selected_template"] is None


def test_session_select(client):
    client.post("/api/v1/session/templates/refresh")
    state = client.post("/api/v1/session/select", json={"template_id": "b"}).json()
    assert state["selected_template"]["id"] == "b"

    response = client.post("/api/v1/session/select", json={"template_id": "nope"})
    assert response.status_code == 404


def test_session_generate_without_text_is_noop(client, captions):
    client.post("/api/v1/session/templates/refresh")
    state = client.post("/api/v1/session/generate").json()
    assert state["processed_text"]["loading"] is False
    captions.generate_captions.assert_not_called()


def test_session_generate_reports_configuration_error(client, captions):
    captions.generate_captions.side_effect = CaptionConfigurationError("OpenAI API key is not configured.")
    client.post("/api/v1/session/templates/refresh")
    client.patch("/api/v1/session/input", json={"text": "hello"})

    state = client.post("/api/v1/session/generate").json()

    assert state["processed_text"]["error_kind"] == "configuration"
    assert all(box["text"] == "" for box in state["selected_template"]["text_boxes"])


def test_session_download_before_generate(client):
    client.post("/api/v1/session/templates/refresh")
    response = client.get("/api/v1/session/download")
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "nothing_to_render"
