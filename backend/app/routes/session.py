"""
Session API routes.

These endpoints mirror the user actions of the meme generator page
(type selector, text box, gallery, generate and download buttons) and
always answer with the full session state, so a frontend can re-render
from a single payload.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.routes.meme import png_attachment, render_error_to_http
from app.schemas.meme import ErrorResponse, SelectTemplateRequest, SessionInputUpdate
from app.services.renderer import RenderServiceError
from app.services.session import MemeSession, NothingToRenderError, get_meme_session
from app.state import MemeSessionState, UnknownTemplateError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/session",
    tags=["session"],
)

SessionDep = Annotated[MemeSession, Depends(get_meme_session)]


@router.get("", response_model=MemeSessionState, summary="Current session state")
async def get_state(session: SessionDep) -> MemeSessionState:
    return session.state


@router.patch("/input", response_model=MemeSessionState, summary="Update conversation input")
async def update_input(update: SessionInputUpdate, session: SessionDep) -> MemeSessionState:
    return session.update_input(text=update.text, conversation_type=update.type)


@router.post(
    "/templates/refresh",
    response_model=MemeSessionState,
    summary="(Re)load the template gallery",
)
async def refresh_templates(session: SessionDep) -> MemeSessionState:
    """
    Fetch the template catalog into the session.

    A catalog failure is not an HTTP error: the state comes back with
    ``templates_status == "unavailable"`` and this endpoint can be retried.
    """
    return await session.refresh_templates()


@router.post(
    "/select",
    response_model=MemeSessionState,
    responses={404: {"description": "Unknown template id", "model": ErrorResponse}},
    summary="Select a template",
)
async def select(request: SelectTemplateRequest, session: SessionDep) -> MemeSessionState:
    try:
        return session.select(request.template_id)
    except UnknownTemplateError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "unknown_template",
                "message": f"Template {request.template_id} is not in the gallery",
            },
        )


@router.post("/generate", response_model=MemeSessionState, summary="Generate captions")
async def generate(session: SessionDep) -> MemeSessionState:
    """
    Generate and bind captions for the selected template.

    Without text or a selected template, or while a generation is running,
    this returns the unchanged state. Upstream failures are reported in
    ``processed_text.error`` / ``processed_text.error_kind``.
    """
    return await session.generate()


@router.get(
    "/download",
    response_class=Response,
    responses={
        200: {"content": {"image/png": {}}, "description": "The rendered meme"},
        409: {"description": "Nothing generated yet", "model": ErrorResponse},
    },
    summary="Download the current meme",
)
async def download(session: SessionDep) -> Response:
    try:
        content = await session.render()
    except NothingToRenderError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": "nothing_to_render", "message": str(e)},
        )
    except RenderServiceError as e:
        logger.error(f"Download failed: {e}")
        raise render_error_to_http(e)
    return png_attachment(content, session.state.selected_template)
