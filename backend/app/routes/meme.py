"""
Meme pipeline API routes.

Stateless endpoints for each step of the conversation-to-caption pipeline:
1. GET  /templates - fetch a page of Imgflip templates
2. POST /captions  - turn a conversation into caption lines
3. POST /bind      - place caption lines into a template's text boxes
4. POST /render    - flatten a bound template into a PNG
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.config import get_completion_credential, get_settings
from app.schemas.meme import (
    BindRequest,
    CaptionRequest,
    CaptionResponse,
    ErrorResponse,
    MemeTemplate,
    RenderRequest,
    TemplateListResponse,
)
from app.services.binder import bind_captions
from app.services.captions import (
    CaptionConfigurationError,
    CaptionEmptyResponseError,
    CaptionService,
    CaptionServiceError,
    get_caption_service,
)
from app.services.catalog import (
    TemplateCatalogService,
    TemplateFetchError,
    get_catalog_service,
)
from app.services.renderer import (
    MemeRenderService,
    RenderConnectionError,
    RenderServiceError,
    get_render_service,
)

# Configure logging
logger = logging.getLogger(__name__)

# Create router with prefix and tags
router = APIRouter(
    prefix="/api/v1",
    tags=["meme"],
)

SETUP_HINT = (
    "Add OPENAI_API_KEY to the backend .env file to enable "
    "AI-powered meme text generation."
)


def caption_error_to_http(e: CaptionServiceError) -> HTTPException:
    """Map caption service errors to HTTP errors."""
    if isinstance(e, CaptionConfigurationError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "configuration_error",
                "message": str(e),
                "details": {
                    "service": "OpenAI",
                    "action": SETUP_HINT,
                },
            },
        )
    if isinstance(e, CaptionEmptyResponseError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "error": "empty_response",
                "message": str(e),
                "details": {"service": "OpenAI", "action": "Try generating again"},
            },
        )
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={
            "error": "upstream_error",
            "message": str(e),
            "details": {"service": "OpenAI", "action": "Try generating again"},
        },
    )


def render_error_to_http(e: RenderServiceError) -> HTTPException:
    """Map rendering errors to HTTP errors."""
    if isinstance(e, RenderConnectionError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "error": "template_image_unavailable",
                "message": str(e),
                "details": {"service": "Imgflip"},
            },
        )
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={
            "error": "template_image_invalid",
            "message": str(e),
        },
    )


def png_attachment(content: bytes, template: MemeTemplate) -> Response:
    filename = f"meme-{template.id}.png"
    return Response(
        content=content,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/templates",
    response_model=TemplateListResponse,
    responses={
        503: {
            "description": "Template catalog unavailable (retry later)",
            "model": ErrorResponse,
        },
    },
    summary="List meme templates",
)
async def list_templates(
    catalog_service: Annotated[TemplateCatalogService, Depends(get_catalog_service)],
) -> TemplateListResponse:
    """Fetch one page of meme templates with synthesized text boxes."""
    try:
        templates = await catalog_service.fetch_templates()
    except TemplateFetchError as e:
        logger.error(f"Template catalog error: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "templates_unavailable",
                "message": str(e),
                "details": {"service": "Imgflip", "action": "Retry the request"},
            },
        )
    return TemplateListResponse(templates=templates)


@router.post(
    "/captions",
    response_model=CaptionResponse,
    responses={
        502: {"description": "Completion service failed or returned nothing", "model": ErrorResponse},
        503: {"description": "OPENAI_API_KEY is not configured", "model": ErrorResponse},
    },
    summary="Generate caption lines",
)
async def generate_captions(
    request: CaptionRequest,
    caption_service: Annotated[CaptionService, Depends(get_caption_service)],
) -> CaptionResponse:
    """Turn a conversation into at most ``line_count`` caption lines."""
    logger.info(
        f"Received caption request. type={request.type.value}, "
        f"lines={request.line_count}, length={len(request.text)} chars"
    )
    try:
        lines = await caption_service.generate_captions(
            request.text, request.type, request.line_count
        )
    except CaptionServiceError as e:
        logger.error(f"Caption generation error: {e}")
        raise caption_error_to_http(e)
    return CaptionResponse(lines=lines)


@router.post(
    "/bind",
    response_model=MemeTemplate,
    summary="Bind caption lines to a template",
)
async def bind(request: BindRequest) -> MemeTemplate:
    """Place line *i* in text box *i*; boxes without a line are cleared."""
    return bind_captions(request.template, request.lines)


@router.post(
    "/render",
    response_class=Response,
    responses={
        200: {"content": {"image/png": {}}, "description": "The rendered meme"},
        502: {"description": "Template image could not be downloaded", "model": ErrorResponse},
    },
    summary="Render a meme as PNG",
)
async def render(
    request: RenderRequest,
    render_service: Annotated[MemeRenderService, Depends(get_render_service)],
) -> Response:
    """Composite the template's caption text onto its image."""
    try:
        content = await render_service.render(request.template)
    except RenderServiceError as e:
        logger.error(f"Render error: {e}")
        raise render_error_to_http(e)
    return png_attachment(content, request.template)


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Check if the backend service is running.",
)
async def health_check():
    """
    Simple health check endpoint.

    Returns:
        dict: Health status
    """
    settings = get_settings()
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@router.get(
    "/health/ready",
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
    description="Check whether the completion credential is configured.",
)
async def readiness_check():
    """
    Readiness check that verifies configuration is loaded.

    Returns:
        dict: Readiness status with configuration info
    """
    settings = get_settings()
    openai_configured = get_completion_credential() is not None

    return {
        "status": "ready" if openai_configured else "not_ready",
        "configuration": {
            "openai_configured": openai_configured,
            "openai_model": settings.OPENAI_CHAT_MODEL,
            "imgflip_api_url": settings.IMGFLIP_API_URL,
            "template_page_size": settings.TEMPLATE_PAGE_SIZE,
        },
        "warnings": [] if openai_configured else [SETUP_HINT],
    }
