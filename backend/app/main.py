"""
Conversation Meme Generator Backend - Main Application Entry Point.

This FastAPI application turns a pasted conversation into a captioned meme.
It coordinates between:
1. Frontend - receives user actions (input, template choice, generate, download)
2. Imgflip - supplies the meme template catalog
3. OpenAI - writes the caption lines
4. Pillow - flattens captions onto the template for download
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_completion_credential, get_settings
from app.routes.meme import router as meme_router
from app.routes.session import router as session_router

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

# Configure logging format
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events.
    """
    # Startup
    settings = get_settings()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    # Resolve the completion credential once; log configuration without secrets
    credential = get_completion_credential()
    logger.info(f"Debug mode: {settings.DEBUG}")
    logger.info(f"OpenAI API key configured: {credential is not None}")
    logger.info(f"OpenAI chat model: {settings.OPENAI_CHAT_MODEL}")
    logger.info(f"Imgflip catalog URL: {settings.IMGFLIP_API_URL}")
    logger.info(f"Template page size: {settings.TEMPLATE_PAGE_SIZE}")
    logger.info(f"CORS origins: {settings.cors_origins_list}")

    # Warn about missing configuration
    if credential is None:
        logger.warning(
            "⚠️  OPENAI_API_KEY is not configured. "
            "Caption generation will fail until it is set in your .env file."
        )

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Application shutdown")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

# Get settings for app configuration
settings = get_settings()

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
## Conversation Meme Generator

Turn a conversation (plain text, tweet or chat log) into a captioned meme.

### Flow

1. **Frontend** loads the template gallery (Imgflip catalog, first page)
2. **User** pastes a conversation, picks its type and a template
3. **Backend** asks OpenAI for one short caption line per text box
4. **Backend** binds the lines to the template and renders a PNG on download

### Key Endpoints

- `GET /api/v1/templates` - Template gallery
- `POST /api/v1/captions` - Generate caption lines
- `POST /api/v1/bind` - Bind lines to a template
- `POST /api/v1/render` - Render a meme PNG
- `/api/v1/session/...` - Stateful page actions
- `GET /api/v1/health` - Health check

### Configuration

`OPENAI_API_KEY` must be set via environment variables or a `.env` file.
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


# =============================================================================
# MIDDLEWARE
# =============================================================================

# Add CORS middleware to allow frontend requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ROUTES
# =============================================================================

app.include_router(meme_router)
app.include_router(session_router)


# Root endpoint
@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint - points to API documentation."""
    return {
        "message": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/api/v1/health",
    }


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    # In production, use: uvicorn app.main:app --host 0.0.0.0 --port 8000
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
