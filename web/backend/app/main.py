"""FastAPI application for the What-If content moderation service.

Provides REST API endpoints wrapping the whatif package for:
- Screening free text, whole stories, and AI "what if" prompts
- Reading and (as an administrator) updating the moderation filters
- Filter change history and moderation statistics
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from whatif import __version__
from whatif.utils.logging_config import configure_logging
from web.backend.app.dependencies import get_settings
from web.backend.app.routers import moderation

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(
    title="What-If Moderation API",
    description=(
        "Rule-based content moderation for the What-If interactive "
        "storytelling platform."
    ),
    version=__version__,
)

# ---------------------------------------------------------------------------
# CORS middleware
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Include routers
# ---------------------------------------------------------------------------
app.include_router(moderation.router)


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "What-If Moderation API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
