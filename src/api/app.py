"""
FastAPI application factory.

``create_app()`` assembles the application with CORS, error handlers,
the voice routes, and the health endpoint. The module-level ``app``
instance allows ``uvicorn src.api.app:app --reload``.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.dependencies import get_transcription_service
from src.api.middleware.error_handler import register_error_handlers
from src.api.routes import voice
from src.core.config import get_settings
from src.core.models import HealthResponse
from src.services.storage.database import close_db, init_db
from src.services.transcription import TranscriptionService, create_transcription_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    Startup: apply the log level, create tables, build the transcription
    service for the configured backend.
    Shutdown: release the backend (HTTP client / model) and the DB engine.
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    await init_db()
    app.state.transcription_service = create_transcription_service(settings.transcription_backend)
    service = app.state.transcription_service
    logger.info(
        "Transcription backend: %s (%s)",
        service.backend_name,
        "available" if service.available else "not configured",
    )
    yield
    await service.aclose()
    await close_db()


def create_app() -> FastAPI:
    """Build and return a fully configured FastAPI application.

    Returns:
        FastAPI: The configured application, ready for ``uvicorn``.
    """

    app = FastAPI(
        title="Voice Notes",
        description="Voice note capture with pluggable transcription.",
        version="0.1.0",
        lifespan=lifespan,
    )

    # -- CORS --
    settings = get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -- Error handlers --
    register_error_handlers(app)

    # -- Health check --
    @app.get("/health", response_model=HealthResponse, tags=["system"])
    async def health(
        service: TranscriptionService = Depends(get_transcription_service),
    ) -> HealthResponse:
        return HealthResponse(
            transcription_backend=service.backend_name,
            transcription_available=service.available,
            timestamp=datetime.now(UTC),
        )

    # -- REST routes --
    app.include_router(voice.router)

    return app


app = create_app()
