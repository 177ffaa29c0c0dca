"""
Global error handling middleware for the FastAPI application.

Catches VoiceNotesError subclasses, Pydantic validation errors, and
unhandled exceptions, converting them into a consistent JSON envelope.
``message`` mirrors ``detail`` for clients of the original notes API.
"""

import logging
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.core.exceptions import VoiceNotesError

logger = logging.getLogger(__name__)


def _envelope(detail: str, code: str, timestamp: str) -> dict:
    return {"detail": detail, "message": detail, "code": code, "timestamp": timestamp}


def register_error_handlers(app: FastAPI) -> None:
    """Attach exception handlers to the FastAPI application.

    Registers three handlers in priority order:
    1. ``VoiceNotesError``: maps domain errors to structured JSON responses.
    2. ``RequestValidationError``: Pydantic validation failures (422).
    3. ``Exception``: catch-all for unexpected server errors (500).

    Args:
        app: The FastAPI application instance to register handlers on.
    """

    @app.exception_handler(VoiceNotesError)
    async def voicenotes_error_handler(request: Request, exc: VoiceNotesError) -> JSONResponse:
        """Convert domain-specific errors into a JSON error envelope."""
        logger.info("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.code)
        return JSONResponse(
            status_code=exc.status_code,
            content=_envelope(exc.detail, exc.code, exc.timestamp),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle Pydantic request validation errors (malformed body/params)."""
        return JSONResponse(
            status_code=422,
            content=_envelope(str(exc), "VALIDATION_ERROR", datetime.now(UTC).isoformat()),
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all handler; prevents stack traces from leaking to clients."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=_envelope("Internal server error", "INTERNAL_ERROR", datetime.now(UTC).isoformat()),
        )
