"""Integration test fixtures for the voice notes API.

Provides an async HTTP client over ``ASGITransport`` backed by an
in-memory SQLite database, a temporary uploads directory, and a
transcription service whose backend each test can swap.
"""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from src.api.app import create_app
from src.api.dependencies import get_media_store, get_transcription_service
from src.services.storage import database
from src.services.transcription import TranscriptionService
from src.services.transcription.remote import RemoteSTT


@pytest.fixture
def app():
    """Create a fresh FastAPI application instance."""
    return create_app()


@pytest.fixture
def transcription_service():
    """Remote backend with no credential: every transcription is unavailable."""
    return TranscriptionService(RemoteSTT(api_key=""))


@pytest.fixture
async def async_client(app, db_engine, media_store, transcription_service):
    """AsyncClient backed by the in-memory test engine.

    Injects the test engine into the database module so that all routes
    use the same in-memory SQLite with tables already created.
    """
    database._engine = db_engine
    database._session_factory = None
    app.dependency_overrides[get_transcription_service] = lambda: transcription_service
    app.dependency_overrides[get_media_store] = lambda: media_store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
    await transcription_service.aclose()
    database.reset_engine()


@pytest.fixture
async def use_upstream(app):
    """Swap in a configured remote backend whose upstream gives a fixed answer.

    Returns a callable ``(status_code, payload)`` -> ``TranscriptionService``.
    """
    services = []

    def _install(status_code: int, payload: dict | str) -> TranscriptionService:
        def handler(request: httpx.Request) -> httpx.Response:
            if isinstance(payload, dict):
                return httpx.Response(status_code, json=payload)
            return httpx.Response(status_code, text=payload)

        service = TranscriptionService(
            RemoteSTT(api_key="sk-test", transport=httpx.MockTransport(handler))
        )
        app.dependency_overrides[get_transcription_service] = lambda: service
        services.append(service)
        return service

    yield _install
    for service in services:
        await service.aclose()
