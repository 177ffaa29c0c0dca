"""
FastAPI dependencies shared by the voice routes.

Long-lived collaborators (transcription service, media store) live on
``app.state`` and are created on first use, so the app works both with
and without the lifespan having run (e.g. under ``ASGITransport``).
"""

from fastapi import Depends, Header, Request

from src.core.config import get_settings
from src.services.storage.media import MediaStore
from src.services.transcription import TranscriptionService, create_transcription_service
from src.services.voice_notes import VoiceNoteCoordinator


def get_transcription_service(request: Request) -> TranscriptionService:
    """Return the process-wide transcription service."""
    service = getattr(request.app.state, "transcription_service", None)
    if service is None:
        service = create_transcription_service()
        request.app.state.transcription_service = service
    return service


def get_media_store(request: Request) -> MediaStore:
    """Return the media store rooted at ``settings.uploads_dir``."""
    store = getattr(request.app.state, "media_store", None)
    if store is None:
        settings = get_settings()
        store = MediaStore(settings.uploads_dir, settings.uploads_url_prefix)
        request.app.state.media_store = store
    return store


def get_coordinator(
    service: TranscriptionService = Depends(get_transcription_service),
    media: MediaStore = Depends(get_media_store),
) -> VoiceNoteCoordinator:
    return VoiceNoteCoordinator(media=media, transcription=service)


def get_author(x_user_id: str | None = Header(default=None)) -> str:
    """Identify the note author.

    Authentication is handled upstream; this reads the user id the auth
    layer forwards and falls back to ``"anonymous"``.
    """
    return (x_user_id or "").strip() or "anonymous"
