"""
Voice note REST endpoints.

``POST /voice/transcribe`` runs the active transcription backend on one
clip and surfaces its errors. ``POST /voice`` stores a voice note; there,
transcription is best-effort and never blocks creation. All work is
delegated to ``VoiceNoteCoordinator``.
"""

import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile

from src.api.dependencies import get_author, get_coordinator
from src.core.config import get_settings
from src.core.exceptions import InvalidFileError
from src.core.models import AttachmentDescriptor, TranscriptionResponse, VoiceNoteResponse
from src.services.storage.database import get_session
from src.services.storage.repository import NoteRepository
from src.services.voice_notes import UploadedFile, VoiceNoteCoordinator, VoiceNoteSubmission

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/voice", tags=["voice"])


async def _read_upload(upload: UploadFile | None, max_bytes: int, label: str) -> UploadedFile | None:
    """Read an upload into memory, rejecting it as soon as it exceeds *max_bytes*."""
    if upload is None:
        return None
    data = await upload.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise InvalidFileError(f"{label.capitalize()} file exceeds the {max_bytes // (1024 * 1024)}MB limit")
    return UploadedFile(
        filename=upload.filename or "",
        content_type=upload.content_type or "",
        data=data,
    )


def _to_response(note) -> VoiceNoteResponse:
    """Convert an ORM VoiceNote to its API response model."""
    return VoiceNoteResponse(
        id=note.id,
        type=note.type,
        building_id=note.building_id,
        channel=note.channel,
        author=note.author,
        title=note.title,
        content=note.content,
        transcription=note.transcription,
        description=note.description,
        file_url=note.file_url,
        attachments=[
            AttachmentDescriptor(
                filename=a.filename,
                original_name=a.original_name,
                file_url=a.file_url,
                mime_type=a.mime_type,
            )
            for a in note.attachments
        ],
        created_at=note.created_at,
    )


@router.post("/transcribe", response_model=TranscriptionResponse)
async def transcribe_voice(
    audio: UploadFile | None = File(None),
    coordinator: VoiceNoteCoordinator = Depends(get_coordinator),
):
    """Transcribe a single clip with the active backend."""
    settings = get_settings()
    upload = await _read_upload(audio, settings.max_transcribe_bytes, "audio")
    text = await coordinator.transcribe(upload)
    return TranscriptionResponse(transcription=text)


@router.post("", response_model=VoiceNoteResponse, status_code=201)
async def create_voice_note(
    audio: UploadFile | None = File(None),
    attachments: list[UploadFile] | None = File(None),
    building_id: str | None = Form(None, alias="buildingId"),
    channel: str | None = Form(None),
    transcription: str | None = Form(None),
    description: str | None = Form(None),
    title: str | None = Form(None),
    author: str = Depends(get_author),
    coordinator: VoiceNoteCoordinator = Depends(get_coordinator),
):
    """Store a voice note with optional transcript, description, and attachments."""
    settings = get_settings()
    # reject before buffering anything
    if len(attachments or []) > settings.max_attachments:
        raise InvalidFileError(f"At most {settings.max_attachments} attachments are allowed")
    submission = VoiceNoteSubmission(
        audio=await _read_upload(audio, settings.max_upload_bytes, "audio"),
        building_id=building_id,
        channel=channel,
        attachments=[
            await _read_upload(item, settings.max_upload_bytes, "attachment")
            for item in attachments or []
        ],
        transcription=transcription,
        description=description,
        title=title,
    )
    note = await coordinator.create_voice_note(submission, author=author)
    return _to_response(note)


@router.get("/{note_id}", response_model=VoiceNoteResponse)
async def get_voice_note(note_id: int):
    """Return a stored voice note."""
    async with get_session() as session:
        repo = NoteRepository(session)
        note = await repo.get_note(note_id)
    return _to_response(note)
