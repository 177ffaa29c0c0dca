"""Voice note upload coordination.

Turns one multipart submission into a persisted voice note::

    validate  ->  store audio  ->  transcribe (only if no transcript given)
              ->  store attachments  ->  write note

Validation failures abort before any file is written. Auto-transcription
is enrichment only: every failure there is logged and the note is created
with an empty transcript. Files are written before the database row, so a
failed insert leaves them on disk (orphan cleanup is not handled here).
"""

import logging
from dataclasses import dataclass, field
from pathlib import PurePath

from src.core.config import get_settings
from src.core.exceptions import InvalidFileError, ValidationFailureError
from src.core.models import Channel
from src.services.storage.database import get_session
from src.services.storage.media import MediaStore, StoredFile
from src.services.storage.models_db import VoiceNote
from src.services.storage.repository import NoteRepository
from src.services.transcription.service import TranscriptionService

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = {".mp3", ".wav", ".webm", ".ogg", ".m4a"}
AUDIO_MIME_TYPES = {
    "audio/mpeg",
    "audio/mp3",
    "audio/wav",
    "audio/x-wav",
    "audio/wave",
    "audio/webm",
    "video/webm",
    "audio/ogg",
    "audio/mp4",
    "audio/m4a",
    "audio/x-m4a",
}

ATTACHMENT_EXTENSIONS = AUDIO_EXTENSIONS | {
    ".jpeg", ".jpg", ".png", ".gif", ".pdf", ".doc", ".docx",
    ".xls", ".xlsx", ".csv", ".ppt", ".pptx", ".txt",
}
ATTACHMENT_MIME_TYPES = AUDIO_MIME_TYPES | {
    "image/jpeg",
    "image/png",
    "image/gif",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/csv",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
}

DEFAULT_CONTENT = "Voice note"


@dataclass
class UploadedFile:
    """One file field from a multipart request, fully read into memory."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class VoiceNoteSubmission:
    """All fields of a ``POST /voice`` request."""

    audio: UploadedFile | None
    building_id: str | None = None
    channel: str | None = None
    attachments: list[UploadedFile] = field(default_factory=list)
    transcription: str | None = None
    description: str | None = None
    title: str | None = None


def _base_mime(content_type: str | None) -> str:
    return (content_type or "").split(";")[0].strip().lower()


def validate_file(
    upload: UploadedFile | None,
    *,
    extensions: set[str],
    mime_types: set[str],
    max_bytes: int,
    label: str = "audio",
) -> UploadedFile:
    """Check presence, size, extension, and mime type of an upload.

    Raises:
        InvalidFileError: On any violation.
    """
    if upload is None or not upload.filename:
        raise InvalidFileError(f"No {label} file uploaded")
    if upload.size == 0:
        raise InvalidFileError(f"Uploaded {label} file is empty")
    if upload.size > max_bytes:
        raise InvalidFileError(
            f"{label.capitalize()} file exceeds the {max_bytes // (1024 * 1024)}MB limit"
        )
    ext = PurePath(upload.filename).suffix.lower()
    if ext not in extensions or _base_mime(upload.content_type) not in mime_types:
        raise InvalidFileError(f"Invalid {label} file type: {upload.filename}")
    return upload


def validate_association(building_id: str | None, channel: str | None) -> tuple[str | None, str | None]:
    """Require exactly one of *building_id* / *channel*.

    Returns:
        The normalized ``(building_id, channel)`` pair.
    """
    building_id = (building_id or "").strip() or None
    channel = (channel or "").strip() or None
    if building_id is None and channel is None:
        raise ValidationFailureError("A building or channel is required for a note.")
    if building_id is not None and channel is not None:
        raise ValidationFailureError("A note belongs to either a building or a channel, not both.")
    if channel is not None and channel not in Channel.__members__:
        allowed = ", ".join(Channel.__members__)
        raise ValidationFailureError(f"Unknown channel {channel!r}; expected one of: {allowed}")
    return building_id, channel


class VoiceNoteCoordinator:
    """Validates, stores, transcribes, and persists voice notes.

    Args:
        media: Where audio and attachments are written.
        transcription: Service wrapping the active transcription backend.
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(self, media: MediaStore, transcription: TranscriptionService, settings=None) -> None:
        self._media = media
        self._transcription = transcription
        self._settings = settings or get_settings()

    def validate_audio(self, upload: UploadedFile | None, max_bytes: int | None = None) -> UploadedFile:
        return validate_file(
            upload,
            extensions=AUDIO_EXTENSIONS,
            mime_types=AUDIO_MIME_TYPES,
            max_bytes=max_bytes or self._settings.max_upload_bytes,
            label="audio",
        )

    def validate_attachments(self, attachments: list[UploadedFile]) -> list[UploadedFile]:
        if len(attachments) > self._settings.max_attachments:
            raise InvalidFileError(f"At most {self._settings.max_attachments} attachments are allowed")
        return [
            validate_file(
                item,
                extensions=ATTACHMENT_EXTENSIONS,
                mime_types=ATTACHMENT_MIME_TYPES,
                max_bytes=self._settings.max_upload_bytes,
                label="attachment",
            )
            for item in attachments
        ]

    async def transcribe(self, upload: UploadedFile | None) -> str:
        """Explicit transcribe-only call; backend errors propagate to the caller."""
        audio = self.validate_audio(upload, max_bytes=self._settings.max_transcribe_bytes)
        return await self._transcription.transcribe(audio.data, audio.filename, _base_mime(audio.content_type))

    async def _auto_transcribe(self, stored_audio: StoredFile, filename: str) -> str:
        """Best-effort transcript of the stored copy; any failure yields ``""``."""
        try:
            stored_bytes = await self._media.read(stored_audio.stored_name)
        except OSError:
            logger.warning(
                "Could not read back %s for transcription; continuing without transcript",
                stored_audio.stored_name,
                exc_info=True,
            )
            return ""
        return await self._transcription.transcribe_or_empty(
            stored_bytes,
            filename or stored_audio.stored_name,
            stored_audio.mime_type,
        )

    async def create_voice_note(self, submission: VoiceNoteSubmission, author: str) -> VoiceNote:
        """Run the full upload pipeline and return the persisted note."""
        # 1. Validate everything before touching storage
        building_id, channel = validate_association(submission.building_id, submission.channel)
        audio = self.validate_audio(submission.audio)
        attachments = self.validate_attachments(submission.attachments)

        # 2. Persist audio
        stored_audio = await self._media.save(audio.data, audio.filename, _base_mime(audio.content_type))

        # 3. Auto-transcribe from the stored copy when no transcript was supplied
        transcription = submission.transcription or ""
        if not transcription.strip():
            transcription = await self._auto_transcribe(stored_audio, audio.filename)

        # 4. Persist attachments
        descriptors = []
        for item in attachments:
            stored = await self._media.save(item.data, item.filename, _base_mime(item.content_type))
            descriptors.append(stored.descriptor())

        # 5. Write the note
        title = (submission.title or "").strip() or None
        async with get_session() as session:
            repo = NoteRepository(session)
            note = await repo.create_voice_note(
                author=author,
                file_url=stored_audio.url,
                content=transcription or DEFAULT_CONTENT,
                transcription=transcription,
                description=submission.description or "",
                title=title,
                building_id=building_id,
                channel=channel,
                attachments=descriptors,
            )
        return note
