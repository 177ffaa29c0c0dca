"""
Note Store repository for voice notes.

``NoteRepository`` receives an ``AsyncSession`` and provides the
data-access methods the Upload Coordinator needs. It calls ``flush()``
rather than ``commit()`` so that transaction boundaries are controlled by
the caller (typically :func:`get_session`).
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.exceptions import NoteNotFoundError
from src.services.storage.models_db import NoteAttachment, VoiceNote

logger = logging.getLogger(__name__)


class NoteRepository:
    """Data-access layer for the voice notes schema.

    Args:
        session: An active SQLAlchemy ``AsyncSession``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_voice_note(
        self,
        *,
        author: str,
        file_url: str,
        content: str,
        transcription: str = "",
        description: str = "",
        title: str | None = None,
        building_id: str | None = None,
        channel: str | None = None,
        attachments: list[dict] | None = None,
    ) -> VoiceNote:
        """Insert a voice note and its attachment rows.

        Args:
            attachments: Dicts with ``filename``, ``original_name``,
                ``file_url``, ``mime_type``; list order is preserved.
        """
        note = VoiceNote(
            type="voice",
            author=author,
            file_url=file_url,
            content=content,
            transcription=transcription,
            description=description,
            title=title,
            building_id=building_id,
            channel=channel,
            attachments=[
                NoteAttachment(position=index, **item)
                for index, item in enumerate(attachments or [])
            ],
        )
        self._session.add(note)
        await self._session.flush()
        logger.info("Created voice note %s (%d attachments)", note.id, len(note.attachments))
        return note

    async def get_note(self, note_id: int) -> VoiceNote:
        """Return a note by ID or raise :class:`NoteNotFoundError`."""
        stmt = (
            select(VoiceNote)
            .where(VoiceNote.id == note_id)
            .options(selectinload(VoiceNote.attachments))
        )
        result = await self._session.execute(stmt)
        note = result.scalar_one_or_none()
        if note is None:
            raise NoteNotFoundError(note_id)
        return note
