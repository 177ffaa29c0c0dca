"""
SQLAlchemy ORM models for voice notes.

Tables: ``voice_notes``, ``note_attachments``.
"""

from datetime import UTC, datetime

from sqlalchemy import CheckConstraint, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.services.storage.database import Base


class VoiceNote(Base):
    """A recorded voice note tied to exactly one building or channel."""

    __tablename__ = "voice_notes"
    __table_args__ = (
        CheckConstraint(
            "(building_id IS NULL) != (channel IS NULL)",
            name="ck_voice_notes_one_association",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(20), default="voice")
    building_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    channel: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    author: Mapped[str] = mapped_column(String(64))
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    content: Mapped[str] = mapped_column(Text)
    transcription: Mapped[str] = mapped_column(Text, default="")
    description: Mapped[str] = mapped_column(Text, default="")
    file_url: Mapped[str] = mapped_column(String(512))
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))

    attachments: Mapped[list["NoteAttachment"]] = relationship(
        back_populates="note",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="NoteAttachment.position",
    )

    def __repr__(self) -> str:
        return f"<VoiceNote id={self.id} building={self.building_id!r} channel={self.channel!r}>"


class NoteAttachment(Base):
    """A stored file attached to a voice note, kept in upload order."""

    __tablename__ = "note_attachments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    note_id: Mapped[int] = mapped_column(ForeignKey("voice_notes.id"), index=True)
    position: Mapped[int] = mapped_column(default=0)
    filename: Mapped[str] = mapped_column(String(255))
    original_name: Mapped[str] = mapped_column(String(255))
    file_url: Mapped[str] = mapped_column(String(512))
    mime_type: Mapped[str] = mapped_column(String(127))

    note: Mapped["VoiceNote"] = relationship(back_populates="attachments")

    def __repr__(self) -> str:
        return f"<NoteAttachment id={self.id} note={self.note_id} file={self.filename!r}>"
