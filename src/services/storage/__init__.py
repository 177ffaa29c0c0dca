"""
Storage module - Database, Note Store, and media file operations.
"""

from src.services.storage.database import (
    Base,
    close_db,
    get_engine,
    get_session,
    init_db,
    reset_engine,
)
from src.services.storage.media import MediaStore, StoredFile
from src.services.storage.models_db import NoteAttachment, VoiceNote
from src.services.storage.repository import NoteRepository

__all__ = [
    "Base",
    "MediaStore",
    "NoteAttachment",
    "NoteRepository",
    "StoredFile",
    "VoiceNote",
    "close_db",
    "get_engine",
    "get_session",
    "init_db",
    "reset_engine",
]
