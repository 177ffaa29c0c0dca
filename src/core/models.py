"""
Pydantic v2 request / response models used across the API layer.

Voice note payloads use camelCase on the wire (``fileUrl``,
``originalName``) to stay compatible with the existing web client.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str = "ok"
    version: str = "0.1.0"
    transcription_backend: str = ""
    transcription_available: bool = False
    timestamp: datetime


# ---------------------------------------------------------------------------
# Association
# ---------------------------------------------------------------------------


class Channel(StrEnum):
    """Knowledge-hub channels a note can be posted to instead of a building."""

    general = "general"
    onboarding = "onboarding"
    duty = "duty"
    mapping = "mapping"


# ---------------------------------------------------------------------------
# Transcription
# ---------------------------------------------------------------------------


class TranscriptionResponse(BaseModel):
    """POST /voice/transcribe response."""

    transcription: str = ""


# ---------------------------------------------------------------------------
# Voice notes
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AttachmentDescriptor(_CamelModel):
    """A stored file attached to a voice note."""

    filename: str
    original_name: str
    file_url: str
    mime_type: str


class VoiceNoteResponse(_CamelModel):
    """A persisted voice note as returned by the API."""

    id: int
    type: str = "voice"
    building_id: str | None = None
    channel: Channel | None = None
    author: str
    title: str | None = None
    content: str
    transcription: str = ""
    description: str = ""
    file_url: str
    attachments: list[AttachmentDescriptor] = Field(default_factory=list)
    created_at: datetime


# ---------------------------------------------------------------------------
# Error
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    detail: str
    message: str
    code: str
    timestamp: str
