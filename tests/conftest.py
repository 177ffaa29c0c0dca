"""Shared pytest fixtures for the voice notes test suite.

Provides synthetic audio (PCM buffers and WAV blobs), an in-memory
SQLite database, a temporary media store, and stub transcription
backends.
"""

from unittest.mock import AsyncMock

import numpy as np
import pytest

from tests.helpers import make_wav_bytes, sine


# ---------------------------------------------------------------------------
# Audio Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def speech_wav_bytes():
    """One second of a 440Hz tone as a 16kHz mono WAV blob."""
    return make_wav_bytes(sine(440.0, 16000, 1.0) * 32767, 16000)


@pytest.fixture
def stereo_48k_wav_bytes():
    """Three seconds of 48kHz stereo audio (different tone per channel)."""
    left = sine(440.0, 48000, 3.0) * 32767
    right = sine(660.0, 48000, 3.0) * 32767
    return make_wav_bytes(np.stack([left, right], axis=1), 48000)


# ---------------------------------------------------------------------------
# STT Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_backend():
    """Create a mock transcription backend for unit testing.

    Returns:
        AsyncMock: A mock implementing the TranscriptionBackend interface
        that always returns a fixed transcript.
    """
    from src.services.transcription.base import TranscriptionBackend

    backend = AsyncMock(spec=TranscriptionBackend)
    backend.name = "mock"
    backend.available = True
    backend.transcribe.return_value = "This is a test transcription."
    return backend


# ---------------------------------------------------------------------------
# Storage Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def media_store(tmp_path):
    """A MediaStore writing into a temporary uploads directory."""
    from src.services.storage.media import MediaStore

    return MediaStore(tmp_path / "uploads", "/uploads")


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine with tables, dispose after test."""
    from sqlalchemy.ext.asyncio import create_async_engine

    from src.services.storage.database import Base

    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Yield an AsyncSession bound to the test engine; rolls back after test."""
    from sqlalchemy.ext.asyncio import async_sessionmaker

    factory = async_sessionmaker(db_engine, expire_on_commit=False)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def repository(db_session):
    """Return a NoteRepository bound to the test session."""
    from src.services.storage.repository import NoteRepository

    return NoteRepository(db_session)


@pytest.fixture
def bound_database(db_engine):
    """Point the module-level ``get_session()`` at the in-memory engine."""
    from src.services.storage import database

    database._engine = db_engine
    database._session_factory = None
    yield db_engine
    database.reset_engine()
