"""Tests for VoiceNoteCoordinator: validation, ordering, and fallbacks."""

import pytest

from src.core.config import Settings
from src.core.exceptions import InvalidFileError, UpstreamFailureError, ValidationFailureError
from src.services.transcription.service import TranscriptionService
from src.services.voice_notes import (
    DEFAULT_CONTENT,
    UploadedFile,
    VoiceNoteCoordinator,
    VoiceNoteSubmission,
    validate_association,
)


@pytest.fixture
def settings():
    return Settings(max_upload_bytes=1024, max_transcribe_bytes=512, max_attachments=2)


@pytest.fixture
def transcription(mock_backend):
    return TranscriptionService(mock_backend)


@pytest.fixture
def coordinator(media_store, transcription, settings, bound_database):
    return VoiceNoteCoordinator(media_store, transcription, settings=settings)


def _audio(data=b"RIFF-audio", name="memo.wav", mime="audio/wav"):
    return UploadedFile(filename=name, content_type=mime, data=data)


def _stored_files(media_store):
    if not media_store.root.exists():
        return []
    return sorted(p.name for p in media_store.root.iterdir())


class TestValidateAssociation:
    def test_building(self):
        assert validate_association(" b-1 ", None) == ("b-1", None)

    def test_channel(self):
        assert validate_association("", "duty") == (None, "duty")

    @pytest.mark.parametrize("building_id,channel", [(None, None), ("", "  "), ("b-1", "duty")])
    def test_requires_exactly_one(self, building_id, channel):
        with pytest.raises(ValidationFailureError):
            validate_association(building_id, channel)

    def test_unknown_channel(self):
        with pytest.raises(ValidationFailureError, match="Unknown channel"):
            validate_association(None, "gossip")


class TestValidation:
    """Validation failures happen before anything is stored."""

    @pytest.mark.parametrize(
        "audio",
        [
            None,
            UploadedFile(filename="memo.wav", content_type="audio/wav", data=b""),
            UploadedFile(filename="memo.exe", content_type="audio/wav", data=b"x"),
            UploadedFile(filename="memo.wav", content_type="application/octet-stream", data=b"x"),
            UploadedFile(filename="memo.wav", content_type="audio/wav", data=b"x" * 2048),
        ],
    )
    async def test_bad_audio_writes_nothing(self, coordinator, media_store, audio):
        submission = VoiceNoteSubmission(audio=audio, building_id="b-1")
        with pytest.raises(InvalidFileError):
            await coordinator.create_voice_note(submission, author="u")
        assert _stored_files(media_store) == []

    async def test_missing_association_writes_nothing(self, coordinator, media_store, mock_backend):
        with pytest.raises(ValidationFailureError):
            await coordinator.create_voice_note(VoiceNoteSubmission(audio=_audio()), author="u")
        assert _stored_files(media_store) == []
        mock_backend.transcribe.assert_not_called()

    async def test_too_many_attachments(self, coordinator, media_store):
        extra = [_audio(name=f"{i}.png", mime="image/png") for i in range(3)]
        submission = VoiceNoteSubmission(audio=_audio(), channel="general", attachments=extra)
        with pytest.raises(InvalidFileError, match="At most 2"):
            await coordinator.create_voice_note(submission, author="u")
        assert _stored_files(media_store) == []

    async def test_bad_attachment_type(self, coordinator):
        bad = [UploadedFile(filename="run.sh", content_type="text/x-sh", data=b"#!")]
        submission = VoiceNoteSubmission(audio=_audio(), channel="general", attachments=bad)
        with pytest.raises(InvalidFileError, match="attachment"):
            await coordinator.create_voice_note(submission, author="u")

    def test_mime_parameters_ignored(self, coordinator):
        upload = _audio(name="clip.webm", mime="audio/webm;codecs=opus")
        assert coordinator.validate_audio(upload) is upload


class TestCreateVoiceNote:
    async def test_supplied_transcription_skips_service(self, coordinator, mock_backend):
        submission = VoiceNoteSubmission(
            audio=_audio(), building_id="b-1", transcription="Already typed", title=" Leak "
        )
        note = await coordinator.create_voice_note(submission, author="u-1")

        mock_backend.transcribe.assert_not_called()
        assert note.transcription == "Already typed"
        assert note.content == "Already typed"
        assert note.title == "Leak"
        assert note.author == "u-1"
        assert note.file_url.startswith("/uploads/")

    async def test_auto_transcribes_stored_copy(self, coordinator, media_store, mock_backend):
        """The service reads the audio back from storage, after it was written."""
        seen = {}

        async def transcribe(audio, filename, mime_type, **kwargs):
            seen["audio"] = audio
            seen["files"] = _stored_files(media_store)
            return "Heard you"

        mock_backend.transcribe.side_effect = transcribe
        note = await coordinator.create_voice_note(
            VoiceNoteSubmission(audio=_audio(b"AUDIO-BYTES"), channel="duty"), author="u"
        )

        assert seen["audio"] == b"AUDIO-BYTES"
        assert len(seen["files"]) == 1
        assert note.transcription == "Heard you"
        assert note.channel == "duty"

    async def test_blank_transcription_triggers_service(self, coordinator, mock_backend):
        await coordinator.create_voice_note(
            VoiceNoteSubmission(audio=_audio(), channel="duty", transcription="   "), author="u"
        )
        mock_backend.transcribe.assert_awaited_once()

    async def test_transcription_failure_still_creates_note(self, coordinator, mock_backend):
        mock_backend.transcribe.side_effect = UpstreamFailureError(401, "invalid key")
        note = await coordinator.create_voice_note(
            VoiceNoteSubmission(audio=_audio(), building_id="b-1"), author="u"
        )
        assert note.id is not None
        assert note.transcription == ""
        assert note.content == DEFAULT_CONTENT

    async def test_read_back_failure_still_creates_note(self, coordinator, media_store, mock_backend, monkeypatch):
        """An unreadable stored copy skips transcription instead of failing the upload."""

        async def unreadable(name):
            raise OSError("stale file handle")

        monkeypatch.setattr(media_store, "read", unreadable)
        note = await coordinator.create_voice_note(
            VoiceNoteSubmission(audio=_audio(), building_id="b-1"), author="u"
        )

        assert note.id is not None
        assert note.transcription == ""
        assert note.content == DEFAULT_CONTENT
        mock_backend.transcribe.assert_not_called()
        assert len(_stored_files(media_store)) == 1

    async def test_attachments_stored_in_order(self, coordinator, media_store):
        files = [
            UploadedFile(filename="photo.jpg", content_type="image/jpeg", data=b"jpg"),
            UploadedFile(filename="layout.pdf", content_type="application/pdf", data=b"pdf"),
        ]
        note = await coordinator.create_voice_note(
            VoiceNoteSubmission(audio=_audio(), building_id="b-1", attachments=files, transcription="t"),
            author="u",
        )

        assert [a.original_name for a in note.attachments] == ["photo.jpg", "layout.pdf"]
        assert [a.mime_type for a in note.attachments] == ["image/jpeg", "application/pdf"]
        assert all(a.file_url == f"/uploads/{a.filename}" for a in note.attachments)
        assert len(_stored_files(media_store)) == 3


class TestTranscribeOnly:
    async def test_returns_text(self, coordinator):
        assert await coordinator.transcribe(_audio()) == "This is a test transcription."

    async def test_errors_propagate(self, coordinator, mock_backend):
        mock_backend.transcribe.side_effect = UpstreamFailureError(401, "invalid key")
        with pytest.raises(UpstreamFailureError):
            await coordinator.transcribe(_audio())

    async def test_transcribe_size_limit(self, coordinator):
        with pytest.raises(InvalidFileError, match="limit"):
            await coordinator.transcribe(_audio(b"x" * 600))
