"""Tests for the transcription factory and service facade."""

import pytest

from src.core.exceptions import ServiceUnavailableError, UpstreamFailureError
from src.services.transcription import TranscriptionService, create_backend, create_transcription_service
from src.services.transcription.remote import RemoteSTT
from src.services.transcription.whisper import WhisperSTT


class TestFactory:
    @pytest.mark.parametrize("provider", ["remote", "openai"])
    def test_remote(self, provider):
        assert isinstance(create_backend(provider, api_key="k"), RemoteSTT)

    @pytest.mark.parametrize("provider", ["local", "whisper"])
    def test_local(self, provider):
        assert isinstance(create_backend(provider, model_size="tiny"), WhisperSTT)

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown transcription provider"):
            create_backend("carrier-pigeon")

    def test_service_wraps_backend(self):
        service = create_transcription_service("remote", api_key="")
        assert service.backend_name == "remote"
        assert service.available is False


class TestService:
    async def test_transcribe_delegates(self, mock_backend):
        service = TranscriptionService(mock_backend)
        assert await service.transcribe(b"a", "a.wav", "audio/wav") == "This is a test transcription."
        mock_backend.transcribe.assert_awaited_once_with(b"a", "a.wav", "audio/wav")

    async def test_transcribe_propagates_errors(self, mock_backend):
        mock_backend.transcribe.side_effect = UpstreamFailureError(401, "bad key")
        with pytest.raises(UpstreamFailureError):
            await TranscriptionService(mock_backend).transcribe(b"a", "a.wav", "audio/wav")

    @pytest.mark.parametrize(
        "error",
        [ServiceUnavailableError(), UpstreamFailureError(500, "boom"), RuntimeError("bug")],
    )
    async def test_transcribe_or_empty_swallows(self, mock_backend, error):
        mock_backend.transcribe.side_effect = error
        service = TranscriptionService(mock_backend)
        assert await service.transcribe_or_empty(b"a", "a.wav", "audio/wav") == ""

    async def test_aclose(self, mock_backend):
        await TranscriptionService(mock_backend).aclose()
        mock_backend.aclose.assert_awaited_once()
