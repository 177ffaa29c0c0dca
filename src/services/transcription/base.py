"""
Abstract base class for transcription backends.

Both adapters (remote speech API, local faster-whisper model) implement
this interface, so the Upload Coordinator and the transcribe endpoint
never know which one is active.
"""

from abc import ABC, abstractmethod


class TranscriptionBackend(ABC):
    """Interface that every transcription backend must implement."""

    #: Short identifier used in configuration and health output.
    name: str = "base"

    @property
    def available(self) -> bool:
        """Whether the backend is configured well enough to attempt a call."""
        return True

    @abstractmethod
    async def transcribe(self, audio: bytes, filename: str, mime_type: str, **kwargs) -> str:
        """Transcribe one whole audio clip.

        Args:
            audio: Encoded audio bytes (WAV from the recorder, or any
                allow-listed audio container).
            filename: Original filename, forwarded to services that sniff it.
            mime_type: Declared mime type of *audio*.
            **kwargs: Backend-specific options (language, etc.).

        Returns:
            The recognized text, trimmed. Empty when no speech was detected.

        Raises:
            ServiceUnavailableError: Backend not configured.
            UpstreamFailureError: Remote service answered with non-2xx.
            DecodeFailureError: Audio could not be decoded for a local model.
        """

    async def aclose(self) -> None:
        """Release any held resources (HTTP clients, models)."""
