"""
Transcription service facade.

Owns the single active :class:`TranscriptionBackend` (chosen from
configuration at startup) for the lifetime of the application, so the
local model cache lives exactly as long as the service does.
"""

import logging

from src.services.transcription.base import TranscriptionBackend

logger = logging.getLogger(__name__)


class TranscriptionService:
    """Provider-agnostic entry point for one-shot clip transcription.

    Args:
        backend: The active adapter.
    """

    def __init__(self, backend: TranscriptionBackend) -> None:
        self._backend = backend

    @property
    def backend_name(self) -> str:
        return self._backend.name

    @property
    def available(self) -> bool:
        return self._backend.available

    async def transcribe(self, audio: bytes, filename: str, mime_type: str, **kwargs) -> str:
        """Transcribe *audio*; errors from the backend propagate unchanged."""
        text = await self._backend.transcribe(audio, filename, mime_type, **kwargs)
        logger.debug("Transcribed %s via %s (%d chars)", filename, self.backend_name, len(text))
        return text

    async def transcribe_or_empty(self, audio: bytes, filename: str, mime_type: str, **kwargs) -> str:
        """Best-effort variant used for enrichment: any failure yields ``""``."""
        try:
            return await self.transcribe(audio, filename, mime_type, **kwargs)
        except Exception:
            logger.warning(
                "Transcription of %s via %s failed; continuing without transcript",
                filename,
                self.backend_name,
                exc_info=True,
            )
            return ""

    async def aclose(self) -> None:
        await self._backend.aclose()
