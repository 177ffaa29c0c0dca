"""Local Whisper backend using faster-whisper.

The WhisperModel is loaded lazily on first use through a
:class:`SingleFlightCache` owned by the backend instance, so concurrent
first requests share one load and every later call reuses the handle.
Inference runs in a worker thread; the loaded model is only read.
"""

import asyncio
import logging

import numpy as np
from faster_whisper import WhisperModel

from src.core.config import get_settings
from src.core.exceptions import ServiceUnavailableError
from src.services.audio.processor import AudioProcessor
from src.services.transcription.base import TranscriptionBackend
from src.services.transcription.model_cache import SingleFlightCache

logger = logging.getLogger(__name__)

# Digital silence only; quiet speech is left to the model's VAD.
_SILENCE_RMS = 1e-4


class WhisperSTT(TranscriptionBackend):
    """Speech-to-text backend running faster-whisper in-process.

    Args:
        model_size: Whisper model size (tiny, base, small, medium, large-v3).
        device: Computation device ("cpu" or "cuda").
        compute_type: CTranslate2 compute type ("int8", "float16", etc.).
        model_loader: Optional zero-argument factory replacing the
            WhisperModel constructor (used in tests).
        settings: Optional Settings instance (defaults to get_settings()).
    """

    name = "local"

    def __init__(
        self,
        model_size: str | None = None,
        device: str | None = None,
        compute_type: str | None = None,
        model_loader=None,
        settings=None,
    ) -> None:
        self._settings = settings or get_settings()
        self._model_size = model_size or self._settings.whisper_model
        self._device = device or self._settings.whisper_device
        self._compute_type = compute_type or self._settings.whisper_compute_type
        self._processor = AudioProcessor()
        self._cache: SingleFlightCache = SingleFlightCache(
            model_loader or self._load_model,
            name=f"Whisper model {self._model_size}",
        )

    def _load_model(self) -> WhisperModel:
        logger.info(
            "Loading Whisper model: %s (device=%s, compute=%s)",
            self._model_size,
            self._device,
            self._compute_type,
        )
        return WhisperModel(
            self._model_size,
            device=self._device,
            compute_type=self._compute_type,
        )

    async def get_model(self):
        """Return the shared model handle, loading it on first demand."""
        try:
            return await self._cache.get()
        except Exception as exc:
            raise ServiceUnavailableError(f"Local speech model could not be loaded: {exc}") from exc

    @staticmethod
    def _run_transcription(model, audio: np.ndarray, language: str | None = None) -> str:
        """Run synchronous inference (CPU-bound).

        Must be called via asyncio.to_thread(). The segment iterator is
        materialized inside this function to avoid CTranslate2
        thread-safety issues.
        """
        segments_iter, _info = model.transcribe(
            audio,
            language=language,
            beam_size=5,
            vad_filter=True,
        )
        pieces = [seg.text.strip() for seg in segments_iter]
        return " ".join(piece for piece in pieces if piece).strip()

    async def transcribe(self, audio: bytes, filename: str, mime_type: str, **kwargs) -> str:
        """Transcribe *audio* with the local model.

        The clip is converted to mono 16 kHz float32 first; recorder WAVs
        already have that shape and skip the decoder.
        """
        samples = await asyncio.to_thread(
            self._processor.to_model_input, audio, mime_type, filename
        )
        if self._processor.is_silent(samples, threshold=_SILENCE_RMS):
            return ""

        model = await self.get_model()
        language = kwargs.get("language") or self._settings.whisper_default_language or None
        try:
            return await asyncio.to_thread(self._run_transcription, model, samples, language)
        except Exception as exc:
            logger.error("Local transcription failed: %s", exc)
            raise ServiceUnavailableError(f"Local transcription failed: {exc}") from exc

    async def aclose(self) -> None:
        self._cache.clear()
