"""
Remote speech-recognition backend.

Posts the clip as multipart form data with a bearer credential to an
OpenAI-compatible ``/audio/transcriptions`` endpoint using ``httpx``.
Transient transport errors are retried with exponential backoff; any
non-2xx answer is mapped to :class:`UpstreamFailureError`.
"""

import logging

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.config import get_settings
from src.core.exceptions import ServiceUnavailableError, UpstreamFailureError
from src.services.transcription.base import TranscriptionBackend

logger = logging.getLogger(__name__)


class RemoteSTT(TranscriptionBackend):
    """HTTP transcription backend (OpenAI Whisper API by default).

    Args:
        api_key: Bearer credential; falls back to settings. Empty means
            the backend is unavailable and no request is ever made.
        url: Transcription endpoint URL.
        model: Model identifier sent in the ``model`` form field.
        timeout: Per-request timeout in seconds.
        transport: Optional ``httpx`` transport (tests use ``MockTransport``).
    """

    name = "remote"

    def __init__(
        self,
        api_key: str | None = None,
        url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key if api_key is not None else settings.openai_api_key
        self._url = url or settings.remote_transcription_url
        self._model = model or settings.remote_transcription_model
        self._timeout = timeout if timeout is not None else settings.transcription_timeout
        self._client = httpx.AsyncClient(timeout=self._timeout, transport=transport)

    @property
    def available(self) -> bool:
        return bool(self._api_key)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        # a timed-out request already used its whole budget
        retry=retry_if_exception_type(httpx.TransportError)
        & retry_if_not_exception_type(httpx.TimeoutException),
        reraise=True,
    )
    async def _post(self, audio: bytes, filename: str, mime_type: str) -> httpx.Response:
        """Send one multipart request; connection errors are retried, timeouts are not."""
        return await self._client.post(
            self._url,
            headers={"Authorization": f"Bearer {self._api_key}"},
            files={"file": (filename, audio, mime_type)},
            data={"model": self._model},
        )

    async def transcribe(self, audio: bytes, filename: str, mime_type: str, **kwargs) -> str:
        """Transcribe *audio* through the remote service.

        Raises:
            ServiceUnavailableError: No credential configured (no network call).
            UpstreamFailureError: Non-2xx answer, timeout (504), or
                connection failure (502) after retries.
        """
        if not self.available:
            raise ServiceUnavailableError("OpenAI API key is not configured")

        filename = filename or "audio.webm"
        mime_type = mime_type or "audio/webm"
        try:
            response = await self._post(audio, filename, mime_type)
        except httpx.TimeoutException as exc:
            logger.warning("Remote transcription timed out after %.0fs", self._timeout)
            raise UpstreamFailureError(504, f"Request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            logger.warning("Remote transcription connection error: %s", exc)
            raise UpstreamFailureError(502, f"Connection failed: {exc}") from exc

        if not response.is_success:
            logger.warning("Remote transcription failed with status %s", response.status_code)
            raise UpstreamFailureError(response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamFailureError(502, f"Malformed response: {response.text}") from exc
        return str(payload.get("text") or "").strip()

    async def aclose(self) -> None:
        await self._client.aclose()
