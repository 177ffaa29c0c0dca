"""
Asynchronous HTTP client for the voice notes API.

Uses ``httpx.AsyncClient`` because the recorder controller is asyncio
based. Every method returns parsed data or raises a ``VoiceNotesError``
carrying the server's message, code, and status.
"""

import logging
from dataclasses import dataclass

import httpx

from src.core.config import get_settings
from src.core.exceptions import ServiceUnavailableError, UpstreamFailureError, VoiceNotesError

logger = logging.getLogger(__name__)


@dataclass
class LocalFile:
    """A file picked on the client for upload as an attachment."""

    filename: str
    data: bytes
    mime_type: str = "application/octet-stream"


class VoiceNotesClient:
    """Thin async wrapper around httpx for the voice endpoints.

    Args:
        base_url: Base URL of the voice notes API (defaults to settings).
        timeout: Per-request timeout in seconds.
        author: Optional user id forwarded as ``X-User-Id``.
        transport: Optional ``httpx`` transport (tests use ``ASGITransport``
            or ``MockTransport``).
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 120.0,
        author: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or get_settings().api_base_url).rstrip("/")
        headers = {"X-User-Id": author} if author else None
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Execute an HTTP request and map failures to ``VoiceNotesError``."""
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.ConnectError as exc:
            raise ServiceUnavailableError(f"Server is not reachable at {self._base_url}") from exc
        except httpx.TimeoutException as exc:
            raise UpstreamFailureError(504, "Request timed out") from exc
        except httpx.HTTPError as exc:
            raise VoiceNotesError(f"Network error: {exc}", code="NETWORK_ERROR", status_code=502) from exc

        if resp.is_success:
            return resp

        try:
            body = resp.json()
            message = body.get("message") or body.get("detail") or resp.text
            code = body.get("code") or "HTTP_ERROR"
        except ValueError:
            message, code = resp.text or resp.reason_phrase, "HTTP_ERROR"
        raise VoiceNotesError(str(message), code=code, status_code=resp.status_code)

    async def transcribe(
        self,
        audio: bytes,
        filename: str = "recording.wav",
        mime_type: str = "audio/wav",
    ) -> str:
        """Send one clip to ``POST /voice/transcribe`` and return the text."""
        resp = await self._request(
            "POST",
            "/voice/transcribe",
            files={"audio": (filename, audio, mime_type)},
        )
        return resp.json().get("transcription") or ""

    async def create_voice_note(
        self,
        audio: bytes,
        *,
        filename: str = "voice-note.wav",
        mime_type: str = "audio/wav",
        building_id: str | None = None,
        channel: str | None = None,
        title: str | None = None,
        transcription: str | None = None,
        description: str | None = None,
        attachments: list[LocalFile] | None = None,
    ) -> dict:
        """Upload a voice note to ``POST /voice`` and return the created note."""
        fields = {
            "buildingId": building_id,
            "channel": channel,
            "title": title,
            "transcription": transcription,
            "description": description,
        }
        data = {key: value for key, value in fields.items() if value is not None}
        files = [("audio", (filename, audio, mime_type))]
        files.extend(
            ("attachments", (item.filename, item.data, item.mime_type))
            for item in attachments or []
        )
        resp = await self._request("POST", "/voice", data=data, files=files)
        return resp.json()

    async def aclose(self) -> None:
        await self._client.aclose()
