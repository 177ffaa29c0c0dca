"""
Recorder controller: the capture, preview and upload state machine.

States::

    idle -> recording -> processing -> ready -> uploading -> idle
                                         ^          |
                                         +-- error <+

The capture device is released on every exit from ``recording``: normal
stop, decode failure, and ``close()`` (teardown). A stop requested while
the device permission is still pending releases the stream as soon as it
arrives. Transcription failure never blocks ``ready``; the transcript just
stays empty and editable.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import StrEnum

from src.client.api_client import LocalFile, VoiceNotesClient
from src.client.devices import CaptureDevice, CaptureStream
from src.core.exceptions import (
    DecodeFailureError,
    PermissionDeniedError,
    RecorderStateError,
    ValidationFailureError,
    VoiceNotesError,
)
from src.services.audio.processor import AudioProcessor

logger = logging.getLogger(__name__)


class RecorderState(StrEnum):
    """Possible states of a recorder controller."""

    idle = "idle"
    recording = "recording"
    processing = "processing"
    ready = "ready"
    uploading = "uploading"
    error = "error"


@dataclass
class CaptureSession:
    """The live device stream owned by the controller while recording."""

    stream: CaptureStream
    started_at: float = field(default_factory=time.monotonic)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at


class RecorderController:
    """Drives one voice note from microphone to upload.

    Args:
        device: Capture device to acquire on ``start()``.
        client: API client used for transcription and upload.
        processor: Converter to the 16 kHz mono WAV container.
        auto_transcribe: Fetch a transcript right after recording stops.
        building_id: Building the note belongs to (exclusive with *channel*).
        channel: Channel the note belongs to (exclusive with *building_id*).
    """

    def __init__(
        self,
        device: CaptureDevice,
        client: VoiceNotesClient,
        processor: AudioProcessor | None = None,
        auto_transcribe: bool = True,
        building_id: str | None = None,
        channel: str | None = None,
    ) -> None:
        self._device = device
        self._client = client
        self._processor = processor or AudioProcessor()
        self._auto_transcribe = auto_transcribe
        self.building_id = building_id
        self.channel = channel

        self.state = RecorderState.idle
        self.error: str | None = None
        self._session: CaptureSession | None = None
        self._opening = False
        self._abort_open = False
        self._closed = False
        self._transcribe_task: asyncio.Task | None = None

        # Draft of the note being prepared
        self.wav: bytes | None = None
        self.transcription = ""
        self.title = ""
        self.description = ""
        self.attachments: list[LocalFile] = []

    def _reset_draft(self) -> None:
        self.wav = None
        self.transcription = ""
        self.title = ""
        self.description = ""
        self.attachments = []

    def _discard_capture(self, message: str) -> None:
        """Drop the clip and go back to ``idle`` so a new take can start."""
        self._reset_draft()
        self.error = message
        self._set_state(RecorderState.idle)

    def _set_state(self, state: RecorderState) -> None:
        logger.debug("Recorder %s -> %s", self.state, state)
        self.state = state

    @property
    def is_transcribing(self) -> bool:
        return self._transcribe_task is not None and not self._transcribe_task.done()

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        """Acquire the device and begin recording.

        A start while already recording (or while permission is pending)
        is ignored. Returns True when recording actually began.
        """
        if self.state == RecorderState.recording or self._opening:
            return False
        if self.state != RecorderState.idle or self._closed:
            raise RecorderStateError("start recording", self.state)

        self._opening = True
        self._abort_open = False
        self.error = None
        try:
            stream = await self._device.open()
        except PermissionDeniedError as exc:
            self.error = exc.detail
            return False
        finally:
            self._opening = False

        if self._abort_open or self._closed:
            stream.close()
            return False

        self._session = CaptureSession(stream=stream)
        self._set_state(RecorderState.recording)
        return True

    def _release(self) -> CaptureSession | None:
        session, self._session = self._session, None
        if session is not None:
            session.stream.close()
        return session

    async def stop(self) -> None:
        """Stop recording, release the device, and prepare the preview."""
        if self._opening:
            self._abort_open = True
            return
        if self.state != RecorderState.recording or self._session is None:
            return

        session = self._session
        try:
            blob = session.stream.stop()
        except Exception as exc:
            logger.warning("Failed to stop capture: %s", exc)
            self._discard_capture(f"Recording failed: {exc}")
            return
        finally:
            self._release()
        self._set_state(RecorderState.processing)
        logger.info("Captured %.1fs of audio (%d bytes)", session.elapsed, len(blob))

        try:
            wav = await asyncio.to_thread(
                self._processor.convert_to_wav, blob, session.stream.mime_type
            )
        except DecodeFailureError as exc:
            self._discard_capture(exc.detail)
            return
        except Exception as exc:
            logger.error("Audio conversion failed: %s", exc)
            self._discard_capture(f"Audio conversion failed: {exc}")
            return
        if self._closed:
            return

        self.wav = wav
        if self._auto_transcribe:
            await self._fetch_transcription(wav)
        if self.state == RecorderState.processing:
            self._set_state(RecorderState.ready)

    async def _fetch_transcription(self, wav: bytes) -> None:
        self._transcribe_task = asyncio.create_task(self._client.transcribe(wav, "recording.wav"))
        try:
            self.transcription = await self._transcribe_task
        except asyncio.CancelledError:
            if not self._closed:
                raise
        except VoiceNotesError as exc:
            logger.warning("Transcription failed: %s", exc.detail)
            self.error = exc.detail
        finally:
            self._transcribe_task = None

    def record_again(self) -> None:
        """Discard the captured clip and go back to ``idle``."""
        if self.state not in (RecorderState.ready, RecorderState.error):
            raise RecorderStateError("record again", self.state)
        self._reset_draft()
        self.error = None
        self._set_state(RecorderState.idle)

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def _validate_submission(self) -> None:
        if not self.wav:
            raise ValidationFailureError("No audio recorded")
        if not self.title.strip():
            raise ValidationFailureError("Please enter a title for this voice note.")
        if not self.building_id and not self.channel:
            raise ValidationFailureError("A building or channel is required.")

    async def submit(self) -> dict | None:
        """Upload the clip and draft fields as a voice note.

        Returns the created note on success (controller back to ``idle``),
        or None on failure (controller in ``error``; ``submit()`` may be
        retried without recording again).
        """
        if self.state not in (RecorderState.ready, RecorderState.error) or not self.wav:
            raise RecorderStateError("submit", self.state)
        try:
            self._validate_submission()
        except ValidationFailureError as exc:
            self.error = exc.detail
            return None

        self.error = None
        self._set_state(RecorderState.uploading)
        try:
            note = await self._client.create_voice_note(
                self.wav,
                filename="voice-note.wav",
                mime_type="audio/wav",
                building_id=self.building_id,
                channel=self.channel,
                title=self.title.strip(),
                transcription=self.transcription,
                description=self.description,
                attachments=list(self.attachments),
            )
        except VoiceNotesError as exc:
            logger.warning("Upload failed: %s", exc.detail)
            self.error = exc.detail or "Failed to upload voice note"
            self._set_state(RecorderState.error)
            return None

        self._reset_draft()
        self._set_state(RecorderState.idle)
        return note

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Tear the controller down, releasing the device in any state."""
        self._closed = True
        self._abort_open = True
        self._release()
        if self._transcribe_task is not None and not self._transcribe_task.done():
            self._transcribe_task.cancel()
        self._reset_draft()
        self._set_state(RecorderState.idle)
