"""End-to-end flow: recorder controller -> API client -> FastAPI app.

The capture device is faked; everything from WAV conversion through the
HTTP layer to SQLite runs for real.
"""

from httpx import ASGITransport

from src.client.api_client import LocalFile, VoiceNotesClient
from src.client.recorder import RecorderController, RecorderState
from tests.helpers import make_wav_bytes, sine


class OneShotDevice:
    """Hands out a single stream that yields a fixed 48 kHz capture."""

    def __init__(self, blob: bytes):
        self.blob = blob
        self.closed = False

    async def open(self):
        return self

    mime_type = "audio/wav"

    def stop(self) -> bytes:
        return self.blob

    def close(self) -> None:
        self.closed = True


async def test_record_transcribe_and_upload(app, async_client, use_upstream, media_store):
    use_upstream(200, {"text": "Lobby lights flicker after ten"})
    device = OneShotDevice(make_wav_bytes(sine(300.0, 48000, 1.0) * 32767, 48000))
    client = VoiceNotesClient(base_url="http://test", author="tech-3", transport=ASGITransport(app=app))
    recorder = RecorderController(device, client, building_id="b-5")

    await recorder.start()
    await recorder.stop()
    assert device.closed
    assert recorder.state == RecorderState.ready
    assert recorder.transcription == "Lobby lights flicker after ten"

    recorder.title = "Lobby lights"
    recorder.attachments.append(LocalFile("lobby.jpg", b"\xff\xd8\xff", "image/jpeg"))
    note = await recorder.submit()
    await client.aclose()

    assert recorder.state == RecorderState.idle
    assert note["author"] == "tech-3"
    assert note["buildingId"] == "b-5"
    assert note["title"] == "Lobby lights"
    assert note["transcription"] == "Lobby lights flicker after ten"
    assert note["attachments"][0]["originalName"] == "lobby.jpg"

    stored = (media_store.root / note["fileUrl"].rsplit("/", 1)[1]).read_bytes()
    assert stored[:4] == b"RIFF"
    assert len(stored) == 44 + 16000 * 2


async def test_upload_with_unconfigured_backend(app, async_client):
    """No credential: the preview has no transcript, upload still succeeds."""
    device = OneShotDevice(make_wav_bytes(sine(300.0, 16000, 0.5) * 32767, 16000))
    client = VoiceNotesClient(base_url="http://test", transport=ASGITransport(app=app))
    recorder = RecorderController(device, client, channel="onboarding")

    await recorder.start()
    await recorder.stop()
    assert recorder.state == RecorderState.ready
    assert recorder.transcription == ""
    assert recorder.error

    recorder.title = "Welcome tour"
    note = await recorder.submit()
    await client.aclose()

    assert note["content"] == "Voice note"
    assert note["channel"] == "onboarding"
