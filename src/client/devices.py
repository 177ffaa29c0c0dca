"""Capture device abstraction for the recorder.

``CaptureDevice.open()`` acquires the microphone exclusively and returns a
``CaptureStream``; ``CaptureStream.close()`` releases it and is safe to call
more than once. Tests substitute fake devices implementing the same
protocols.
"""

import asyncio
import io
import logging
import threading
from typing import Protocol

import numpy as np
import soundfile as sf

from src.core.exceptions import PermissionDeniedError

logger = logging.getLogger(__name__)


class CaptureStream(Protocol):
    """An open, exclusively held input stream."""

    mime_type: str

    def stop(self) -> bytes:
        """Stop capturing and return everything captured as one blob."""

    def close(self) -> None:
        """Release the device. Idempotent."""


class CaptureDevice(Protocol):
    """Something that can hand out a capture stream."""

    async def open(self) -> CaptureStream:
        """Acquire the device.

        Raises:
            PermissionDeniedError: Access was refused or no input exists.
        """


class SoundDeviceStream:
    """A running ``sounddevice.InputStream`` accumulating float32 chunks."""

    mime_type = "audio/wav"

    def __init__(self, sd, sample_rate: int, channels: int) -> None:
        self._sample_rate = sample_rate
        self._chunks: list[np.ndarray] = []
        self._lock = threading.Lock()
        self._closed = False
        self._stream = sd.InputStream(
            samplerate=sample_rate,
            channels=channels,
            dtype="float32",
            callback=self._on_audio,
        )
        self._stream.start()

    def _on_audio(self, indata, _frames, _time, status) -> None:
        if status:
            logger.debug("Input stream status: %s", status)
        with self._lock:
            self._chunks.append(indata.copy())

    def stop(self) -> bytes:
        """Stop the stream and return the capture as a 16-bit WAV blob."""
        if not self._closed:
            self._stream.stop()
        with self._lock:
            chunks, self._chunks = self._chunks, []
        if chunks:
            audio = np.concatenate(chunks, axis=0)
        else:
            audio = np.zeros((0, 1), dtype=np.float32)
        out = io.BytesIO()
        sf.write(out, audio, self._sample_rate, format="WAV", subtype="PCM_16")
        return out.getvalue()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._stream.stop()
        finally:
            self._stream.close()


class SoundDeviceMicrophone:
    """Default system microphone via PortAudio (``sounddevice``).

    Args:
        sample_rate: Capture rate in Hz; the recorder resamples afterwards.
        channels: Number of input channels to capture.
    """

    def __init__(self, sample_rate: int = 48000, channels: int = 1) -> None:
        self.sample_rate = sample_rate
        self.channels = channels

    async def open(self) -> SoundDeviceStream:
        try:
            import sounddevice as sd
        except OSError as exc:  # PortAudio library missing
            raise PermissionDeniedError(f"No audio input available: {exc}") from exc

        try:
            return await asyncio.to_thread(SoundDeviceStream, sd, self.sample_rate, self.channels)
        except sd.PortAudioError as exc:
            logger.warning("Microphone access failed: %s", exc)
            raise PermissionDeniedError() from exc
