"""Audio conversion pipeline: compressed blob -> 16 kHz mono WAV.

Decoding goes through pydub (ffmpeg for compressed formats, a pure-Python
reader for WAV), sample-rate conversion through scipy's polyphase
resampler, and serialization through :mod:`src.services.audio.wav`.
"""

import io
import logging
from math import gcd

import numpy as np
from pydub import AudioSegment
from scipy.signal import resample_poly

from src.core.exceptions import DecodeFailureError
from src.services.audio.wav import PCMBuffer, decode_wav, encode_wav, is_canonical_wav

logger = logging.getLogger(__name__)

TARGET_SAMPLE_RATE = 16000
TARGET_CHANNELS = 1

# Declared mime type / extension -> ffmpeg demuxer name
_FORMATS = {
    "audio/webm": "webm",
    "video/webm": "webm",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/ogg": "ogg",
    "audio/mp4": "mp4",
    "audio/x-m4a": "mp4",
    "audio/m4a": "mp4",
    ".webm": "webm",
    ".wav": "wav",
    ".mp3": "mp3",
    ".ogg": "ogg",
    ".m4a": "mp4",
}


def guess_format(mime_type: str | None = None, filename: str | None = None) -> str | None:
    """Map a mime type (preferred) or filename extension to a decoder format."""
    if mime_type:
        fmt = _FORMATS.get(mime_type.split(";")[0].strip().lower())
        if fmt:
            return fmt
    if filename and "." in filename:
        return _FORMATS.get("." + filename.rsplit(".", 1)[1].lower())
    return None


class AudioProcessor:
    """Converts captured audio into the canonical waveform container.

    Args:
        target_rate: Output sample rate in Hz (default: 16 kHz for Whisper).
        target_channels: Output channel count (only mono is supported).
    """

    def __init__(
        self,
        target_rate: int = TARGET_SAMPLE_RATE,
        target_channels: int = TARGET_CHANNELS,
    ) -> None:
        if target_channels != 1:
            raise ValueError("Only mono output is supported")
        self.target_rate = target_rate
        self.target_channels = target_channels

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    def decode(self, data: bytes, mime_type: str | None = None, filename: str | None = None) -> PCMBuffer:
        """Decode compressed audio into per-channel float samples.

        Raises:
            DecodeFailureError: Empty, corrupt, or unsupported input, or no
                decoder (ffmpeg) available for the container.
        """
        if not data:
            raise DecodeFailureError("No audio data captured")

        fmt = guess_format(mime_type, filename)
        try:
            segment = AudioSegment.from_file(io.BytesIO(data), format=fmt)
        except Exception as exc:
            logger.warning("Audio decode failed (format=%s): %s", fmt, exc)
            raise DecodeFailureError(f"Unsupported or corrupt audio: {exc}") from exc

        channels = segment.channels
        full_scale = float(1 << (8 * segment.sample_width - 1))
        raw = np.array(segment.get_array_of_samples(), dtype=np.float32) / full_scale
        if channels > 1:
            raw = raw[: len(raw) - len(raw) % channels]
        samples = raw.reshape(-1, channels).T
        return PCMBuffer(samples=np.ascontiguousarray(samples), sample_rate=segment.frame_rate)

    def resample(self, buffer: PCMBuffer, target_rate: int | None = None) -> PCMBuffer:
        """Resample every channel to *target_rate*.

        Output length is ``ceil(duration * target_rate)`` frames.
        """
        rate = target_rate or self.target_rate
        if buffer.sample_rate == rate:
            return buffer
        if buffer.sample_rate <= 0:
            raise DecodeFailureError(f"Invalid source sample rate: {buffer.sample_rate}")

        frames = -(-buffer.frame_count * rate // buffer.sample_rate)  # ceil, integer-exact
        if buffer.frame_count == 0:
            return PCMBuffer(
                samples=np.zeros((buffer.channel_count, 0), dtype=np.float32),
                sample_rate=rate,
            )

        divisor = gcd(rate, buffer.sample_rate)
        up, down = rate // divisor, buffer.sample_rate // divisor
        resampled = resample_poly(buffer.samples, up, down, axis=1)

        # Polyphase output length is ceil(n * up / down); pin it anyway
        if resampled.shape[1] > frames:
            resampled = resampled[:, :frames]
        elif resampled.shape[1] < frames:
            pad = frames - resampled.shape[1]
            resampled = np.pad(resampled, ((0, 0), (0, pad)))
        return PCMBuffer(samples=resampled.astype(np.float32), sample_rate=rate)

    def to_mono(self, buffer: PCMBuffer) -> PCMBuffer:
        """Downmix by averaging all channels into one."""
        if buffer.channel_count == 1:
            return buffer
        mixed = buffer.samples.mean(axis=0, keepdims=True, dtype=np.float64)
        return PCMBuffer(samples=mixed.astype(np.float32), sample_rate=buffer.sample_rate)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def convert(self, buffer: PCMBuffer) -> PCMBuffer:
        """Resample and downmix an already-decoded buffer."""
        return self.to_mono(self.resample(buffer))

    def convert_to_wav(
        self,
        data: bytes,
        mime_type: str | None = None,
        filename: str | None = None,
    ) -> bytes:
        """Full pipeline: decode, resample, downmix, encode.

        Never returns a partial container; any failure raises
        :class:`DecodeFailureError`.
        """
        buffer = self.convert(self.decode(data, mime_type=mime_type, filename=filename))
        return encode_wav(buffer)

    def to_model_input(
        self,
        data: bytes,
        mime_type: str | None = None,
        filename: str | None = None,
    ) -> np.ndarray:
        """Return mono float32 samples at the target rate for STT models.

        Canonical WAV input (what the recorder uploads) skips the decoder.
        """
        if is_canonical_wav(data):
            try:
                buffer = decode_wav(data)
            except ValueError:
                buffer = self.decode(data, mime_type=mime_type, filename=filename)
        else:
            buffer = self.decode(data, mime_type=mime_type, filename=filename)
        return self.convert(buffer).samples[0]

    def is_silent(self, audio: np.ndarray, threshold: float = 0.01) -> bool:
        """Check if an audio segment is silence based on RMS energy.

        Args:
            audio: Float32 numpy array of audio samples.
            threshold: RMS energy below this value is considered silence.

        Returns:
            True if the audio is silence.
        """
        if len(audio) == 0:
            return True
        rms = np.sqrt(np.mean(np.square(audio, dtype=np.float64)))
        return float(rms) < threshold
