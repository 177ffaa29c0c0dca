"""Canonical 16-bit PCM waveform container (RIFF/WAVE).

The layout is bit-exact: a fixed 44-byte header followed immediately by
interleaved little-endian signed 16-bit samples::

    offset  size  field
    0       4     "RIFF"
    4       4     total_bytes - 8
    8       4     "WAVE"
    12      4     "fmt "
    16      4     16 (fmt chunk size)
    20      2     1 (linear PCM)
    22      2     channel count
    24      4     sample rate
    28      4     byte rate = sample_rate * channels * 2
    32      2     block align = channels * 2
    34      2     16 (bits per sample)
    36      4     "data"
    40      4     data_bytes = frames * channels * 2
"""

import struct
from dataclasses import dataclass

import numpy as np

HEADER_SIZE = 44
BYTES_PER_SAMPLE = 2
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


@dataclass
class PCMBuffer:
    """Decoded audio as per-channel float samples in [-1.0, 1.0].

    Attributes:
        samples: Float32 array shaped ``(channel_count, frame_count)``.
        sample_rate: Frames per second.
    """

    samples: np.ndarray
    sample_rate: int

    @property
    def channel_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        """Length of the buffer in seconds."""
        if self.sample_rate <= 0:
            return 0.0
        return self.frame_count / self.sample_rate


def quantize(samples: np.ndarray) -> np.ndarray:
    """Convert float samples to signed 16-bit integers.

    Samples are clamped to [-1, 1]; negatives scale by 32768 and
    non-negatives by 32767 so that +1.0 does not overflow. Rounds toward zero.
    """
    clipped = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 32768.0, clipped * 32767.0)
    return np.trunc(scaled).astype(np.int16)


def dequantize(samples: np.ndarray) -> np.ndarray:
    """Inverse of :func:`quantize` (within one quantization step)."""
    values = np.asarray(samples, dtype=np.float64)
    return np.where(values < 0, values / 32768.0, values / 32767.0).astype(np.float32)


def build_header(frame_count: int, channel_count: int, sample_rate: int) -> bytes:
    """Return the 44-byte RIFF/WAVE header for the given PCM shape."""
    data_bytes = frame_count * channel_count * BYTES_PER_SAMPLE
    return _HEADER.pack(
        b"RIFF",
        HEADER_SIZE + data_bytes - 8,
        b"WAVE",
        b"fmt ",
        16,
        1,
        channel_count,
        sample_rate,
        sample_rate * channel_count * BYTES_PER_SAMPLE,
        channel_count * BYTES_PER_SAMPLE,
        16,
        b"data",
        data_bytes,
    )


def encode_wav(buffer: PCMBuffer) -> bytes:
    """Serialize a PCM buffer into the canonical waveform container.

    Args:
        buffer: Float samples shaped ``(channels, frames)``.

    Returns:
        Header plus interleaved 16-bit little-endian samples.
    """
    # (channels, frames) -> frames-major interleaving: L0 R0 L1 R1 ...
    interleaved = quantize(buffer.samples.T.reshape(-1))
    header = build_header(buffer.frame_count, buffer.channel_count, buffer.sample_rate)
    return header + interleaved.astype("<i2").tobytes()


def is_canonical_wav(data: bytes) -> bool:
    """True when *data* starts with a RIFF/WAVE header this module can read."""
    return len(data) >= HEADER_SIZE and data[0:4] == b"RIFF" and data[8:12] == b"WAVE"


def decode_wav(data: bytes) -> PCMBuffer:
    """Parse a 16-bit PCM WAV byte string back into float samples.

    Unknown chunks between ``fmt `` and ``data`` are skipped, so files
    written by other tools are accepted as long as they are 16-bit PCM.

    Raises:
        ValueError: If the container is malformed or not 16-bit linear PCM.
    """
    if not is_canonical_wav(data):
        raise ValueError("Not a RIFF/WAVE container")

    offset = 12
    channel_count = sample_rate = bits = None
    while offset + 8 <= len(data):
        chunk_id, chunk_size = struct.unpack_from("<4sI", data, offset)
        body = offset + 8
        if chunk_id == b"fmt ":
            fmt_tag, channel_count, sample_rate = struct.unpack_from("<HHI", data, body)
            (bits,) = struct.unpack_from("<H", data, body + 14)
            if fmt_tag != 1 or bits != 16:
                raise ValueError(f"Unsupported WAV encoding (tag={fmt_tag}, bits={bits})")
        elif chunk_id == b"data":
            if channel_count is None:
                raise ValueError("WAV data chunk precedes fmt chunk")
            raw = data[body : body + chunk_size]
            usable = len(raw) - len(raw) % (channel_count * BYTES_PER_SAMPLE)
            ints = np.frombuffer(raw[:usable], dtype="<i2")
            samples = dequantize(ints).reshape(-1, channel_count).T
            return PCMBuffer(samples=np.ascontiguousarray(samples), sample_rate=sample_rate)
        # RIFF chunks are word aligned
        offset = body + chunk_size + (chunk_size & 1)

    raise ValueError("WAV container has no data chunk")
