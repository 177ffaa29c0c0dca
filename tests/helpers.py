"""Synthetic audio builders shared by unit and integration tests."""

import io
import math
import wave

import numpy as np


def make_wav_bytes(samples: np.ndarray, sample_rate: int) -> bytes:
    """Write int16 samples shaped ``(frames,)`` or ``(frames, channels)`` as WAV."""
    data = np.asarray(samples, dtype=np.int16)
    channels = 1 if data.ndim == 1 else data.shape[1]
    out = io.BytesIO()
    with wave.open(out, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(data.astype("<i2").tobytes())
    return out.getvalue()


def sine(frequency: float, sample_rate: int, seconds: float, amplitude: float = 0.5) -> np.ndarray:
    """Float32 sine wave."""
    t = np.arange(int(sample_rate * seconds)) / sample_rate
    return (amplitude * np.sin(2 * math.pi * frequency * t)).astype(np.float32)
