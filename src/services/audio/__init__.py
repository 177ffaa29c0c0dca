"""
Audio module - Decoding, resampling, and WAV container encoding.
"""

from .processor import AudioProcessor
from .wav import PCMBuffer, decode_wav, encode_wav

__all__ = ["AudioProcessor", "PCMBuffer", "decode_wav", "encode_wav"]
