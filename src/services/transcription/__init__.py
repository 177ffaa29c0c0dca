"""
Transcription module - Speech-to-text abstraction layer.

Factory functions for creating the configured backend and the service
that owns it.
"""

from .base import TranscriptionBackend
from .service import TranscriptionService

__all__ = [
    "TranscriptionBackend",
    "TranscriptionService",
    "create_backend",
    "create_transcription_service",
]


def create_backend(provider: str, **kwargs) -> TranscriptionBackend:
    """
    Factory function to create a transcription backend by provider name.

    Args:
        provider: Backend name ("remote"/"openai" or "local"/"whisper")
        **kwargs: Provider-specific configuration

    Returns:
        TranscriptionBackend implementation instance

    Raises:
        ValueError: If provider is unknown
    """
    if provider in ("remote", "openai"):
        from .remote import RemoteSTT
        return RemoteSTT(**kwargs)
    elif provider in ("local", "whisper"):
        from .whisper import WhisperSTT
        return WhisperSTT(**kwargs)
    else:
        raise ValueError(f"Unknown transcription provider: {provider}")


def create_transcription_service(provider: str | None = None, **kwargs) -> TranscriptionService:
    """Build a :class:`TranscriptionService` around the configured backend."""
    if provider is None:
        from src.core.config import get_settings

        provider = get_settings().transcription_backend
    return TranscriptionService(create_backend(provider, **kwargs))
