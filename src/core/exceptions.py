"""
Voice notes exception hierarchy.

All application-specific exceptions inherit from VoiceNotesError,
enabling centralized error handling in the API middleware layer and
uniform error display in the recorder client.
"""

from datetime import UTC, datetime


class VoiceNotesError(Exception):
    """Base exception for all voice notes errors."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        code: str = "VOICENOTES_ERROR",
        status_code: int = 500,
    ) -> None:
        self.detail = detail
        self.code = code
        self.status_code = status_code
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(detail)


class PermissionDeniedError(VoiceNotesError):
    """Raised when access to the capture device is refused."""

    def __init__(self, detail: str = "Failed to access microphone. Please grant permission.") -> None:
        super().__init__(detail=detail, code="PERMISSION_DENIED", status_code=403)


class DecodeFailureError(VoiceNotesError):
    """Raised when captured audio cannot be decoded or resampled.

    The capture session is discarded; the user has to record again.
    """

    def __init__(self, detail: str = "Captured audio could not be decoded") -> None:
        super().__init__(detail=detail, code="DECODE_FAILURE", status_code=503)


class ServiceUnavailableError(VoiceNotesError):
    """Raised when the transcription backend is not configured or cannot run."""

    def __init__(self, detail: str = "Transcription service is not configured") -> None:
        super().__init__(detail=detail, code="SERVICE_UNAVAILABLE", status_code=503)


class UpstreamFailureError(VoiceNotesError):
    """Raised when the remote speech service answers with a non-2xx status.

    Attributes:
        upstream_status: HTTP status returned by the upstream service.
        body_excerpt: First characters of the upstream response body.
    """

    EXCERPT_LENGTH = 500

    def __init__(self, upstream_status: int, body: str = "") -> None:
        self.upstream_status = upstream_status
        self.body_excerpt = (body or "")[: self.EXCERPT_LENGTH]
        status_code = upstream_status if 400 <= upstream_status <= 599 else 502
        super().__init__(
            detail=f"Remote transcription failed ({upstream_status}): {self.body_excerpt}",
            code="UPSTREAM_FAILURE",
            status_code=status_code,
        )


class InvalidFileError(VoiceNotesError):
    """Raised when an uploaded file is missing, too large, or not allowed."""

    def __init__(self, detail: str = "Invalid file type") -> None:
        super().__init__(detail=detail, code="INVALID_FILE", status_code=400)


class ValidationFailureError(VoiceNotesError):
    """Raised when a submission fails non-file validation (e.g. association)."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail=detail, code="VALIDATION_ERROR", status_code=400)


class NoteNotFoundError(VoiceNotesError):
    """Raised when a note ID does not exist."""

    def __init__(self, note_id: int | str) -> None:
        super().__init__(
            detail=f"Note not found: {note_id}",
            code="NOTE_NOT_FOUND",
            status_code=404,
        )


class RecorderStateError(VoiceNotesError):
    """Raised when a recorder action is not valid in the current state."""

    def __init__(self, action: str, state: str) -> None:
        super().__init__(
            detail=f"Cannot {action} while recorder is {state}",
            code="INVALID_STATE",
            status_code=409,
        )
