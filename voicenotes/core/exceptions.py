"""
VoiceNotes exception hierarchy.

All application-specific exceptions inherit from VoiceNotesError,
enabling centralized error handling in the API middleware layer and
at the extension pipeline boundary.
"""

from datetime import UTC, datetime


class VoiceNotesError(Exception):
    """Base exception for all VoiceNotes errors."""

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


# ---------------------------------------------------------------------------
# Recording session usage errors (propagated to the caller)
# ---------------------------------------------------------------------------


class DeviceUnavailableError(VoiceNotesError):
    """Raised when the capture device cannot be activated."""

    def __init__(self, detail: str = "Capture device is unavailable") -> None:
        super().__init__(detail=detail, code="DEVICE_UNAVAILABLE", status_code=503)


class AlreadyRecordingError(VoiceNotesError):
    """Raised when trying to start a capture while one is already active."""

    def __init__(self) -> None:
        super().__init__(
            detail="A recording is already active",
            code="ALREADY_RECORDING",
            status_code=409,
        )


class InvalidStateError(VoiceNotesError):
    """Raised when a session command is not valid in the current state."""

    def __init__(self, action: str, state: str) -> None:
        super().__init__(
            detail=f"Cannot {action} while {state}",
            code="INVALID_STATE",
            status_code=409,
        )


class MemoNotFoundError(VoiceNotesError):
    """Raised when a memo ID does not exist in the store."""

    def __init__(self, memo_id: str) -> None:
        super().__init__(
            detail=f"Memo not found: {memo_id}",
            code="MEMO_NOT_FOUND",
            status_code=404,
        )


# ---------------------------------------------------------------------------
# Audio segment editor errors (caught by the pipeline, trigger rollback)
# ---------------------------------------------------------------------------


class MergeError(VoiceNotesError):
    """Raised when two segments cannot be concatenated."""

    def __init__(self, detail: str = "Audio merge failed") -> None:
        super().__init__(detail=detail, code="MERGE_ERROR", status_code=500)


class TrimError(VoiceNotesError):
    """Raised when a segment cannot be trimmed at the requested offset."""

    def __init__(self, detail: str = "Audio trim failed") -> None:
        super().__init__(detail=detail, code="TRIM_ERROR", status_code=500)


# ---------------------------------------------------------------------------
# Transcription errors (caught by the pipeline, status -> failed)
# ---------------------------------------------------------------------------


class TranscriptionError(VoiceNotesError):
    """Raised when STT processing fails."""

    def __init__(
        self,
        detail: str = "Transcription failed",
        code: str = "TRANSCRIPTION_ERROR",
        status_code: int = 500,
    ) -> None:
        super().__init__(detail=detail, code=code, status_code=status_code)


class TranscriptionUnavailableError(TranscriptionError):
    """Raised when no speech-to-text capability is available on this device."""

    def __init__(self, detail: str = "Speech recognition is unavailable") -> None:
        super().__init__(detail=detail, code="TRANSCRIPTION_UNAVAILABLE", status_code=503)


class RecognitionFailedError(TranscriptionError):
    """Raised when the recognizer ran but produced no usable text."""

    def __init__(self, detail: str = "No speech could be recognized") -> None:
        super().__init__(detail=detail, code="RECOGNITION_FAILED", status_code=500)


# ---------------------------------------------------------------------------
# Sync errors (logged and dropped, never fatal)
# ---------------------------------------------------------------------------


class DecodeError(VoiceNotesError):
    """Raised when a sync message cannot be decoded."""

    def __init__(self, detail: str = "Malformed sync message") -> None:
        super().__init__(detail=detail, code="DECODE_ERROR", status_code=400)


class PeerUnreachableError(VoiceNotesError):
    """Raised when a sync message could not be delivered to the peer."""

    def __init__(self, detail: str = "Peer device is unreachable") -> None:
        super().__init__(detail=detail, code="PEER_UNREACHABLE", status_code=503)
