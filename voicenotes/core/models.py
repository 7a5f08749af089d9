"""
Pydantic v2 domain and request / response models used across the API layer.

``Memo`` is the unit of record; every store, pipeline and sync message
passes immutable ``Memo`` snapshots and derives new ones with
``model_copy(update=...)``.
"""

from datetime import datetime
from enum import StrEnum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from voicenotes.core.utils import utcnow

TRANSCRIPT_SEPARATOR = "\n\n"

# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str = "ok"
    version: str = "0.1.0"
    role: str = "primary"
    timestamp: datetime


# ---------------------------------------------------------------------------
# Memo
# ---------------------------------------------------------------------------


class TranscriptStatus(StrEnum):
    """Transcription state of a memo."""

    pending = "pending"
    completed = "completed"
    failed = "failed"


class Memo(BaseModel):
    """One recorded-and-transcribed note.

    Instances are frozen: the store, the pipeline and the sync channel each
    hold their own snapshot, so nothing can mutate a memo behind the owner's
    back.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = Field(default_factory=utcnow)
    audio_ref: str
    transcript: str = ""
    transcript_status: TranscriptStatus = TranscriptStatus.pending

    def appended_transcript(self, delta_text: str) -> str:
        """Return the transcript with *delta_text* appended after a blank line."""
        if not self.transcript:
            return delta_text
        return f"{self.transcript}{TRANSCRIPT_SEPARATOR}{delta_text}"


class MemoPatch(BaseModel):
    """PATCH /memos/{id} request body (user edit of the transcript)."""

    transcript: str = Field(max_length=100_000)


# ---------------------------------------------------------------------------
# Recording session
# ---------------------------------------------------------------------------


class SessionState(StrEnum):
    """Possible states of the device's recording session."""

    idle = "idle"
    recording = "recording"
    paused = "paused"
    extending_recording = "extending_recording"


class SessionResponse(BaseModel):
    """Current recording session state."""

    state: SessionState
    extending_memo_id: str | None = None
    captured_seconds: float = 0.0


class StopResponse(BaseModel):
    """POST /session/stop response."""

    audio_ref: str
    is_extension: bool = False
    memo: Memo


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------


class SyncStatusResponse(BaseModel):
    """GET /sync/status response."""

    role: str
    connected: bool
    peer_url: str | None = None


class CatalogRequestResponse(BaseModel):
    """POST /sync/catalog-request response."""

    sent: bool


# ---------------------------------------------------------------------------
# WebSocket
# ---------------------------------------------------------------------------


class WebSocketMessageType(StrEnum):
    """Discriminator for messages sent to UI clients over WebSocket."""

    connected = "connected"
    memo_upserted = "memo_upserted"
    memo_removed = "memo_removed"
    status = "status"
    error = "error"


class WebSocketMessage(BaseModel):
    """JSON message sent from server to client over WebSocket."""

    type: WebSocketMessageType
    data: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Error
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Standard error envelope returned by the API."""

    detail: str
    code: str
    timestamp: str
