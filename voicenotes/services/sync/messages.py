"""
Wire format for the device-to-device sync channel.

Every message is a JSON object discriminated by ``type``:

* ``memo_update``      - one complete memo snapshot
* ``catalog_request``  - ask the peer for every memo it holds
* ``catalog_response`` - complete snapshots of the peer's memos

Snapshots may carry the memo's WAV bytes (base64) so the receiver can
materialize the audio under the same reference.
"""

from datetime import UTC, datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from voicenotes.core.exceptions import DecodeError
from voicenotes.core.models import Memo, TranscriptStatus


class MemoSnapshot(BaseModel):
    """A transferable copy of a memo.

    ``audio`` holds raw WAV bytes in Python and travels as base64 in JSON.
    """

    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")

    id: str
    timestamp: datetime
    audio_ref: str
    transcript: str = ""
    transcript_status: TranscriptStatus
    audio: bytes | None = None

    @field_validator("timestamp")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        # Versions are compared against local aware timestamps.
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @classmethod
    def from_memo(cls, memo: Memo, audio: bytes | None = None) -> "MemoSnapshot":
        return cls(**memo.model_dump(), audio=audio)

    def to_memo(self) -> Memo:
        return Memo(**self.model_dump(exclude={"audio"}))


class _Envelope(BaseModel):
    sender: str = ""


class MemoUpdate(_Envelope):
    type: Literal["memo_update"] = "memo_update"
    memo: MemoSnapshot


class CatalogRequest(_Envelope):
    type: Literal["catalog_request"] = "catalog_request"


class CatalogResponse(_Envelope):
    type: Literal["catalog_response"] = "catalog_response"
    memos: list[MemoSnapshot] = Field(default_factory=list)


SyncMessage = Annotated[
    MemoUpdate | CatalogRequest | CatalogResponse,
    Field(discriminator="type"),
]

_message_adapter: TypeAdapter[SyncMessage] = TypeAdapter(SyncMessage)


def encode_message(message: MemoUpdate | CatalogRequest | CatalogResponse) -> str:
    """Serialize a sync message to its JSON text form."""
    return message.model_dump_json()


def decode_message(raw: str | bytes) -> MemoUpdate | CatalogRequest | CatalogResponse:
    """Parse a sync message.

    Raises:
        DecodeError: If *raw* is not valid JSON or not a known message.
    """
    try:
        return _message_adapter.validate_json(raw)
    except ValidationError as exc:
        raise DecodeError(f"Malformed sync message: {exc.error_count()} error(s)") from exc
