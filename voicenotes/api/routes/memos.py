"""
Memo REST endpoints.

Listing, lookup, user transcript edits, deletion, audio download for
playback, and the explicit retry of a failed transcription. All endpoints
delegate to the device's store and pipeline; no business logic here.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from voicenotes.api.deps import get_device
from voicenotes.core.exceptions import MemoNotFoundError
from voicenotes.core.models import Memo, MemoPatch
from voicenotes.services.device import NoteDevice

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/memos", tags=["memos"])


@router.get("", response_model=list[Memo])
async def list_memos(device: NoteDevice = Depends(get_device)):
    """List all memos, most recently modified first."""
    return device.store.list_recent()


@router.get("/{memo_id}", response_model=Memo)
async def get_memo(memo_id: str, device: NoteDevice = Depends(get_device)):
    """Return a single memo."""
    return device.store.require(memo_id)


@router.patch("/{memo_id}", response_model=Memo)
async def update_memo(memo_id: str, body: MemoPatch, device: NoteDevice = Depends(get_device)):
    """Replace the transcript with a user edit and push it to the peer."""
    return await device.pipeline.update_transcript(memo_id, body.transcript)


@router.delete("/{memo_id}", response_model=Memo)
async def delete_memo(memo_id: str, device: NoteDevice = Depends(get_device)):
    """Delete a memo together with its audio file."""
    return device.pipeline.delete_memo(memo_id)


@router.post("/{memo_id}/retry", response_model=Memo)
async def retry_transcription(memo_id: str, device: NoteDevice = Depends(get_device)):
    """Re-run transcription for a memo whose last attempt failed."""
    return await device.pipeline.retry_transcription(memo_id)


@router.get("/{memo_id}/audio")
async def download_audio(memo_id: str, device: NoteDevice = Depends(get_device)):
    """Stream the memo's WAV file for playback."""
    memo = device.store.require(memo_id)
    if not device.library.exists(memo.audio_ref):
        logger.warning("Audio ref=%s missing for memo=%s", memo.audio_ref, memo_id)
        raise MemoNotFoundError(memo_id)
    return FileResponse(
        device.library.path(memo.audio_ref),
        media_type="audio/wav",
        filename=memo.audio_ref,
    )
