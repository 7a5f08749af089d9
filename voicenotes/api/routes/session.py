"""
Recording session REST endpoints.

Commands for the device's single recording session. Audio itself is
streamed over ``/ws/record``; these routes only drive the state machine.
Usage errors (``AlreadyRecording``, ``InvalidState``, ``DeviceUnavailable``)
surface as 409/503 through the error handler.
"""

import logging

from fastapi import APIRouter, Depends

from voicenotes.api.deps import get_device
from voicenotes.core.models import SessionResponse, StopResponse
from voicenotes.services.device import NoteDevice

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/session", tags=["session"])


@router.get("", response_model=SessionResponse)
async def get_session_state(device: NoteDevice = Depends(get_device)):
    return device.session.snapshot()


@router.post("/start", response_model=SessionResponse)
async def start_recording(device: NoteDevice = Depends(get_device)):
    """Begin a fresh recording."""
    device.session.start()
    return device.session.snapshot()


@router.post("/extend/{memo_id}", response_model=SessionResponse)
async def start_extension(memo_id: str, device: NoteDevice = Depends(get_device)):
    """Begin recording audio to append to an existing memo."""
    device.store.require(memo_id)
    device.session.start_extend(memo_id)
    return device.session.snapshot()


@router.post("/pause", response_model=SessionResponse)
async def pause_recording(device: NoteDevice = Depends(get_device)):
    device.session.pause()
    return device.session.snapshot()


@router.post("/resume", response_model=SessionResponse)
async def resume_recording(device: NoteDevice = Depends(get_device)):
    device.session.resume()
    return device.session.snapshot()


@router.post("/stop", response_model=StopResponse)
async def stop_recording(device: NoteDevice = Depends(get_device)):
    """Stop capturing; transcription continues in the background.

    For a fresh recording the response carries the new pending memo, for an
    extension the memo as it stands while the extension is processed.
    """
    capture, memo = await device.stop_recording()
    return StopResponse(audio_ref=capture.audio_ref, is_extension=capture.is_extension, memo=memo)
