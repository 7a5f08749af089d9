"""
Sync REST endpoints.

Lets the UI see whether the peer link is up and trigger a catalog
backfill by hand. The link itself lives on ``/ws/sync``.
"""

from fastapi import APIRouter, Depends

from voicenotes.api.deps import get_device
from voicenotes.core.models import CatalogRequestResponse, SyncStatusResponse
from voicenotes.services.device import NoteDevice

router = APIRouter(prefix="/sync", tags=["sync"])


@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(device: NoteDevice = Depends(get_device)):
    return SyncStatusResponse(
        role=device.role,
        connected=device.channel.connected,
        peer_url=device.settings.peer_url or None,
    )


@router.post("/catalog-request", response_model=CatalogRequestResponse)
async def request_catalog(device: NoteDevice = Depends(get_device)):
    """Ask the peer for its full memo catalog (dropped if unreachable)."""
    sent = await device.channel.request_catalog()
    return CatalogRequestResponse(sent=sent)
