"""Best-effort, message-oriented sync channel between two devices.

The channel owns the (single) peer link. Pushes made while no link is
attached, or whose send fails, are dropped: there is no queue and no
retry. Convergence comes from the next successful push or the next
``CatalogRequest`` on link (re)establishment.

Incoming messages are decoded and applied here. A message that fails to
decode or apply is logged and dropped; the link stays open.
"""

import asyncio
import logging

from voicenotes.core.exceptions import DecodeError, PeerUnreachableError
from voicenotes.core.models import Memo
from voicenotes.services.audio.library import AudioLibrary
from voicenotes.services.storage.memo_store import MemoStore
from voicenotes.services.sync.links import PeerLink
from voicenotes.services.sync.messages import (
    CatalogRequest,
    CatalogResponse,
    MemoSnapshot,
    MemoUpdate,
    decode_message,
    encode_message,
)
from voicenotes.services.sync.reconciler import Reconciler

logger = logging.getLogger(__name__)


class SyncChannel:
    """Pushes local memos to the peer and applies the peer's messages.

    Args:
        store: The device's memo store (source for catalog responses).
        reconciler: Applies incoming snapshots to ``store``.
        library: Used to embed audio bytes in outgoing snapshots.
        device_name: Sent as ``sender`` and used in log lines.
        include_audio: Embed WAV bytes in memo snapshots.
        send_timeout: Seconds before a send counts as undeliverable.
        request_catalog_on_connect: Ask for a full snapshot whenever a link
            is attached (companion behavior).
    """

    def __init__(
        self,
        store: MemoStore,
        reconciler: Reconciler,
        library: AudioLibrary | None = None,
        *,
        device_name: str = "voicenotes",
        include_audio: bool = True,
        send_timeout: float = 5.0,
        request_catalog_on_connect: bool = False,
    ) -> None:
        self._store = store
        self._reconciler = reconciler
        self._library = library
        self._device_name = device_name
        self._include_audio = include_audio
        self._send_timeout = send_timeout
        self._request_catalog_on_connect = request_catalog_on_connect
        self._link: PeerLink | None = None

    @property
    def connected(self) -> bool:
        return self._link is not None

    @property
    def link(self) -> PeerLink | None:
        return self._link

    # ------------------------------------------------------------------
    # Link lifecycle
    # ------------------------------------------------------------------

    async def attach(self, link: PeerLink) -> None:
        """Make *link* the current peer connection (replacing any previous one)."""
        self._link = link
        logger.info("Peer link up device=%s link=%s", self._device_name, link.name)
        if self._request_catalog_on_connect:
            await self.request_catalog()

    def detach(self, link: PeerLink) -> None:
        """Forget *link* if it is still the current connection."""
        if self._link is link:
            self._link = None
            logger.info("Peer link down device=%s link=%s", self._device_name, link.name)

    # ------------------------------------------------------------------
    # Outgoing
    # ------------------------------------------------------------------

    async def push_memo(self, memo: Memo) -> bool:
        """Send a ``MemoUpdate`` for *memo*; returns False if it was dropped."""
        if self._link is None:
            logger.info("Peer unreachable, dropping update for memo=%s", memo.id)
            return False
        snapshot = await self._snapshot(memo)
        return await self._send(MemoUpdate(sender=self._device_name, memo=snapshot))

    async def request_catalog(self) -> bool:
        """Ask the peer for a full snapshot; the response is applied when it arrives."""
        return await self._send(CatalogRequest(sender=self._device_name))

    async def _snapshot(self, memo: Memo) -> MemoSnapshot:
        audio = None
        if self._include_audio and self._library is not None:
            try:
                audio = await asyncio.to_thread(self._library.read_bytes, memo.audio_ref)
            except (OSError, ValueError):
                logger.warning("Audio ref=%s unreadable, sending memo=%s without it", memo.audio_ref, memo.id)
        return MemoSnapshot.from_memo(memo, audio=audio)

    async def _send(self, message, link: PeerLink | None = None) -> bool:
        target = link or self._link
        if target is None:
            logger.info("Peer unreachable, dropping %s", message.type)
            return False
        try:
            await asyncio.wait_for(target.send_text(encode_message(message)), self._send_timeout)
        except (PeerUnreachableError, TimeoutError, OSError) as exc:
            logger.warning("Dropping %s to %s: %s", message.type, target.name, exc)
            self.detach(target)
            return False
        logger.debug("Sent %s to %s", message.type, target.name)
        return True

    # ------------------------------------------------------------------
    # Incoming
    # ------------------------------------------------------------------

    async def handle_raw(self, raw: str | bytes, link: PeerLink | None = None):
        """Decode and apply one message received on *link*.

        Returns the decoded message, or None if it was malformed or could
        not be applied.
        """
        try:
            message = decode_message(raw)
        except DecodeError as exc:
            logger.warning("Dropping undecodable sync message: %s", exc.detail)
            return None

        if isinstance(message, (MemoUpdate, CatalogResponse)):
            try:
                self._apply(message)
            except Exception:
                logger.exception("Dropping %s that could not be applied", message.type)
                return None
        elif isinstance(message, CatalogRequest):
            await self._answer_catalog_request(link)
        return message

    def _apply(self, message: MemoUpdate | CatalogResponse) -> None:
        if isinstance(message, MemoUpdate):
            self._reconciler.apply(message.memo)
            return
        changed = self._reconciler.apply_many(message.memos)
        logger.info(
            "Catalog from %s: %d memos, %d applied",
            message.sender or "peer",
            len(message.memos),
            changed,
        )

    async def _answer_catalog_request(self, link: PeerLink | None) -> None:
        snapshots = [await self._snapshot(memo) for memo in self._store.list()]
        response = CatalogResponse(sender=self._device_name, memos=snapshots)
        await self._send(response, link=link)
