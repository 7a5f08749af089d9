"""Last-writer-wins application of memo snapshots received from the peer.

An incoming snapshot is inserted when the id is unknown locally and
replaces the local memo only when its timestamp is strictly newer.
Everything else is discarded silently, which makes re-delivery and
out-of-order delivery harmless. There is no field-level merge.
"""

import logging
from collections.abc import Iterable

from voicenotes.services.audio.library import AudioLibrary
from voicenotes.services.storage.memo_store import MemoStore
from voicenotes.services.sync.messages import MemoSnapshot

logger = logging.getLogger(__name__)


class Reconciler:
    """Merges peer memos into the local store.

    Args:
        store: The device's memo store.
        library: Where embedded audio bytes are materialized; when omitted,
            snapshots are applied without touching audio files.
    """

    def __init__(self, store: MemoStore, library: AudioLibrary | None = None) -> None:
        self._store = store
        self._library = library

    def apply(self, snapshot: MemoSnapshot) -> bool:
        """Apply one snapshot; returns True if the local store changed."""
        incoming = snapshot.to_memo()
        local = self._store.get(incoming.id)

        if local is not None and incoming.timestamp <= local.timestamp:
            logger.debug(
                "Discarding stale memo=%s incoming=%s local=%s",
                incoming.id,
                incoming.timestamp.isoformat(),
                local.timestamp.isoformat(),
            )
            return False

        if self._library is not None and snapshot.audio is not None:
            try:
                self._library.write_bytes(incoming.audio_ref, snapshot.audio)
            except (OSError, ValueError):
                logger.warning(
                    "Could not materialize audio ref=%s for memo=%s",
                    incoming.audio_ref,
                    incoming.id,
                )

        changed = self._store.insert_or_replace(incoming)
        if (
            local is not None
            and self._library is not None
            and local.audio_ref != incoming.audio_ref
        ):
            self._library.release(local.audio_ref)

        logger.info(
            "Applied memo=%s status=%s (%s)",
            incoming.id,
            incoming.transcript_status,
            "replaced" if local is not None else "inserted",
        )
        return changed

    def apply_many(self, snapshots: Iterable[MemoSnapshot]) -> int:
        """Apply every snapshot of a catalog; returns how many changed the store."""
        return sum(1 for snapshot in snapshots if self.apply(snapshot))
