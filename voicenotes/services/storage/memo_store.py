"""
In-memory authoritative memo collection for one device instance.

``MemoStore`` is only touched from the device's event loop. Memos are
frozen pydantic models, so handing them out never exposes mutable state;
every change goes through :meth:`MemoStore.insert_or_replace`.

Changes are published as :class:`StoreEvent` objects to subscriber
queues, which is how the UI boundary (``/ws/events``) learns about
completed transcriptions and incoming sync updates.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from voicenotes.core.exceptions import MemoNotFoundError
from voicenotes.core.models import Memo, WebSocketMessageType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreEvent:
    """One change to the store."""

    kind: WebSocketMessageType
    memo: Memo


class MemoStore:
    """Memo records keyed by id.

    Args:
        release_audio: Called with a memo's ``audio_ref`` when the memo is
            removed, so the underlying audio content is deleted as well.
    """

    def __init__(self, release_audio: Callable[[str], object] | None = None) -> None:
        self._memos: dict[str, Memo] = {}
        self._release_audio = release_audio
        self._subscribers: set[asyncio.Queue[StoreEvent]] = set()

    def __len__(self) -> int:
        return len(self._memos)

    def __contains__(self, memo_id: str) -> bool:
        return memo_id in self._memos

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, memo_id: str) -> Memo | None:
        return self._memos.get(memo_id)

    def require(self, memo_id: str) -> Memo:
        """Return a memo by ID or raise :class:`MemoNotFoundError`."""
        memo = self._memos.get(memo_id)
        if memo is None:
            raise MemoNotFoundError(memo_id)
        return memo

    def list(self) -> list[Memo]:
        """All memos, in no particular order."""
        return list(self._memos.values())

    def list_recent(self) -> list[Memo]:
        """All memos, most recently modified first (display order)."""
        return sorted(self._memos.values(), key=lambda m: m.timestamp, reverse=True)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_or_replace(self, memo: Memo) -> bool:
        """Store *memo* under its id, replacing any previous version.

        Applying an identical memo again is a no-op.

        Returns:
            True if the store changed.
        """
        if self._memos.get(memo.id) == memo:
            return False
        self._memos[memo.id] = memo
        self._publish(StoreEvent(WebSocketMessageType.memo_upserted, memo))
        return True

    def remove(self, memo_id: str) -> Memo | None:
        """Delete a memo and release its audio; returns the removed memo."""
        memo = self._memos.pop(memo_id, None)
        if memo is None:
            return None
        if self._release_audio is not None:
            try:
                self._release_audio(memo.audio_ref)
            except OSError:
                logger.warning("Failed to release audio ref=%s for memo=%s", memo.audio_ref, memo_id)
        self._publish(StoreEvent(WebSocketMessageType.memo_removed, memo))
        logger.info("Removed memo=%s", memo_id)
        return memo

    # ------------------------------------------------------------------
    # Change events
    # ------------------------------------------------------------------

    def subscribe(self) -> asyncio.Queue[StoreEvent]:
        """Register a queue that receives every subsequent change."""
        queue: asyncio.Queue[StoreEvent] = asyncio.Queue()
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[StoreEvent]) -> None:
        self._subscribers.discard(queue)

    def _publish(self, event: StoreEvent) -> None:
        for queue in self._subscribers:
            queue.put_nowait(event)
