"""Memo pipeline: everything that happens after a capture stops.

Fresh capture::

    stop -> new memo (pending) -> store -> push -> transcribe -> store -> push

Extension of memo ``m``::

    stop -> merge(m.audio, new) -> trim(merged, duration(m.audio))
         -> transcribe(delta) -> append to m.transcript -> store -> push

Each run is an independent ``asyncio.Task``. Heavy steps (merge, trim,
transcribe) run in worker threads; the store is only mutated back on the
event loop. Runs for the same memo are serialized by a per-memo lock,
runs for different memos proceed concurrently. A failed extension never
touches the memo's audio or transcript: only its status becomes
``failed`` and the intermediate files are deleted.

Usage::

    pipeline = MemoPipeline(store, library, editor, stt, channel)
    memo = await pipeline.handle_capture(session.stop())
    await pipeline.drain()
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager

from voicenotes.core.exceptions import (
    InvalidStateError,
    MemoNotFoundError,
    RecognitionFailedError,
    VoiceNotesError,
)
from voicenotes.core.models import Memo, TranscriptStatus
from voicenotes.core.utils import next_timestamp
from voicenotes.services.audio.editor import AudioSegmentEditor
from voicenotes.services.audio.library import AudioLibrary
from voicenotes.services.audio.session import CaptureResult
from voicenotes.services.storage.memo_store import MemoStore
from voicenotes.services.sync.channel import SyncChannel
from voicenotes.services.transcription.base import BaseSTT

logger = logging.getLogger(__name__)


class MemoPipeline:
    """Turns finished captures into stored, transcribed and synced memos.

    Args:
        store: The device's memo store.
        library: Resolves and releases audio references.
        editor: Merges and trims segments for extensions.
        stt: Speech-to-text provider.
        channel: Sync channel used to push finished memos (optional).
        language: Language hint passed to the STT provider.
    """

    def __init__(
        self,
        store: MemoStore,
        library: AudioLibrary,
        editor: AudioSegmentEditor,
        stt: BaseSTT,
        channel: SyncChannel | None = None,
        language: str | None = None,
    ) -> None:
        self._store = store
        self._library = library
        self._editor = editor
        self._stt = stt
        self._channel = channel
        self._language = language
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending_runs(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def handle_capture(self, capture: CaptureResult) -> Memo:
        """Route a finished capture to the fresh or extension flow."""
        if capture.is_extension:
            return await self.begin_extension(capture.extends_memo_id, capture.audio_ref)
        return await self.begin_fresh(capture.audio_ref)

    async def begin_fresh(self, audio_ref: str) -> Memo:
        """Create a pending memo for *audio_ref*, publish it and start transcription."""
        memo = Memo(audio_ref=audio_ref)
        self._store.insert_or_replace(memo)
        logger.info("Created memo=%s ref=%s", memo.id, audio_ref)
        await self._push(memo)
        self._spawn(self._run_transcription(memo.id), f"transcribe-{memo.id}")
        return memo

    async def begin_extension(self, memo_id: str, addition_ref: str) -> Memo:
        """Start extending *memo_id* with the captured *addition_ref*.

        Raises:
            MemoNotFoundError: If the memo was deleted while recording; the
                captured audio is released.
        """
        memo = self._store.get(memo_id)
        if memo is None:
            self._library.release(addition_ref)
            raise MemoNotFoundError(memo_id)

        pending = memo.model_copy(update={"transcript_status": TranscriptStatus.pending})
        self._store.insert_or_replace(pending)
        self._spawn(self._run_extension(memo_id, addition_ref), f"extend-{memo_id}")
        return pending

    async def retry_transcription(self, memo_id: str) -> Memo:
        """Re-transcribe a memo's whole audio after a failure (explicit user action).

        Raises:
            MemoNotFoundError: If the memo does not exist.
            InvalidStateError: If the memo is not in the ``failed`` state.
        """
        memo = self._store.require(memo_id)
        if memo.transcript_status is not TranscriptStatus.failed:
            raise InvalidStateError("retry transcription", memo.transcript_status.value)
        pending = memo.model_copy(update={"transcript_status": TranscriptStatus.pending})
        self._store.insert_or_replace(pending)
        self._spawn(self._run_transcription(memo_id), f"retry-{memo_id}")
        return pending

    async def update_transcript(self, memo_id: str, transcript: str) -> Memo:
        """Apply a user edit of the transcript and push it to the peer."""
        memo = self._store.require(memo_id)
        updated = memo.model_copy(
            update={"transcript": transcript, "timestamp": next_timestamp(memo.timestamp)}
        )
        self._store.insert_or_replace(updated)
        await self._push(updated)
        return updated

    def delete_memo(self, memo_id: str) -> Memo:
        """Remove a memo and its audio. Deletions are local only."""
        memo = self._store.remove(memo_id)
        if memo is None:
            raise MemoNotFoundError(memo_id)
        return memo

    async def drain(self) -> None:
        """Wait until every in-flight run has finished (used on shutdown)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    async def _run_transcription(self, memo_id: str) -> None:
        async with self._lock_for(memo_id):
            memo = self._store.get(memo_id)
            if memo is None:
                return
            try:
                text = await self._transcribe(memo.audio_ref)
            except VoiceNotesError as exc:
                logger.warning("Transcription failed memo=%s code=%s: %s", memo_id, exc.code, exc.detail)
                await self._mark_failed(memo_id, memo.audio_ref)
                return
            except Exception:
                logger.exception("Transcription crashed memo=%s", memo_id)
                await self._mark_failed(memo_id, memo.audio_ref)
                return

            current = self._store.get(memo_id)
            if current is None or current.audio_ref != memo.audio_ref:
                logger.info("Memo=%s changed during transcription; result dropped", memo_id)
                return
            updated = current.model_copy(
                update={
                    "transcript": text,
                    "transcript_status": TranscriptStatus.completed,
                    "timestamp": next_timestamp(current.timestamp),
                }
            )
            self._store.insert_or_replace(updated)
            logger.info("Transcribed memo=%s chars=%d", memo_id, len(text))
            await self._push(updated)

    async def _run_extension(self, memo_id: str, addition_ref: str) -> None:
        async with self._lock_for(memo_id):
            memo = self._store.get(memo_id)
            if memo is None:
                self._library.release(addition_ref)
                return
            if memo.transcript_status is not TranscriptStatus.pending:
                # An earlier run on this memo finished while we waited.
                memo = memo.model_copy(update={"transcript_status": TranscriptStatus.pending})
                self._store.insert_or_replace(memo)

            base_ref = memo.audio_ref
            merged_ref: str | None = None
            delta_ref: str | None = None
            try:
                merged_ref = await asyncio.to_thread(self._editor.merge, base_ref, addition_ref)
                delta_start = await asyncio.to_thread(self._editor.duration, base_ref)
                delta_ref = await asyncio.to_thread(self._editor.trim, merged_ref, delta_start)
                delta_text = await self._transcribe(delta_ref)
            except VoiceNotesError as exc:
                logger.warning("Extension failed memo=%s code=%s: %s", memo_id, exc.code, exc.detail)
                self._discard(merged_ref)
                await self._mark_failed(memo_id, base_ref)
                return
            except Exception:
                logger.exception("Extension crashed memo=%s", memo_id)
                self._discard(merged_ref)
                await self._mark_failed(memo_id, base_ref)
                return
            finally:
                self._discard(addition_ref, delta_ref)

            current = self._store.get(memo_id)
            if current is None or current.audio_ref != base_ref:
                logger.info("Memo=%s changed during extension; merged audio dropped", memo_id)
                self._discard(merged_ref)
                return

            updated = current.model_copy(
                update={
                    "audio_ref": merged_ref,
                    "transcript": current.appended_transcript(delta_text),
                    "transcript_status": TranscriptStatus.completed,
                    "timestamp": next_timestamp(current.timestamp),
                }
            )
            self._store.insert_or_replace(updated)
            self._discard(base_ref)
            logger.info("Extended memo=%s ref=%s delta_chars=%d", memo_id, merged_ref, len(delta_text))
            await self._push(updated)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _transcribe(self, audio_ref: str) -> str:
        result = await self._stt.transcribe(
            str(self._library.path(audio_ref)), language=self._language
        )
        text = (result.get("text") or "").strip()
        if not text:
            raise RecognitionFailedError(f"Empty transcription for {audio_ref}")
        return text

    async def _mark_failed(self, memo_id: str, audio_ref: str) -> None:
        """Set status ``failed`` without touching audio or transcript.

        Skipped when the memo no longer holds *audio_ref*: a newer version
        from the peer replaced the one this run started from.
        """
        current = self._store.get(memo_id)
        if current is None or current.audio_ref != audio_ref:
            logger.info("Memo=%s changed during run; failure not recorded", memo_id)
            return
        failed = current.model_copy(
            update={
                "transcript_status": TranscriptStatus.failed,
                "timestamp": next_timestamp(current.timestamp),
            }
        )
        self._store.insert_or_replace(failed)
        await self._push(failed)

    async def _push(self, memo: Memo) -> None:
        if self._channel is not None:
            await self._channel.push_memo(memo)

    def _discard(self, *audio_refs: str | None) -> None:
        for ref in audio_refs:
            if ref is not None:
                self._library.release(ref)

    @asynccontextmanager
    async def _lock_for(self, memo_id: str) -> AsyncIterator[None]:
        """Hold the memo's lock; the entry is dropped once nobody holds or awaits it."""
        lock = self._locks.get(memo_id)
        if lock is None:
            lock = self._locks[memo_id] = asyncio.Lock()
        self._waiters[memo_id] = self._waiters.get(memo_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._waiters[memo_id] - 1
            if remaining:
                self._waiters[memo_id] = remaining
            else:
                del self._waiters[memo_id]
                if self._locks.get(memo_id) is lock:
                    del self._locks[memo_id]

    def _spawn(self, coro: Coroutine, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
