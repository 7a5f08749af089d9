"""Composition of one device instance (primary or companion).

The role only changes configuration: the companion dials the primary and
asks for a catalog on every connection, the primary waits on ``/ws/sync``.
Everything else is the same object graph on both ends.
"""

import logging

from voicenotes.core.config import Settings, get_settings
from voicenotes.core.models import Memo
from voicenotes.services.audio import (
    AudioLibrary,
    AudioSegmentEditor,
    BaseCaptureDevice,
    CaptureResult,
    RecordingSession,
    StreamCaptureDevice,
)
from voicenotes.services.orchestrator import MemoPipeline
from voicenotes.services.storage import MemoStore
from voicenotes.services.sync import PeerConnector, Reconciler, SyncChannel
from voicenotes.services.transcription import BaseSTT, create_stt

logger = logging.getLogger(__name__)


class NoteDevice:
    """Store, session, pipeline and sync channel of one device.

    Args:
        settings: Device settings (defaults to ``get_settings()``).
        stt: STT provider override (defaults to ``settings.whisper_provider``).
        capture_device: Capture device override.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        stt: BaseSTT | None = None,
        capture_device: BaseCaptureDevice | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        s = self.settings

        self.library = AudioLibrary(s.recordings_dir)
        self.store = MemoStore(release_audio=self.library.release)
        self.editor = AudioSegmentEditor(self.library)
        self.capture_device = capture_device or StreamCaptureDevice(
            sample_rate=s.sample_rate,
            sample_width=s.sample_width,
            channels=s.channels,
        )
        self.session = RecordingSession(self.capture_device, self.library)

        self.reconciler = Reconciler(self.store, self.library)
        self.channel = SyncChannel(
            self.store,
            self.reconciler,
            self.library,
            device_name=s.device_name,
            include_audio=s.sync_include_audio,
            send_timeout=s.sync_send_timeout,
            request_catalog_on_connect=s.should_request_catalog,
        )
        self.pipeline = MemoPipeline(
            self.store,
            self.library,
            self.editor,
            stt or create_stt(provider=s.whisper_provider),
            channel=self.channel,
            language=s.whisper_default_language or None,
        )

        self.connector: PeerConnector | None = None
        if s.is_companion and s.peer_url:
            self.connector = PeerConnector(
                self.channel,
                s.peer_url,
                reconnect_min=s.sync_reconnect_min,
                reconnect_max=s.sync_reconnect_max,
            )

    @property
    def role(self) -> str:
        return "companion" if self.settings.is_companion else "primary"

    async def stop_recording(self) -> tuple[CaptureResult, Memo]:
        """Stop the active capture and hand it to the pipeline."""
        capture = self.session.stop()
        memo = await self.pipeline.handle_capture(capture)
        return capture, memo

    async def start(self) -> None:
        """Bring up background work (the companion's peer connector)."""
        logger.info("Device %s starting as %s", self.settings.device_name, self.role)
        if self.connector is not None:
            self.connector.start()

    async def shutdown(self) -> None:
        """Stop dialing the peer and let in-flight pipeline runs finish."""
        if self.connector is not None:
            await self.connector.stop()
        await self.pipeline.drain()
        logger.info("Device %s stopped", self.settings.device_name)
