"""Recording session state machine.

States::

    idle --start()--------------> recording --pause()--> paused
    idle --start_extend(memo)---> extending_recording --pause()--> paused
    paused --resume()--> (the capturing state it was paused from)
    recording | extending_recording | paused --stop()--> idle

One session exists per device instance, so at most one capture is active
at a time. Usage errors are raised to the caller; nothing is retried.
"""

import logging
from dataclasses import dataclass

from voicenotes.core.exceptions import AlreadyRecordingError, InvalidStateError
from voicenotes.core.models import SessionResponse, SessionState
from voicenotes.services.audio.library import AudioLibrary
from voicenotes.services.audio.recorder import AudioSink, BaseCaptureDevice

logger = logging.getLogger(__name__)

_CAPTURING = (SessionState.recording, SessionState.extending_recording)


@dataclass(frozen=True)
class CaptureResult:
    """A finished capture handed to the extension pipeline."""

    audio_ref: str
    extends_memo_id: str | None = None
    duration: float = 0.0

    @property
    def is_extension(self) -> bool:
        return self.extends_memo_id is not None


class RecordingSession:
    """Governs start/pause/resume/stop/extend of a single capture.

    Args:
        device: Capture device that provides a fresh sink per capture.
        library: Allocates the reference the finished capture is written to.
    """

    def __init__(self, device: BaseCaptureDevice, library: AudioLibrary) -> None:
        self._device = device
        self._library = library
        self._state = SessionState.idle
        self._sink: AudioSink | None = None
        self._extends_memo_id: str | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def extending_memo_id(self) -> str | None:
        return self._extends_memo_id

    @property
    def is_active(self) -> bool:
        return self._state is not SessionState.idle

    def snapshot(self) -> SessionResponse:
        return SessionResponse(
            state=self._state,
            extending_memo_id=self._extends_memo_id,
            captured_seconds=self._sink.buffered_duration if self._sink else 0.0,
        )

    def _begin(self, target: SessionState, extends_memo_id: str | None) -> None:
        if self.is_active:
            raise AlreadyRecordingError()
        # DeviceUnavailableError propagates untouched; state stays idle.
        self._sink = self._device.activate()
        self._extends_memo_id = extends_memo_id
        self._state = target

    def start(self) -> None:
        """Begin a fresh capture (``idle -> recording``)."""
        self._begin(SessionState.recording, None)
        logger.info("Recording started")

    def start_extend(self, memo_id: str) -> None:
        """Begin capturing audio to append to *memo_id* (``idle -> extending_recording``)."""
        self._begin(SessionState.extending_recording, memo_id)
        logger.info("Extension recording started memo=%s", memo_id)

    def pause(self) -> None:
        if self._state not in _CAPTURING:
            raise InvalidStateError("pause", self._state.value)
        self._sink.pause()
        self._state = SessionState.paused

    def resume(self) -> None:
        if self._state is not SessionState.paused:
            raise InvalidStateError("resume", self._state.value)
        self._sink.resume()
        self._state = (
            SessionState.extending_recording
            if self._extends_memo_id is not None
            else SessionState.recording
        )

    def feed(self, pcm_data: bytes) -> int:
        """Push captured PCM bytes into the active sink.

        Returns the number of bytes kept (zero while paused).

        Raises:
            InvalidStateError: If no capture is active.
        """
        if not self.is_active:
            raise InvalidStateError("receive audio", self._state.value)
        return self._sink.write(pcm_data)

    def stop(self) -> CaptureResult:
        """Finalize the capture and return its segment (``-> idle``).

        Raises:
            InvalidStateError: If no capture is active.
        """
        if not self.is_active:
            raise InvalidStateError("stop", self._state.value)

        sink = self._sink
        extends = self._extends_memo_id
        audio_ref = self._library.allocate("memo" if extends is None else "extension")
        try:
            duration = sink.buffered_duration
            sink.finalize(self._library.path(audio_ref))
        finally:
            self._device.deactivate()
            self._sink = None
            self._extends_memo_id = None
            self._state = SessionState.idle

        logger.info(
            "Recording stopped ref=%s duration=%.2fs extends=%s", audio_ref, duration, extends
        )
        return CaptureResult(audio_ref=audio_ref, extends_memo_id=extends, duration=duration)
