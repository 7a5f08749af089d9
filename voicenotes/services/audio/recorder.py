"""Capture devices and audio sinks.

The client streams raw PCM bytes (16-bit, mono) to the device; the active
``AudioSink`` accumulates them until the recording session stops and the
sink is finalized into a WAV file.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from voicenotes.core.exceptions import DeviceUnavailableError
from voicenotes.services.audio.processor import AudioProcessor


class AudioSink:
    """Accumulates PCM audio bytes for one capture.

    Bytes written while the sink is paused are discarded, which is what a
    paused microphone would have produced.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        sample_width: int = 2,
        channels: int = 1,
    ) -> None:
        self._buffer = bytearray()
        self._paused = False
        self._closed = False
        self._processor = AudioProcessor(sample_rate, sample_width, channels)

    @property
    def buffered_duration(self) -> float:
        """Duration of currently buffered audio in seconds."""
        return self._processor.bytes_to_seconds(len(self._buffer))

    @property
    def paused(self) -> bool:
        return self._paused

    def write(self, data: bytes) -> int:
        """Append raw PCM bytes; returns how many bytes were kept."""
        if self._closed or self._paused:
            return 0
        self._buffer.extend(data)
        return len(data)

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    def finalize(self, file_path: str | Path) -> str:
        """Close the sink and write the captured audio as WAV.

        A trailing partial frame (odd byte from a split chunk) is dropped.
        """
        self._closed = True
        frame_size = self._processor.frame_size
        usable = len(self._buffer) - (len(self._buffer) % frame_size)
        path = self._processor.save_wav(bytes(self._buffer[:usable]), file_path)
        self._buffer.clear()
        return path

    def discard(self) -> None:
        self._closed = True
        self._buffer.clear()


class BaseCaptureDevice(ABC):
    """Interface for anything that can hand out audio sinks."""

    @abstractmethod
    def activate(self) -> AudioSink:
        """Open the device and return a fresh sink.

        Raises:
            DeviceUnavailableError: If the device cannot be activated.
        """

    @abstractmethod
    def deactivate(self) -> None:
        """Release the device after a capture ends."""


class StreamCaptureDevice(BaseCaptureDevice):
    """Capture device fed by PCM pushed from a client (``/ws/record``).

    Args:
        sample_rate: Sample rate of the incoming PCM stream.
        sample_width: Bytes per sample of the incoming PCM stream.
        channels: Channel count of the incoming PCM stream.
        available: Whether the device may be activated at all.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        sample_width: int = 2,
        channels: int = 1,
        available: bool = True,
    ) -> None:
        self.sample_rate = sample_rate
        self.sample_width = sample_width
        self.channels = channels
        self.available = available
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def activate(self) -> AudioSink:
        if not self.available:
            raise DeviceUnavailableError()
        if self._active:
            raise DeviceUnavailableError("Capture device is busy")
        self._active = True
        return AudioSink(self.sample_rate, self.sample_width, self.channels)

    def deactivate(self) -> None:
        self._active = False
