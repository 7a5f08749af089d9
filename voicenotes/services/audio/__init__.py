"""
Audio module - Capture, segment editing and audio reference utilities.
"""

from .editor import AudioSegmentEditor
from .library import AudioLibrary
from .processor import AudioProcessor
from .recorder import AudioSink, BaseCaptureDevice, StreamCaptureDevice
from .session import CaptureResult, RecordingSession

__all__ = [
    "AudioLibrary",
    "AudioProcessor",
    "AudioSegmentEditor",
    "AudioSink",
    "BaseCaptureDevice",
    "CaptureResult",
    "RecordingSession",
    "StreamCaptureDevice",
]
