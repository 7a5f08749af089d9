"""Tests for the RecordingSession state machine and capture sinks."""

import pytest

from voicenotes.core.exceptions import (
    AlreadyRecordingError,
    DeviceUnavailableError,
    InvalidStateError,
)
from voicenotes.core.models import SessionState
from voicenotes.services.audio import (
    AudioProcessor,
    AudioSink,
    RecordingSession,
    StreamCaptureDevice,
)


@pytest.fixture
def capture_device():
    return StreamCaptureDevice()


@pytest.fixture
def session(capture_device, library):
    return RecordingSession(capture_device, library)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


class TestTransitions:
    def test_starts_idle(self, session):
        assert session.state is SessionState.idle
        assert session.is_active is False

    def test_start_and_stop(self, session, library, sample_pcm_bytes):
        session.start()
        assert session.state is SessionState.recording
        session.feed(sample_pcm_bytes)

        result = session.stop()

        assert session.state is SessionState.idle
        assert result.is_extension is False
        assert result.audio_ref.startswith("memo_")
        assert result.duration == pytest.approx(1.0)
        pcm, _ = AudioProcessor.load_wav(library.path(result.audio_ref))
        assert pcm == sample_pcm_bytes

    def test_extend_records_target(self, session):
        session.start_extend("memo-1")
        assert session.state is SessionState.extending_recording
        assert session.extending_memo_id == "memo-1"

        result = session.stop()

        assert result.is_extension is True
        assert result.extends_memo_id == "memo-1"
        assert result.audio_ref.startswith("extension_")
        assert session.extending_memo_id is None

    def test_pause_resume_returns_to_recording(self, session):
        session.start()
        session.pause()
        assert session.state is SessionState.paused
        session.resume()
        assert session.state is SessionState.recording

    def test_pause_resume_returns_to_extending(self, session):
        session.start_extend("memo-1")
        session.pause()
        session.resume()
        assert session.state is SessionState.extending_recording

    def test_stop_while_paused(self, session):
        session.start()
        session.pause()
        session.stop()
        assert session.state is SessionState.idle

    def test_empty_capture_yields_valid_segment(self, session, library):
        session.start()
        result = session.stop()
        assert result.duration == 0.0
        assert library.exists(result.audio_ref)


# ---------------------------------------------------------------------------
# Usage errors
# ---------------------------------------------------------------------------


class TestUsageErrors:
    @pytest.mark.parametrize("second", ["start", "start_extend"])
    def test_already_recording(self, session, second):
        session.start()
        with pytest.raises(AlreadyRecordingError):
            if second == "start":
                session.start()
            else:
                session.start_extend("memo-1")
        assert session.state is SessionState.recording

    def test_already_recording_while_paused(self, session):
        session.start_extend("memo-1")
        session.pause()
        with pytest.raises(AlreadyRecordingError):
            session.start()

    def test_pause_when_idle(self, session):
        with pytest.raises(InvalidStateError, match="Cannot pause while idle"):
            session.pause()

    def test_resume_when_recording(self, session):
        session.start()
        with pytest.raises(InvalidStateError):
            session.resume()

    def test_stop_when_idle(self, session):
        with pytest.raises(InvalidStateError):
            session.stop()

    def test_feed_when_idle(self, session):
        with pytest.raises(InvalidStateError):
            session.feed(b"\x00\x00")

    def test_device_unavailable_keeps_idle(self, library):
        session = RecordingSession(StreamCaptureDevice(available=False), library)
        with pytest.raises(DeviceUnavailableError):
            session.start()
        assert session.state is SessionState.idle

    def test_device_released_after_stop(self, session, capture_device):
        session.start()
        assert capture_device.active is True
        session.stop()
        assert capture_device.active is False
        session.start()


# ---------------------------------------------------------------------------
# Sink
# ---------------------------------------------------------------------------


class TestAudioSink:
    def test_paused_sink_drops_audio(self, session, sample_pcm_bytes):
        session.start()
        session.feed(sample_pcm_bytes)
        session.pause()
        assert session.feed(sample_pcm_bytes) == 0
        session.resume()
        session.feed(sample_pcm_bytes)
        assert session.snapshot().captured_seconds == pytest.approx(2.0)

    def test_finalize_drops_partial_frame(self, tmp_path):
        sink = AudioSink()
        sink.write(b"\x01\x00\x02")
        pcm, _ = AudioProcessor.load_wav(sink.finalize(tmp_path / "s.wav"))
        assert pcm == b"\x01\x00"

    def test_closed_sink_ignores_writes(self):
        sink = AudioSink()
        sink.discard()
        assert sink.write(b"\x00\x00") == 0
