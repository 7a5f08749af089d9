"""Shared pytest fixtures for the VoiceNotes test suite.

Provides common test fixtures used across unit and integration tests,
including a mock STT provider, PCM/WAV audio helpers and fully wired
device instances backed by temporary recordings directories.
"""

import math
import struct
from unittest.mock import AsyncMock

import pytest

from voicenotes.core.config import Settings
from voicenotes.services.audio import AudioLibrary, AudioProcessor
from voicenotes.services.device import NoteDevice
from voicenotes.services.transcription.base import BaseSTT


def make_tone(seconds: float, frequency: float = 440.0, sample_rate: int = 16000) -> bytes:
    """Generate a sine tone as 16-bit mono PCM."""
    amplitude = 16000  # ~50% of max int16
    samples = [
        struct.pack("<h", int(amplitude * math.sin(2 * math.pi * frequency * i / sample_rate)))
        for i in range(int(sample_rate * seconds))
    ]
    return b"".join(samples)


# ---------------------------------------------------------------------------
# STT Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_stt():
    """Create a mock STT provider for unit testing.

    Returns:
        AsyncMock: A mock implementing the BaseSTT interface with a
        default transcribe response.
    """
    stt = AsyncMock(spec=BaseSTT)
    stt.transcribe.return_value = {
        "text": "This is a test transcription.",
        "language": "en",
        "confidence": 0.95,
    }
    return stt


# ---------------------------------------------------------------------------
# Audio Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def tone():
    """Factory for sine-tone PCM: ``tone(seconds, frequency=440.0)``."""
    return make_tone


@pytest.fixture
def sample_pcm_bytes():
    """1 second of 440Hz sine-wave PCM audio (16kHz, 16-bit, mono)."""
    return make_tone(1.0)


@pytest.fixture
def silent_pcm_bytes():
    """1 second of silence as PCM audio (16kHz, 16-bit, mono)."""
    return b"\x00\x00" * 16000


@pytest.fixture
def library(tmp_path):
    """An AudioLibrary rooted in a temporary recordings directory."""
    return AudioLibrary(tmp_path / "recordings")


@pytest.fixture
def write_wav(library):
    """Factory writing PCM into a new WAV reference of *library*.

    Usage: ``ref = write_wav(pcm, sample_rate=16000)``
    """

    def _write(pcm: bytes, sample_rate: int = 16000, prefix: str = "memo") -> str:
        ref = library.allocate(prefix)
        AudioProcessor(sample_rate=sample_rate).save_wav(pcm, library.path(ref))
        return ref

    return _write


@pytest.fixture
def sample_audio_path(tmp_path, sample_pcm_bytes):
    """A temporary WAV file holding ``sample_pcm_bytes``."""
    wav_path = tmp_path / "test_audio.wav"
    AudioProcessor().save_wav(sample_pcm_bytes, wav_path)
    return str(wav_path)


# ---------------------------------------------------------------------------
# Device Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_settings(tmp_path):
    """Factory for isolated Settings (one recordings directory per device name)."""

    def _make(device_name: str = "primary", **overrides) -> Settings:
        values = {
            "device_name": device_name,
            "recordings_dir": str(tmp_path / device_name),
            "whisper_provider": "none",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def device(make_settings, mock_stt):
    """A primary device wired with the mock STT provider."""
    return NoteDevice(settings=make_settings("primary"), stt=mock_stt)
