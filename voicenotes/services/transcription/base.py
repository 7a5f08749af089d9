"""
Abstract base class for Speech-to-Text providers.

All STT implementations (Whisper local, disabled, etc.) must implement
this interface, enabling provider-agnostic transcription in the pipeline.
"""

from abc import ABC, abstractmethod

from voicenotes.core.exceptions import TranscriptionUnavailableError


class BaseSTT(ABC):
    """Interface that every STT provider must implement."""

    @abstractmethod
    async def transcribe(self, audio_path: str, **kwargs) -> dict:
        """Transcribe an audio file to text.

        Args:
            audio_path: Path to the audio file (WAV, 16kHz, mono).
            **kwargs: Provider-specific options (language, beam_size, etc.).

        Returns:
            Dict with keys: ``text``, ``language``, ``confidence``.

        Raises:
            TranscriptionUnavailableError: The capability is missing on this device.
            RecognitionFailedError: No usable text was recognized.
        """


class UnavailableSTT(BaseSTT):
    """Provider for devices without speech recognition; every call fails."""

    async def transcribe(self, audio_path: str, **kwargs) -> dict:
        raise TranscriptionUnavailableError()
