"""Whisper STT implementation using faster-whisper.

Provides file-based transcription via the BaseSTT interface. The
WhisperModel is loaded lazily and cached at module level to avoid repeated
initialization overhead. Transcription runs in a worker thread so the
device's event loop is never blocked.
"""

import asyncio
import logging
import math

from faster_whisper import WhisperModel

from voicenotes.core.config import get_settings
from voicenotes.core.exceptions import (
    RecognitionFailedError,
    TranscriptionError,
    TranscriptionUnavailableError,
)
from voicenotes.services.audio.processor import AudioProcessor
from voicenotes.services.transcription.base import BaseSTT

logger = logging.getLogger(__name__)

_model_cache: WhisperModel | None = None


class WhisperSTT(BaseSTT):
    """Speech-to-text provider using faster-whisper (CTranslate2).

    Args:
        model_size: Whisper model size (tiny, base, small, medium, large-v3).
        device: Computation device ("cpu" or "cuda").
        compute_type: CTranslate2 compute type ("int8", "float16", etc.).
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(
        self,
        model_size: str | None = None,
        device: str | None = None,
        compute_type: str | None = None,
        settings=None,
    ) -> None:
        self._settings = settings or get_settings()
        self._model_size = model_size or self._settings.whisper_model
        self._device = device or self._settings.whisper_device
        self._compute_type = compute_type or self._settings.whisper_compute_type
        self._processor = AudioProcessor()

    def _get_model(self) -> WhisperModel:
        """Return the cached WhisperModel, loading it on first use."""
        global _model_cache  # noqa: PLW0603
        if _model_cache is None:
            logger.info(
                "Loading Whisper model: %s (device=%s, compute=%s)",
                self._model_size,
                self._device,
                self._compute_type,
            )
            try:
                _model_cache = WhisperModel(
                    self._model_size,
                    device=self._device,
                    compute_type=self._compute_type,
                )
            except (OSError, RuntimeError, ValueError) as exc:
                raise TranscriptionUnavailableError(
                    f"Whisper model {self._model_size!r} could not be loaded: {exc}"
                ) from exc
        return _model_cache

    def _is_silent_file(self, audio_path: str) -> bool:
        """True when the WAV at *audio_path* carries no audible signal."""
        pcm, _rate = self._processor.load_wav(audio_path)
        return self._processor.is_silent(self._processor.pcm_to_ndarray(pcm))

    def _run_transcription(
        self,
        audio_path: str,
        language: str | None = None,
        beam_size: int = 5,
        vad_filter: bool = True,
    ) -> tuple:
        """Run synchronous transcription (CPU-bound).

        Must be called via asyncio.to_thread(). The segment iterator is
        materialized into a list inside this function to avoid CTranslate2
        thread-safety issues.

        Returns:
            Tuple of (list[segment_objects], info_object).
        """
        model = self._get_model()
        segments_iter, info = model.transcribe(
            audio_path,
            language=language,
            beam_size=beam_size,
            vad_filter=vad_filter,
        )
        # Materialize the generator in the same thread to avoid
        # CTranslate2 cross-thread issues.
        segments = list(segments_iter)
        return segments, info

    @staticmethod
    def _logprob_to_confidence(avg_logprob: float) -> float:
        """Convert average log probability to a 0-1 confidence score."""
        return max(0.0, min(1.0, math.exp(avg_logprob)))

    async def transcribe(self, audio_path: str, **kwargs) -> dict:
        """Transcribe a WAV file to text.

        Args:
            audio_path: Path to WAV file (16kHz, mono).
            **kwargs: Optional keys: language, beam_size, vad_filter.

        Returns:
            Dict with text, language, confidence, duration.

        Raises:
            TranscriptionUnavailableError: If the model cannot be loaded.
            RecognitionFailedError: If the audio is silent or yields no text.
        """
        language = kwargs.get("language") or self._settings.whisper_default_language or None
        try:
            if await asyncio.to_thread(self._is_silent_file, audio_path):
                raise RecognitionFailedError(f"No speech in {audio_path}")
            segments, info = await asyncio.to_thread(
                self._run_transcription,
                audio_path,
                language=language,
                beam_size=kwargs.get("beam_size", 5),
                vad_filter=kwargs.get("vad_filter", True),
            )
        except TranscriptionError:
            raise
        except Exception as exc:
            raise RecognitionFailedError(f"Whisper transcription failed: {exc}") from exc

        texts = [seg.text.strip() for seg in segments if seg.text.strip()]
        if not texts:
            raise RecognitionFailedError(f"Whisper returned no text for {audio_path}")

        avg_logprob = sum(seg.avg_logprob for seg in segments) / len(segments)
        return {
            "text": " ".join(texts),
            "language": info.language or "unknown",
            "confidence": self._logprob_to_confidence(avg_logprob),
            "duration": info.duration,
        }
