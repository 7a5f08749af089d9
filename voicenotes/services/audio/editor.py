"""Audio segment editing: merge and trim of WAV segments.

Built on pydub's ``AudioSegment``. Both operations read their inputs,
write the result under a newly allocated reference and never touch the
input files. They are CPU/IO bound and are meant to be run through
``asyncio.to_thread()`` by callers on the event loop.
"""

import logging

from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from voicenotes.core.exceptions import MergeError, TrimError, VoiceNotesError
from voicenotes.services.audio.library import AudioLibrary
from voicenotes.services.audio.processor import AudioProcessor

logger = logging.getLogger(__name__)


class AudioSegmentEditor:
    """Concatenates and slices audio segments losslessly at sample boundaries.

    Args:
        library: Resolves references to files and allocates output references.
    """

    def __init__(self, library: AudioLibrary) -> None:
        self._library = library

    def _load(self, audio_ref: str, error_cls: type[VoiceNotesError]) -> AudioSegment:
        """Decode *audio_ref* or raise *error_cls* describing why it is unreadable."""
        try:
            data = self._library.read_bytes(audio_ref)
            # Passing raw WAV bytes decodes the header in-process (no ffmpeg).
            return AudioSegment(data=data)
        except (OSError, ValueError, CouldntDecodeError) as exc:
            raise error_cls(f"Unreadable audio segment {audio_ref!r}: {exc}") from exc

    def _save(self, segment: AudioSegment, prefix: str) -> str:
        ref = self._library.allocate(prefix)
        processor = AudioProcessor(
            sample_rate=segment.frame_rate,
            sample_width=segment.sample_width,
            channels=segment.channels,
        )
        processor.save_wav(segment.raw_data, self._library.path(ref))
        return ref

    @staticmethod
    def _seconds(segment: AudioSegment) -> float:
        return segment.frame_count() / segment.frame_rate

    def duration(self, audio_ref: str) -> float:
        """Return the duration of *audio_ref* in seconds.

        Raises:
            TrimError: If the segment cannot be read.
        """
        return self._seconds(self._load(audio_ref, TrimError))

    def merge(self, base_ref: str, addition_ref: str) -> str:
        """Concatenate *addition_ref* after *base_ref* into a new segment.

        Returns:
            Reference of the merged segment; its duration is the sum of both.

        Raises:
            MergeError: If either segment is unreadable or the sample formats differ.
        """
        base = self._load(base_ref, MergeError)
        addition = self._load(addition_ref, MergeError)

        base_fmt = (base.frame_rate, base.sample_width, base.channels)
        addition_fmt = (addition.frame_rate, addition.sample_width, addition.channels)
        if base_fmt != addition_fmt:
            raise MergeError(
                f"Incompatible formats: base={base_fmt} addition={addition_fmt} "
                "(rate, width, channels)"
            )

        merged_ref = self._save(base + addition, prefix="merged")
        logger.debug(
            "Merged base=%s (%.3fs) + addition=%s (%.3fs) -> %s",
            base_ref,
            self._seconds(base),
            addition_ref,
            self._seconds(addition),
            merged_ref,
        )
        return merged_ref

    def trim(self, audio_ref: str, start_offset: float) -> str:
        """Return a new segment holding *audio_ref* from *start_offset* seconds to its end.

        Raises:
            TrimError: If the segment is unreadable or the offset lies outside it.
        """
        segment = self._load(audio_ref, TrimError)
        total = self._seconds(segment)
        if start_offset < 0 or start_offset > total:
            raise TrimError(
                f"Start offset {start_offset:.3f}s outside segment {audio_ref!r} ({total:.3f}s)"
            )

        start_frame = round(start_offset * segment.frame_rate)
        trimmed_ref = self._save(segment.get_sample_slice(start_frame), prefix="delta")
        logger.debug("Trimmed %s from %.3fs -> %s", audio_ref, start_offset, trimmed_ref)
        return trimmed_ref
