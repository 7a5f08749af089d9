"""Resolution of opaque audio references to files on disk.

An ``audio_ref`` is a bare file name inside the device's recordings
directory. Only this module turns references into paths, so the store,
the pipeline and the sync channel can treat them as opaque strings.
"""

import logging
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

logger = logging.getLogger(__name__)


class AudioLibrary:
    """Allocates, resolves and releases audio references.

    Args:
        recordings_dir: Directory holding every WAV file this device owns.
    """

    def __init__(self, recordings_dir: str | Path) -> None:
        self._root = Path(recordings_dir)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def allocate(self, prefix: str = "memo") -> str:
        """Return a fresh, unused reference such as ``memo_20261017-120000_ab12cd34.wav``."""
        stamp = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
        return f"{prefix}_{stamp}_{uuid4().hex[:8]}.wav"

    def path(self, audio_ref: str) -> Path:
        """Resolve *audio_ref* to a path inside the recordings directory.

        Raises:
            ValueError: If the reference points outside the directory.
        """
        candidate = (self._root / audio_ref).resolve()
        if candidate.parent != self._root.resolve() or not audio_ref:
            raise ValueError(f"Invalid audio reference: {audio_ref!r}")
        return candidate

    def exists(self, audio_ref: str) -> bool:
        try:
            return self.path(audio_ref).is_file()
        except ValueError:
            return False

    def read_bytes(self, audio_ref: str) -> bytes:
        return self.path(audio_ref).read_bytes()

    def write_bytes(self, audio_ref: str, data: bytes) -> None:
        """Materialize audio received from a peer under the same reference."""
        self.path(audio_ref).write_bytes(data)

    def release(self, audio_ref: str) -> bool:
        """Delete the file behind *audio_ref*; returns False if nothing was removed."""
        try:
            path = self.path(audio_ref)
        except ValueError:
            logger.warning("Refusing to release invalid audio ref %r", audio_ref)
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.debug("Released audio ref=%s", audio_ref)
        return True
