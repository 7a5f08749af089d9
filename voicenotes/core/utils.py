"""Shared utility functions for VoiceNotes."""

import logging
from datetime import UTC, datetime, timedelta

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(UTC)


def next_timestamp(previous: datetime | None = None) -> datetime:
    """Return a modification time strictly later than *previous*.

    Two edits within the same clock tick would otherwise carry equal
    timestamps and the second one would be discarded by the peer.
    """
    now = utcnow()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger (idempotent)."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(handler)
