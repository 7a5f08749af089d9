"""
Storage module - In-memory memo store and change events.
"""

from voicenotes.services.storage.memo_store import MemoStore, StoreEvent

__all__ = ["MemoStore", "StoreEvent"]
