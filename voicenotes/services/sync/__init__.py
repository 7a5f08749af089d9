"""
Sync module - Two-device memo synchronization.
"""

from .channel import SyncChannel
from .connector import PeerConnector
from .links import ClientWebSocketLink, LoopbackLink, LoopbackPair, PeerLink, ServerWebSocketLink
from .messages import (
    CatalogRequest,
    CatalogResponse,
    MemoSnapshot,
    MemoUpdate,
    decode_message,
    encode_message,
)
from .reconciler import Reconciler

__all__ = [
    "CatalogRequest",
    "CatalogResponse",
    "ClientWebSocketLink",
    "LoopbackLink",
    "LoopbackPair",
    "MemoSnapshot",
    "MemoUpdate",
    "PeerConnector",
    "PeerLink",
    "Reconciler",
    "ServerWebSocketLink",
    "SyncChannel",
    "decode_message",
    "encode_message",
]
