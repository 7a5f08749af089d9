"""Peer links: the transports a ``SyncChannel`` sends through.

A link wraps one live connection to the peer. Transport-specific failures
are translated into :class:`PeerUnreachableError` so the channel can drop
the message without knowing which transport it was using.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from starlette.websockets import WebSocket, WebSocketDisconnect
from websockets.exceptions import ConnectionClosed

from voicenotes.core.exceptions import PeerUnreachableError

if TYPE_CHECKING:
    from voicenotes.services.sync.channel import SyncChannel


class PeerLink(ABC):
    """One open connection to the peer device."""

    name: str = "peer"

    @abstractmethod
    async def send_text(self, text: str) -> None:
        """Send one encoded message.

        Raises:
            PeerUnreachableError: If the connection is gone.
        """


class ServerWebSocketLink(PeerLink):
    """Link over an accepted FastAPI/Starlette WebSocket (primary side)."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket
        client = websocket.client
        self.name = f"ws-server:{client.host}:{client.port}" if client else "ws-server"

    async def send_text(self, text: str) -> None:
        try:
            await self._websocket.send_text(text)
        except (WebSocketDisconnect, RuntimeError) as exc:
            raise PeerUnreachableError(f"Peer {self.name} disconnected: {exc}") from exc


class ClientWebSocketLink(PeerLink):
    """Link over an outbound ``websockets`` client connection (companion side)."""

    def __init__(self, connection, url: str = "") -> None:
        self._connection = connection
        self.name = f"ws-client:{url}" if url else "ws-client"

    async def send_text(self, text: str) -> None:
        try:
            await self._connection.send(text)
        except ConnectionClosed as exc:
            raise PeerUnreachableError(f"Peer {self.name} closed: {exc}") from exc


class LoopbackLink(PeerLink):
    """In-process link that hands messages straight to another channel.

    Used to pair two device instances inside one process; ``connected``
    simulates the peer going in and out of range.
    """

    def __init__(self, peer: SyncChannel, name: str = "loopback") -> None:
        self._peer = peer
        self.name = name
        self.connected = True
        self.reverse: LoopbackLink | None = None

    async def send_text(self, text: str) -> None:
        if not self.connected:
            raise PeerUnreachableError(f"Peer {self.name} is out of range")
        await self._peer.handle_raw(text, self.reverse)


class LoopbackPair:
    """Two linked channels in one process, connectable on demand."""

    def __init__(self, first: SyncChannel, second: SyncChannel) -> None:
        self._first = first
        self._second = second
        self.to_second = LoopbackLink(second, name="loopback:first->second")
        self.to_first = LoopbackLink(first, name="loopback:second->first")
        self.to_second.reverse = self.to_first
        self.to_first.reverse = self.to_second
        self._set_connected(False)

    def _set_connected(self, value: bool) -> None:
        self.to_second.connected = value
        self.to_first.connected = value

    async def connect(self) -> None:
        """Bring both ends up; each channel runs its on-connect behavior."""
        self._set_connected(True)
        await self._second.attach(self.to_first)
        await self._first.attach(self.to_second)

    def disconnect(self) -> None:
        self._set_connected(False)
        self._first.detach(self.to_second)
        self._second.detach(self.to_first)
