"""Outbound peer connection for the companion device.

``PeerConnector`` dials the primary's ``/ws/sync`` endpoint, attaches the
connection to the sync channel (which triggers the catalog backfill), and
feeds every received frame to the channel. Lost or refused connections
are re-dialed with exponential backoff via tenacity. This re-establishes
the link only; individual pushes are still never retried.
"""

import asyncio
import logging

import websockets
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    wait_exponential,
)
from websockets.exceptions import ConnectionClosed, InvalidHandshake

from voicenotes.services.sync.channel import SyncChannel
from voicenotes.services.sync.links import ClientWebSocketLink

logger = logging.getLogger(__name__)

_RECONNECTABLE = (OSError, TimeoutError, ConnectionClosed, InvalidHandshake)


def _log_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    delay = state.next_action.sleep if state.next_action else 0.0
    logger.info("Peer connection failed (%s); redialing in %.1fs", exc, delay)


class PeerConnector:
    """Keeps a client connection to the peer alive in a background task.

    Args:
        channel: Channel the connection is attached to.
        url: WebSocket URL of the peer (``ws://host:port/ws/sync``).
        reconnect_min: First backoff delay in seconds.
        reconnect_max: Backoff ceiling in seconds.
    """

    def __init__(
        self,
        channel: SyncChannel,
        url: str,
        reconnect_min: float = 1.0,
        reconnect_max: float = 30.0,
    ) -> None:
        self._channel = channel
        self._url = url
        self._reconnect_min = reconnect_min
        self._reconnect_max = reconnect_max
        self._task: asyncio.Task | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Launch the background connect loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Cancel the connect loop and wait for it to unwind."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def run(self) -> None:
        """Dial forever; each clean close is followed by a fresh dial."""
        while True:
            async for attempt in AsyncRetrying(
                wait=wait_exponential(
                    multiplier=self._reconnect_min,
                    min=self._reconnect_min,
                    max=self._reconnect_max,
                ),
                retry=retry_if_exception_type(_RECONNECTABLE),
                before_sleep=_log_retry,
                reraise=True,
            ):
                with attempt:
                    await self.connect_once()
            await asyncio.sleep(self._reconnect_min)

    async def connect_once(self) -> None:
        """Hold one connection open until the peer closes it."""
        async with websockets.connect(self._url) as connection:
            link = ClientWebSocketLink(connection, url=self._url)
            await self._channel.attach(link)
            try:
                async for raw in connection:
                    await self._channel.handle_raw(raw, link)
            finally:
                self._channel.detach(link)
