"""Tests for the companion's outbound PeerConnector (websockets client mocked)."""

import asyncio
from unittest.mock import patch

import pytest

from voicenotes.core.models import Memo
from voicenotes.services.storage import MemoStore
from voicenotes.services.sync import (
    MemoSnapshot,
    MemoUpdate,
    PeerConnector,
    Reconciler,
    SyncChannel,
    encode_message,
)


class FakeConnection:
    """Stands in for a ``websockets`` client connection."""

    def __init__(self, incoming=()):
        self.incoming = list(incoming)
        self.sent: list[str] = []
        self.drained = asyncio.Event()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def send(self, text):
        self.sent.append(text)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for raw in self.incoming:
            yield raw
        self.drained.set()


@pytest.fixture
def store():
    return MemoStore()


@pytest.fixture
def channel(store):
    return SyncChannel(store, Reconciler(store), device_name="companion", request_catalog_on_connect=True)


async def test_connect_once_requests_catalog_and_applies_updates(channel, store):
    memo = Memo(audio_ref="memo_a.wav", transcript="from primary")
    connection = FakeConnection([encode_message(MemoUpdate(memo=MemoSnapshot.from_memo(memo)))])
    connector = PeerConnector(channel, "ws://primary.local:8000/ws/sync")

    with patch("websockets.connect", return_value=connection) as connect:
        await connector.connect_once()

    connect.assert_called_once_with("ws://primary.local:8000/ws/sync")
    assert '"catalog_request"' in connection.sent[0]
    assert store.get(memo.id) == memo
    assert channel.connected is False


async def test_run_redials_after_refused_connection(channel):
    connection = FakeConnection()
    attempts = [OSError("connection refused"), connection]

    def _connect(_url):
        result = attempts.pop(0) if attempts else FakeConnection()
        if isinstance(result, Exception):
            raise result
        return result

    connector = PeerConnector(channel, "ws://primary/ws/sync", reconnect_min=0.01, reconnect_max=0.02)
    with patch("websockets.connect", side_effect=_connect):
        connector.start()
        assert connector.running is True
        await asyncio.wait_for(connection.drained.wait(), timeout=2)
        await connector.stop()

    assert connector.running is False
    assert connection.sent
