"""Integration tests for the WebSocket endpoints (record, events, sync)."""

import json
import time

from starlette.testclient import TestClient

from voicenotes.core.models import Memo, TranscriptStatus
from voicenotes.services.sync import CatalogRequest, MemoSnapshot, MemoUpdate, encode_message


def _eventually(predicate, attempts: int = 200) -> bool:
    """Poll *predicate* while the server-side handler catches up."""
    for _ in range(attempts):
        if predicate():
            return True
        time.sleep(0.01)
    return False


# ---------------------------------------------------------------------------
# /ws/record
# ---------------------------------------------------------------------------


def test_record_stream_feeds_session(test_client: TestClient, device, sample_pcm_bytes):
    """start → stream PCM → stop produces a memo holding the streamed audio."""
    test_client.post("/api/v1/session/start")

    with test_client.websocket_connect("/ws/record") as ws:
        connected = ws.receive_json()
        assert connected["type"] == "connected"
        assert connected["data"]["state"] == "recording"

        ws.send_bytes(sample_pcm_bytes)
        assert _eventually(
            lambda: test_client.get("/api/v1/session").json()["captured_seconds"] > 0
        )

    resp = test_client.post("/api/v1/session/stop")
    assert resp.status_code == 200
    assert device.editor.duration(resp.json()["audio_ref"]) > 0


def test_record_stream_without_session(test_client: TestClient, sample_pcm_bytes):
    """Audio sent while idle is rejected with an error message."""
    with test_client.websocket_connect("/ws/record") as ws:
        assert ws.receive_json()["data"]["state"] == "idle"
        ws.send_bytes(sample_pcm_bytes)
        msg = ws.receive_json()
        assert msg["type"] == "error"
        assert "receive audio" in msg["data"]["detail"]


# ---------------------------------------------------------------------------
# /ws/events
# ---------------------------------------------------------------------------


def test_events_stream_memo_changes(test_client: TestClient, device):
    memo = Memo(audio_ref="memo_a.wav", transcript="old", transcript_status=TranscriptStatus.completed)
    device.store.insert_or_replace(memo)

    with test_client.websocket_connect("/ws/events") as ws:
        connected = ws.receive_json()
        assert connected["type"] == "connected"
        assert connected["data"] == {"role": "primary", "memos": 1}

        test_client.patch(f"/api/v1/memos/{memo.id}", json={"transcript": "new"})
        msg = ws.receive_json()
        assert msg["type"] == "memo_upserted"
        assert msg["data"]["transcript"] == "new"

        test_client.delete(f"/api/v1/memos/{memo.id}")
        msg = ws.receive_json()
        assert msg["type"] == "memo_removed"
        assert msg["data"]["id"] == memo.id


# ---------------------------------------------------------------------------
# /ws/sync
# ---------------------------------------------------------------------------


def test_sync_catalog_request(test_client: TestClient, device):
    memo = Memo(audio_ref="memo_a.wav", transcript="hi", transcript_status=TranscriptStatus.completed)
    device.store.insert_or_replace(memo)

    with test_client.websocket_connect("/ws/sync") as ws:
        ws.send_text(encode_message(CatalogRequest(sender="companion")))
        response = json.loads(ws.receive_text())

        assert response["type"] == "catalog_response"
        assert [m["id"] for m in response["memos"]] == [memo.id]
        # Audio file does not exist, so the snapshot travels without it.
        assert response["memos"][0]["audio"] is None
        assert test_client.get("/api/v1/sync/status").json()["connected"] is True

    assert _eventually(lambda: not test_client.get("/api/v1/sync/status").json()["connected"])


def test_sync_memo_update_is_reconciled(test_client: TestClient, device):
    memo = Memo(audio_ref="memo_peer.wav", transcript="from companion")
    update = MemoUpdate(sender="companion", memo=MemoSnapshot.from_memo(memo, audio=b"RIFF"))

    with test_client.websocket_connect("/ws/sync") as ws:
        ws.send_text("{not json")
        ws.send_text(encode_message(update))
        # Messages on one link are handled in order: once the catalog comes
        # back, the update has been applied and the malformed frame skipped.
        ws.send_text(encode_message(CatalogRequest()))
        response = json.loads(ws.receive_text())

    assert [m["transcript"] for m in response["memos"]] == ["from companion"]
    resp = test_client.get(f"/api/v1/memos/{memo.id}")
    assert resp.status_code == 200
    assert device.library.read_bytes("memo_peer.wav") == b"RIFF"


def test_local_changes_are_pushed_to_connected_peer(test_client: TestClient, device):
    memo = Memo(audio_ref="memo_a.wav", transcript="old", transcript_status=TranscriptStatus.completed)
    device.store.insert_or_replace(memo)

    with test_client.websocket_connect("/ws/sync") as ws:
        ws.send_text(encode_message(CatalogRequest()))
        ws.receive_text()

        test_client.patch(f"/api/v1/memos/{memo.id}", json={"transcript": "edited"})
        pushed = json.loads(ws.receive_text())

    assert pushed["type"] == "memo_update"
    assert pushed["memo"]["transcript"] == "edited"
