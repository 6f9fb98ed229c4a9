from __future__ import annotations

import asyncio

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from conftest import make_job
from resumerank.controllers.realtime_controller import candidate_feed
from resumerank.realtime.broadcast import broadcast_candidate_change, job_channel, user_channel
from resumerank.realtime.channels import ChannelHub

pytestmark = pytest.mark.integration


class FakeWebSocket:
    def __init__(self):
        self.sent = []
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.close_code = None
        self.accepted = False

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        self.sent.append(data)

    async def receive_text(self):
        message = await self.incoming.get()
        if message is None:
            raise WebSocketDisconnect(code=1000)
        return message

    async def close(self, code=1000):
        self.close_code = code


async def wait_for_frames(websocket, count):
    for _ in range(200):
        if len(websocket.sent) >= count:
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"expected {count} frames, got {websocket.sent}")


async def test_bad_token_is_rejected(test_app):
    client = TestClient(test_app)

    with client.websocket_connect("/ws/candidates?token=garbage") as ws:
        assert ws.receive_json() == {"type": "error", "data": {"error": "Invalid authentication credentials"}}
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()

    assert exc.value.code == 4001


async def test_foreign_job_is_forbidden(test_app, db, owner, other):
    job = await make_job(db, other)
    client = TestClient(test_app)

    with client.websocket_connect(f"/ws/candidates?token={owner.token}&job_id={job.id}") as ws:
        assert ws.receive_json()["type"] == "error"
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()

    assert exc.value.code == 4003


async def test_subscribe_and_ping(test_app, owner):
    client = TestClient(test_app)

    with client.websocket_connect(f"/ws/candidates?token={owner.token}") as ws:
        status = ws.receive_json()
        assert status == {
            "type": "status",
            "data": {"status": "SUBSCRIBED", "channel": user_channel(owner.id)},
        }
        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}
        ws.send_text("not json")
        assert ws.receive_json() == {"type": "error", "data": {"error": "Invalid JSON"}}


async def test_changes_are_forwarded_until_disconnect(db, owner):
    hub = ChannelHub()
    job_id = (await make_job(db, owner)).id
    websocket = FakeWebSocket()

    feed = asyncio.create_task(candidate_feed(websocket, token=owner.token, job_id=job_id, db=db, hub=hub))
    await wait_for_frames(websocket, 1)
    assert websocket.sent[0]["data"] == {"status": "SUBSCRIBED", "channel": job_channel(job_id)}
    # No connection is held while the socket is open
    assert not db.in_transaction()

    await broadcast_candidate_change(job_id, owner.id, "update", "c1", hub=hub)
    await wait_for_frames(websocket, 2)
    frame = websocket.sent[1]
    assert frame["type"] == "candidate-change"
    assert frame["data"]["action"] == "update"
    assert frame["data"]["candidateId"] == "c1"

    await websocket.incoming.put(None)
    await asyncio.wait_for(feed, 1)
    assert hub.subscriber_count(job_channel(job_id)) == 0
