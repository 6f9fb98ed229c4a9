from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from resumerank.realtime.broadcast import (
    CANDIDATE_CHANGE_EVENT,
    broadcast_bulk_candidate_change,
    broadcast_candidate_change,
    group_by_job,
    job_channel,
    user_channel,
)
from resumerank.realtime.channels import ChannelHub, ChannelStatus

pytestmark = pytest.mark.unit


def row(candidate_id, job_id, owner_id="owner-1"):
    return SimpleNamespace(id=candidate_id, job_id=job_id, owner_id=owner_id)


class SlowJoinHub(ChannelHub):
    """Joins never finish in time; publishes still go out."""

    def __init__(self):
        super().__init__()
        self.sent = []

    async def join(self, channel):
        await asyncio.sleep(10)

    async def publish(self, name, event, payload):
        self.sent.append(name)


class BrokenPublishHub(ChannelHub):
    def __init__(self, broken):
        super().__init__()
        self.broken = broken
        self.sent = []

    async def publish(self, name, event, payload):
        if name == self.broken:
            raise ConnectionError("socket closed")
        self.sent.append(name)


def test_group_by_job_keeps_first_seen_order():
    groups = group_by_job([row("c1", "j2"), row("c2", "j1"), row("c3", "j2")])

    assert [(g.job_id, g.candidate_ids) for g in groups] == [("j2", ["c1", "c3"]), ("j1", ["c2"])]


async def test_subscribers_receive_job_and_user_messages():
    hub = ChannelHub()
    job_messages, user_messages = [], []

    async def on_job(payload):
        job_messages.append(payload)

    async def on_user(payload):
        user_messages.append(payload)

    job_sub = hub.channel(job_channel("j1")).on(CANDIDATE_CHANGE_EVENT, on_job)
    user_sub = hub.channel(user_channel("owner-1")).on(CANDIDATE_CHANGE_EVENT, on_user)
    assert await job_sub.subscribe() == ChannelStatus.SUBSCRIBED
    await user_sub.subscribe()

    result = await broadcast_candidate_change("j1", "owner-1", "insert", "c1", hub=hub)

    assert result.ok
    assert job_messages[0]["action"] == "insert"
    assert job_messages[0]["candidateId"] == "c1"
    assert user_messages == job_messages
    # The publisher's own temporary channels are gone again
    assert hub.subscriber_count(job_channel("j1")) == 1


async def test_bulk_broadcast_sends_one_payload_per_job():
    hub = ChannelHub()
    received = {}

    for job_id in ("j1", "j2"):
        async def listener(payload, job_id=job_id):
            received[job_id] = payload
        await hub.channel(job_channel(job_id)).on(CANDIDATE_CHANGE_EVENT, listener).subscribe()

    result = await broadcast_bulk_candidate_change(
        [row("c1", "j1"), row("c2", "j2"), row("c3", "j1")], "update", hub=hub
    )

    assert len(result.delivered) == 4
    assert received["j1"]["candidateIds"] == ["c1", "c3"]
    assert received["j2"]["candidateIds"] == ["c2"]


async def test_subscribe_timeout_still_sends():
    hub = SlowJoinHub()

    result = await broadcast_candidate_change("j1", "owner-1", "update", "c1", hub=hub, timeout=0.01)

    assert result.ok
    assert hub.sent == [job_channel("j1"), user_channel("owner-1")]


async def test_publish_failures_are_reported_not_raised():
    hub = BrokenPublishHub(broken=job_channel("j1"))

    result = await broadcast_candidate_change("j1", "owner-1", "delete", "c1", hub=hub)

    assert not result.ok
    assert "socket closed" in result.failed[job_channel("j1")]
    assert hub.sent == [user_channel("owner-1")]
    assert hub.subscriptions == {}


async def test_failing_listener_does_not_block_others():
    hub = ChannelHub()
    delivered = []

    async def broken(payload):
        raise RuntimeError("client went away")

    async def healthy(payload):
        delivered.append(payload)

    await hub.channel("job:j1:candidates").on(CANDIDATE_CHANGE_EVENT, broken).subscribe()
    await hub.channel("job:j1:candidates").on(CANDIDATE_CHANGE_EVENT, healthy).subscribe()

    count = await hub.fan_out("job:j1:candidates", CANDIDATE_CHANGE_EVENT, {"action": "update"})

    assert count == 1
    assert delivered == [{"action": "update"}]


async def test_unsubscribe_closes_channel():
    hub = ChannelHub()
    channel = hub.channel("user:u1:candidates")
    await channel.subscribe()

    await hub.remove_channel(channel)

    assert channel.status == ChannelStatus.CLOSED
    assert hub.subscriber_count("user:u1:candidates") == 0


async def stalled(payload):
    await asyncio.sleep(10)


async def test_stalled_subscriber_cannot_hold_up_the_publisher():
    hub = ChannelHub(delivery_timeout=10)
    await hub.channel(job_channel("j1")).on(CANDIDATE_CHANGE_EVENT, stalled).subscribe()

    result = await asyncio.wait_for(
        broadcast_candidate_change("j1", "u1", "update", "c1", hub=hub, timeout=0.1), 2
    )

    assert "timed out" in result.failed[job_channel("j1")]
    assert user_channel("u1") in result.delivered
    assert hub.subscriber_count(job_channel("j1")) == 1


async def test_slow_subscriber_only_loses_its_own_copy():
    hub = ChannelHub(delivery_timeout=0.05)
    delivered = []

    async def healthy(payload):
        delivered.append(payload)

    await hub.channel(job_channel("j1")).on(CANDIDATE_CHANGE_EVENT, stalled).subscribe()
    await hub.channel(job_channel("j1")).on(CANDIDATE_CHANGE_EVENT, healthy).subscribe()

    result = await broadcast_candidate_change("j1", "u1", "update", "c1", hub=hub, timeout=1)

    assert result.ok
    assert delivered[0]["candidateId"] == "c1"
