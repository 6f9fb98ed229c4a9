"""
Named broadcast channels.

A ``Channel`` is one subscription to a topic such as ``job:<id>:candidates``.
The in-process ``ChannelHub`` delivers messages to every channel joined under
the same name; ``RedisChannelHub`` routes publishes through Redis pub/sub so
that every API process relays them to its own websocket subscribers.
"""
import asyncio
import json
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

import redis.asyncio as redis

from resumerank.core.config import settings

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any]], Awaitable[None]]

RELAY_PATTERNS = ("job:*", "user:*")


class ChannelStatus(str, Enum):
    CONNECTING = "CONNECTING"
    SUBSCRIBED = "SUBSCRIBED"
    CHANNEL_ERROR = "CHANNEL_ERROR"
    TIMED_OUT = "TIMED_OUT"
    CLOSED = "CLOSED"


class Channel:
    def __init__(self, hub: "ChannelHub", name: str):
        self.hub = hub
        self.name = name
        self.status = ChannelStatus.CONNECTING
        self._listeners: Dict[str, List[Listener]] = {}

    def on(self, event: str, listener: Listener) -> "Channel":
        self._listeners.setdefault(event, []).append(listener)
        return self

    async def subscribe(self) -> ChannelStatus:
        try:
            await self.hub.join(self)
        except Exception:
            self.status = ChannelStatus.CHANNEL_ERROR
            raise
        self.status = ChannelStatus.SUBSCRIBED
        return self.status

    async def send(self, event: str, payload: Dict[str, Any]) -> None:
        await self.hub.publish(self.name, event, payload)

    async def deliver(self, event: str, payload: Dict[str, Any]) -> None:
        for listener in self._listeners.get(event, []):
            await listener(payload)

    async def unsubscribe(self) -> None:
        await self.hub.leave(self)
        self.status = ChannelStatus.CLOSED


class ChannelHub:
    """In-process hub; messages never leave this process."""

    def __init__(self, delivery_timeout: Optional[float] = None):
        self.subscriptions: Dict[str, Set[Channel]] = {}
        self.delivery_timeout = settings.BROADCAST_TIMEOUT_SECONDS if delivery_timeout is None else delivery_timeout

    def channel(self, name: str) -> Channel:
        return Channel(self, name)

    async def join(self, channel: Channel) -> None:
        self.subscriptions.setdefault(channel.name, set()).add(channel)

    async def leave(self, channel: Channel) -> None:
        members = self.subscriptions.get(channel.name)
        if members is None:
            return
        members.discard(channel)
        if not members:
            del self.subscriptions[channel.name]

    async def remove_channel(self, channel: Channel) -> None:
        await channel.unsubscribe()

    async def publish(self, name: str, event: str, payload: Dict[str, Any]) -> None:
        await self.fan_out(name, event, payload)

    async def _deliver(self, channel: Channel, event: str, payload: Dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(channel.deliver(event, payload), self.delivery_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Subscriber of {channel.name} too slow, dropping {event}")
        except Exception as e:
            logger.warning(f"Dropping {event} for a subscriber of {channel.name}: {e}")
        return False

    async def fan_out(self, name: str, event: str, payload: Dict[str, Any]) -> int:
        """Deliver to every local subscriber at once; a stalled one only loses its own copy."""
        members = list(self.subscriptions.get(name, ()))
        if not members:
            return 0
        results = await asyncio.gather(*(self._deliver(channel, event, payload) for channel in members))
        return sum(results)

    def subscriber_count(self, name: str) -> int:
        return len(self.subscriptions.get(name, ()))

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        self.subscriptions.clear()


class RedisChannelHub(ChannelHub):
    def __init__(self, url: str, delivery_timeout: Optional[float] = None):
        super().__init__(delivery_timeout)
        self.redis = redis.from_url(url, decode_responses=True)
        self._relay_task: Optional[asyncio.Task] = None

    async def join(self, channel: Channel) -> None:
        await self.redis.ping()
        await super().join(channel)

    async def publish(self, name: str, event: str, payload: Dict[str, Any]) -> None:
        await self.redis.publish(name, json.dumps({"event": event, "payload": payload}))

    async def start(self) -> None:
        if self._relay_task is None:
            self._relay_task = asyncio.create_task(self._relay())

    async def stop(self) -> None:
        if self._relay_task is not None:
            self._relay_task.cancel()
            try:
                await self._relay_task
            except asyncio.CancelledError:
                pass
            self._relay_task = None
        await self.redis.aclose()
        await super().stop()

    async def _relay(self) -> None:
        pubsub = self.redis.pubsub()
        await pubsub.psubscribe(*RELAY_PATTERNS)
        logger.info(f"Redis relay listening on {', '.join(RELAY_PATTERNS)}")
        try:
            async for message in pubsub.listen():
                if message.get("type") != "pmessage":
                    continue
                try:
                    body = json.loads(message["data"])
                    await self.fan_out(message["channel"], body["event"], body["payload"])
                except Exception as e:
                    logger.error(f"Bad relay message on {message.get('channel')}: {e}")
        finally:
            await pubsub.aclose()


_hub: Optional[ChannelHub] = None


def get_channel_hub() -> ChannelHub:
    global _hub
    if _hub is None:
        _hub = RedisChannelHub(settings.REDIS_URL) if settings.REDIS_URL else ChannelHub()
    return _hub
