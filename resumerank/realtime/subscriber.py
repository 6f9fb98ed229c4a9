"""
Python client for the ``/ws/candidates`` feed.

Change events carry no data worth trusting; every one of them just triggers
the refresh callback, which is expected to re-query whatever it displays.
"""
import inspect
import json
import logging
from typing import Any, Awaitable, Callable, Optional, Union
from urllib.parse import urlencode

import websockets

from resumerank.realtime.broadcast import CANDIDATE_CHANGE_EVENT
from resumerank.realtime.channels import ChannelStatus

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[], Union[None, Awaitable[None]]]
StatusCallback = Callable[[ChannelStatus], Union[None, Awaitable[None]]]

# Authentication and authorization failures from the server
REJECT_CLOSE_CODES = (4001, 4003)


async def _call(callback: Optional[Callable[..., Any]], *args) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class CandidateFeedSubscriber:
    def __init__(self, base_url: str, token: str, job_id: Optional[str] = None,
                 on_refresh: Optional[RefreshCallback] = None,
                 on_status: Optional[StatusCallback] = None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.job_id = job_id
        self.on_refresh = on_refresh
        self.on_status = on_status
        self.status = ChannelStatus.CLOSED
        self.websocket = None

    @property
    def url(self) -> str:
        params = {"token": self.token}
        if self.job_id:
            params["job_id"] = self.job_id
        return f"{self.base_url}/ws/candidates?{urlencode(params)}"

    async def _set_status(self, status: ChannelStatus) -> None:
        if status == self.status:
            return
        self.status = status
        logger.info(f"Candidate feed status: {status.value}")
        await _call(self.on_status, status)

    async def run(self) -> None:
        """Connect and consume frames until the server or ``close()`` ends the feed."""
        await self._set_status(ChannelStatus.CONNECTING)
        try:
            async with websockets.connect(self.url) as websocket:
                self.websocket = websocket
                async for message in websocket:
                    await self._handle_message(json.loads(message))
            await self._set_status(ChannelStatus.CLOSED)
        except websockets.exceptions.ConnectionClosed as e:
            code = e.rcvd.code if e.rcvd is not None else None
            logger.info(f"Candidate feed closed: {e}")
            await self._set_status(ChannelStatus.CHANNEL_ERROR if code in REJECT_CLOSE_CODES else ChannelStatus.CLOSED)
        except Exception as e:
            logger.error(f"Candidate feed failed: {e}")
            await self._set_status(ChannelStatus.CHANNEL_ERROR)
        finally:
            self.websocket = None

    async def _handle_message(self, data: dict) -> None:
        message_type = data.get("type")

        if message_type == "status":
            status = data.get("data", {}).get("status")
            if status in ChannelStatus.__members__:
                await self._set_status(ChannelStatus(status))

        elif message_type == CANDIDATE_CHANGE_EVENT:
            await _call(self.on_refresh)

        elif message_type == "error":
            logger.error(f"Server error: {data.get('data', {}).get('error')}")

    async def ping(self) -> None:
        if self.websocket is not None:
            await self.websocket.send(json.dumps({"type": "ping"}))

    async def close(self) -> None:
        if self.websocket is not None:
            await self.websocket.close()
