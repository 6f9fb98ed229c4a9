import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from resumerank.db.database import get_db
from resumerank.realtime.broadcast import CANDIDATE_CHANGE_EVENT, job_channel, user_channel
from resumerank.realtime.channels import ChannelHub, get_channel_hub
from resumerank.repositories.job_repo import JobRepository
from resumerank.services.auth.auth_service import resolve_user_from_token

logger = logging.getLogger(__name__)

router = APIRouter()

CLOSE_UNAUTHENTICATED = 4001
CLOSE_FORBIDDEN = 4003


async def _reject(websocket: WebSocket, code: int, message: str) -> None:
    await websocket.send_json({"type": "error", "data": {"error": message}})
    await websocket.close(code=code)


@router.websocket("/ws/candidates")
async def candidate_feed(
    websocket: WebSocket,
    token: Optional[str] = Query(None, description="JWT token for authentication"),
    job_id: Optional[str] = Query(None, description="Only follow candidates of this job"),
    db: AsyncSession = Depends(get_db),
    hub: ChannelHub = Depends(get_channel_hub)
):
    """
    Live candidate change feed.

    Without ``job_id`` the socket follows every job the user owns. Each
    change arrives as ``{"type": "candidate-change", "data": {...}}``;
    send ``{"type": "ping"}`` to get a ``pong`` back.
    """
    await websocket.accept()

    user = await resolve_user_from_token(token, db)
    if user is None:
        await _reject(websocket, CLOSE_UNAUTHENTICATED, "Invalid authentication credentials")
        return

    if job_id:
        job = await JobRepository(db).get_job_by_id(job_id)
        if job is None or job.user_id != user.id:
            await _reject(websocket, CLOSE_FORBIDDEN, "Unauthorized to follow this job")
            return
        name = job_channel(job_id)
    else:
        name = user_channel(user.id)

    # Release the pooled connection for the lifetime of the socket
    user_id = user.id
    await db.close()

    async def forward(payload):
        await websocket.send_json({"type": CANDIDATE_CHANGE_EVENT, "data": payload})

    channel = hub.channel(name).on(CANDIDATE_CHANGE_EVENT, forward)
    try:
        status = await channel.subscribe()
    except Exception as e:
        logger.error(f"Could not subscribe {user_id} to {name}: {e}")
        await websocket.send_json({"type": "status", "data": {"status": channel.status.value, "channel": name}})
        await websocket.close(code=1011)
        return

    logger.info(f"User {user_id} subscribed to {name}")
    try:
        await websocket.send_json({"type": "status", "data": {"status": status.value, "channel": name}})
        while True:
            text = await websocket.receive_text()
            try:
                message = json.loads(text)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "data": {"error": "Invalid JSON"}})
                continue
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        logger.info(f"User {user_id} left {name}")
    finally:
        await hub.remove_channel(channel)
