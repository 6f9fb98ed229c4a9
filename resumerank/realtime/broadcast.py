"""
Candidate change fan-out.

Each affected job gets the same payload on its job channel and on its owner's
user channel. Payloads only say *what* changed; subscribers re-query.
Nothing in here raises: failures are logged and reported in the result.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from resumerank.core.config import settings
from resumerank.realtime.channels import ChannelHub, ChannelStatus, get_channel_hub

logger = logging.getLogger(__name__)

CANDIDATE_CHANGE_EVENT = "candidate-change"


def job_channel(job_id: str) -> str:
    return f"job:{job_id}:candidates"


def user_channel(user_id: str) -> str:
    return f"user:{user_id}:candidates"


@dataclass
class JobChange:
    job_id: str
    owner_id: str
    candidate_ids: List[str] = field(default_factory=list)


@dataclass
class BroadcastResult:
    delivered: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def merge(self, other: "BroadcastResult") -> "BroadcastResult":
        self.delivered.extend(other.delivered)
        self.failed.update(other.failed)
        return self


def group_by_job(rows: Iterable[Any]) -> List[JobChange]:
    """Group rows carrying ``id``, ``job_id`` and ``owner_id`` by job, first seen first."""
    groups: Dict[str, JobChange] = {}
    for row in rows:
        group = groups.get(row.job_id)
        if group is None:
            group = groups[row.job_id] = JobChange(job_id=row.job_id, owner_id=row.owner_id)
        group.candidate_ids.append(row.id)
    return list(groups.values())


def change_payload(action: str, candidate_id: Optional[str] = None,
                   candidate_ids: Optional[List[str]] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"action": action}
    if candidate_ids is not None:
        payload["candidateIds"] = list(candidate_ids)
    else:
        payload["candidateId"] = candidate_id
    payload["timestamp"] = datetime.now(timezone.utc).isoformat()
    return payload


async def _publish(hub: ChannelHub, name: str, payload: Dict[str, Any], timeout: float,
                   result: BroadcastResult) -> None:
    channel = hub.channel(name)
    try:
        try:
            await asyncio.wait_for(channel.subscribe(), timeout)
        except asyncio.TimeoutError:
            channel.status = ChannelStatus.TIMED_OUT
            logger.warning(f"Channel {name} not ready after {timeout}s, sending anyway")
        await asyncio.wait_for(channel.send(CANDIDATE_CHANGE_EVENT, payload), timeout)
        result.delivered.append(name)
    except asyncio.TimeoutError:
        logger.error(f"Broadcast on {name} not sent within {timeout}s")
        result.failed[name] = f"timed out after {timeout}s"
    except Exception as e:
        logger.error(f"Broadcast on {name} failed: {e}")
        result.failed[name] = str(e)
    finally:
        try:
            await hub.remove_channel(channel)
        except Exception as e:
            logger.warning(f"Failed to tear down channel {name}: {e}")


async def publish_job_change(hub: ChannelHub, job_id: str, owner_id: str, payload: Dict[str, Any],
                             timeout: Optional[float] = None) -> BroadcastResult:
    timeout = settings.BROADCAST_TIMEOUT_SECONDS if timeout is None else timeout
    result = BroadcastResult()
    for name in (job_channel(job_id), user_channel(owner_id)):
        await _publish(hub, name, payload, timeout, result)
    return result


async def broadcast_candidate_change(job_id: str, owner_id: str, action: str, candidate_id: str,
                                     hub: Optional[ChannelHub] = None,
                                     timeout: Optional[float] = None) -> BroadcastResult:
    hub = hub or get_channel_hub()
    payload = change_payload(action, candidate_id=candidate_id)
    result = await publish_job_change(hub, job_id, owner_id, payload, timeout)
    logger.info(f"Broadcast {action} for candidate {candidate_id} on job {job_id}")
    return result


async def broadcast_bulk_candidate_change(rows: Iterable[Any], action: str,
                                          hub: Optional[ChannelHub] = None,
                                          timeout: Optional[float] = None) -> BroadcastResult:
    hub = hub or get_channel_hub()
    result = BroadcastResult()
    for group in group_by_job(rows):
        payload = change_payload(action, candidate_ids=group.candidate_ids)
        result.merge(await publish_job_change(hub, group.job_id, group.owner_id, payload, timeout))
    logger.info(f"Broadcast bulk {action}: {len(result.delivered)} channel(s) delivered, "
                f"{len(result.failed)} failed")
    return result
