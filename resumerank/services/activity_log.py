import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from resumerank.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


def client_ip(request: Optional[Request]) -> Optional[str]:
    if request is None:
        return None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def _entry(action: str, user_id: Optional[str], resource_type: Optional[str], resource_id: Optional[str],
           metadata: Optional[Dict[str, Any]], request: Optional[Request]) -> ActivityLog:
    return ActivityLog(
        created_at=datetime.now(timezone.utc),
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        metadata_=metadata,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent") if request is not None else None,
    )


async def log_activity(db: AsyncSession, action: str, user_id: Optional[str], resource_type: Optional[str] = None,
                       resource_id: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None,
                       request: Optional[Request] = None, commit: bool = True) -> None:
    """
    Append one audit row. With commit=False the row joins the caller's transaction.
    """
    logger.info(f"Activity {action} by {user_id} on {resource_type}:{resource_id}")
    db.add(_entry(action, user_id, resource_type, resource_id, metadata, request))
    if commit:
        await db.commit()


async def log_activities(db: AsyncSession, action: str, user_id: Optional[str], resource_type: str,
                         entries: Iterable[Tuple[str, Optional[Dict[str, Any]]]],
                         request: Optional[Request] = None, commit: bool = True) -> int:
    """
    Append one audit row per (resource_id, metadata) pair.
    """
    rows = [_entry(action, user_id, resource_type, resource_id, metadata, request)
            for resource_id, metadata in entries]
    db.add_all(rows)
    logger.info(f"Activity {action} by {user_id} on {len(rows)} {resource_type} record(s)")
    if commit:
        await db.commit()
    return len(rows)


async def list_activity(db: AsyncSession, skip: int = 0, limit: int = 50,
                        user_id: Optional[str] = None, action: Optional[str] = None) -> List[ActivityLog]:
    stmt = select(ActivityLog).order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
    if user_id:
        stmt = stmt.where(ActivityLog.user_id == user_id)
    if action:
        stmt = stmt.where(ActivityLog.action == action)
    result = await db.execute(stmt.offset(skip).limit(limit))
    return list(result.scalars().all())
