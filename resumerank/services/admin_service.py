"""
Admin operations. Every mutation is audited under the acting admin.
"""
import logging
from typing import List, Optional

from fastapi import HTTPException, Request
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from resumerank.models.activity_log import ActivityLog
from resumerank.models.candidate import Candidate
from resumerank.models.job import Job
from resumerank.models.user import User
from resumerank.repositories import user_repo
from resumerank.repositories.candidate_repo import CandidateRepository
from resumerank.repositories.job_repo import JobRepository
from resumerank.repositories.quota_repo import QuotaRepository
from resumerank.services.activity_log import list_activity, log_activity
from resumerank.services.job_service import remove_job
from resumerank.services.storage import ResumeStorage

logger = logging.getLogger(__name__)


async def _get_user(db: AsyncSession, user_id: str) -> User:
    user = await user_repo.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def _get_job(db: AsyncSession, job_id: str) -> Job:
    job = await JobRepository(db).get_job_by_id(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


async def delete_user(db: AsyncSession, admin, user_id: str, storage: ResumeStorage,
                      request: Optional[Request] = None) -> dict:
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")
    user = await _get_user(db, user_id)

    urls = await CandidateRepository.list_resume_urls(db, user_id=user_id)
    cleanup = await storage.remove_resumes(urls)
    if cleanup.failed:
        logger.warning(f"Could not remove {len(cleanup.failed)} resume file(s) of user {user_id}")

    await user_repo.delete_user(db, user)
    await log_activity(db, "ADMIN_DELETE_USER", admin.id, "user", user_id, {"email": user.email}, request)
    logger.info(f"Admin {admin.id} deleted user {user_id}")
    return {"success": True}


async def toggle_admin(db: AsyncSession, admin, user_id: str, is_admin: bool,
                       request: Optional[Request] = None) -> dict:
    if user_id == admin.id and not is_admin:
        raise HTTPException(status_code=400, detail="Cannot revoke your own admin privileges")
    user = await _get_user(db, user_id)
    user.is_admin = is_admin
    await db.commit()

    action = "ADMIN_GRANT_ADMIN" if is_admin else "ADMIN_REVOKE_ADMIN"
    await log_activity(db, action, admin.id, "user", user_id, {"is_admin": is_admin}, request)
    return {"success": True}


async def update_quota(db: AsyncSession, admin, user_id: str, ai_credits: int,
                       request: Optional[Request] = None) -> dict:
    await _get_user(db, user_id)
    await QuotaRepository.set_credits(db, user_id, ai_credits)
    await log_activity(db, "ADMIN_UPDATE_QUOTA", admin.id, "user", user_id, {"ai_credits": ai_credits}, request)
    return {"success": True}


async def reset_credits(db: AsyncSession, admin, user_id: str, request: Optional[Request] = None) -> dict:
    await _get_user(db, user_id)
    if not await QuotaRepository.reset_used(db, user_id):
        await QuotaRepository.get_or_create(db, user_id)
    await log_activity(db, "ADMIN_RESET_CREDITS", admin.id, "user", user_id, {"used_credits": 0}, request)
    return {"success": True}


async def update_job_status(db: AsyncSession, admin, job_id: str, status: str,
                            request: Optional[Request] = None) -> dict:
    job = await _get_job(db, job_id)
    old_status = job.status
    await JobRepository(db).update_job(job, {"status": status})
    await log_activity(db, "ADMIN_UPDATE_JOB_STATUS", admin.id, "job", job_id, {
        "title": job.title,
        "owner_id": job.user_id,
        "old_status": old_status,
        "new_status": status,
    }, request)
    return {"success": True}


async def delete_job(db: AsyncSession, admin, job_id: str, storage: ResumeStorage,
                     request: Optional[Request] = None) -> dict:
    job = await _get_job(db, job_id)
    title, owner_id = job.title, job.user_id
    await remove_job(db, job, storage)
    await log_activity(db, "ADMIN_DELETE_JOB", admin.id, "job", job_id,
                       {"title": title, "owner_id": owner_id}, request)
    return {"success": True}


async def list_users(db: AsyncSession, skip: int = 0, limit: int = 100) -> List[dict]:
    users = await user_repo.list_users(db, skip, limit)
    result = []
    for user in users:
        quota = await QuotaRepository.get(db, user.id)
        result.append({
            "id": user.id,
            "email": user.email,
            "full_name": user.full_name,
            "company_name": user.company_name,
            "is_admin": user.is_admin,
            "created_at": user.created_at,
            "ai_credits": quota.ai_credits if quota else 0,
            "used_credits": quota.used_credits if quota else 0,
        })
    return result


async def get_activity(db: AsyncSession, skip: int = 0, limit: int = 50,
                       user_id: Optional[str] = None, action: Optional[str] = None) -> List[ActivityLog]:
    return await list_activity(db, skip, limit, user_id=user_id, action=action)


async def get_stats(db: AsyncSession) -> dict:
    async def count(stmt) -> int:
        return (await db.execute(stmt)).scalar() or 0

    return {
        "total_users": await count(select(func.count()).select_from(User)),
        "total_admins": await count(select(func.count()).select_from(User).where(User.is_admin.is_(True))),
        "total_jobs": await count(select(func.count()).select_from(Job)),
        "total_candidates": await count(select(func.count()).select_from(Candidate)),
        "analyzed_candidates": await count(
            select(func.count()).select_from(Candidate).where(Candidate.ai_score.is_not(None))
        ),
        "total_activity": await count(select(func.count()).select_from(ActivityLog)),
        "jobs_by_status": await JobRepository(db).count_by_status(),
        "candidates_by_status": await CandidateRepository.count_by_status(db),
    }
