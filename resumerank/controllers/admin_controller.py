from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from resumerank.db.database import get_db
from resumerank.schemas.activity_log import ActivityLogSchema
from resumerank.schemas.admin_schema import (
    JobStatusRequest, JobTargetRequest, ToggleAdminRequest, UpdateQuotaRequest, UserTargetRequest
)
from resumerank.services import admin_service
from resumerank.services.auth.auth_service import admin_required
from resumerank.services.storage import ResumeStorage, get_resume_storage

router = APIRouter()


@router.post("/users/delete")
async def delete_user(
    data: UserTargetRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin=Depends(admin_required),
    storage: ResumeStorage = Depends(get_resume_storage)
):
    return await admin_service.delete_user(db, admin, data.user_id, storage, request)


@router.post("/users/toggle-admin")
async def toggle_admin(
    data: ToggleAdminRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin=Depends(admin_required)
):
    return await admin_service.toggle_admin(db, admin, data.user_id, data.is_admin, request)


@router.post("/users/update-quota")
async def update_quota(
    data: UpdateQuotaRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin=Depends(admin_required)
):
    return await admin_service.update_quota(db, admin, data.user_id, data.ai_credits, request)


@router.post("/users/reset-credits")
async def reset_credits(
    data: UserTargetRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin=Depends(admin_required)
):
    return await admin_service.reset_credits(db, admin, data.user_id, request)


@router.post("/jobs/update-status")
async def update_job_status(
    data: JobStatusRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin=Depends(admin_required)
):
    return await admin_service.update_job_status(db, admin, data.job_id, data.status.value, request)


@router.post("/jobs/delete")
async def delete_job(
    data: JobTargetRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin=Depends(admin_required),
    storage: ResumeStorage = Depends(get_resume_storage)
):
    return await admin_service.delete_job(db, admin, data.job_id, storage, request)


@router.get("/users")
async def list_users(
    skip: int = 0,
    limit: int = 100,
    db: AsyncSession = Depends(get_db),
    admin=Depends(admin_required)
):
    return await admin_service.list_users(db, skip, limit)


@router.get("/activity", response_model=List[ActivityLogSchema])
async def get_activity(
    skip: int = 0,
    limit: int = 50,
    user_id: Optional[str] = None,
    action: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    admin=Depends(admin_required)
):
    return await admin_service.get_activity(db, skip, limit, user_id=user_id, action=action)


@router.get("/stats")
async def get_stats(
    db: AsyncSession = Depends(get_db),
    admin=Depends(admin_required)
):
    return await admin_service.get_stats(db)
