from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from resumerank.db.database import get_db
from resumerank.schemas.job_schema import JobCreate, JobResponse, JobUpdate
from resumerank.services.auth.auth_service import get_current_user
from resumerank.services.job_service import JobService, get_job_service
from resumerank.services.rate_limit import rate_limit
from resumerank.services.storage import ResumeStorage, get_resume_storage

router = APIRouter()


@router.post("/", response_model=JobResponse, status_code=201, dependencies=[Depends(rate_limit("api"))])
async def create_job(
    data: JobCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    service: JobService = Depends(get_job_service)
):
    return await service.create_job(db, current_user, data, request)


@router.get("/", response_model=List[JobResponse])
async def list_jobs(
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    service: JobService = Depends(get_job_service)
):
    return await service.list_jobs(db, current_user)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: str,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    service: JobService = Depends(get_job_service)
):
    return await service.get_job(db, current_user, job_id)


@router.patch("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: str,
    data: JobUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    service: JobService = Depends(get_job_service)
):
    return await service.update_job(db, current_user, job_id, data, request)


@router.delete("/{job_id}")
async def delete_job(
    job_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    service: JobService = Depends(get_job_service),
    storage: ResumeStorage = Depends(get_resume_storage)
):
    return await service.delete_job(db, current_user, job_id, storage, request)
