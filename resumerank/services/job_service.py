import logging
from typing import List, Optional

from fastapi import HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from resumerank.core.validators import InputValidator
from resumerank.models.job import Job
from resumerank.repositories.candidate_repo import CandidateRepository
from resumerank.repositories.job_repo import JobRepository
from resumerank.schemas.job_schema import JobCreate, JobResponse, JobUpdate
from resumerank.services.activity_log import log_activity
from resumerank.services.storage import ResumeStorage

logger = logging.getLogger(__name__)

TEXT_LIMITS = {
    "title": 200,
    "description": 10000,
    "requirements": 10000,
    "location": 200,
    "salary_range": 100,
}


def _clean(fields: dict) -> dict:
    cleaned = {}
    for key, value in fields.items():
        if key in TEXT_LIMITS and isinstance(value, str):
            value = InputValidator.sanitize_string(value, max_length=TEXT_LIMITS[key]) or None
        elif hasattr(value, "value"):
            value = value.value
        cleaned[key] = value
    return cleaned


def to_response(job: Job, candidate_count: Optional[int] = None) -> JobResponse:
    response = JobResponse.model_validate(job)
    response.candidate_count = candidate_count
    return response


class JobService:
    async def create_job(self, db: AsyncSession, user, data: JobCreate, request: Optional[Request] = None) -> JobResponse:
        fields = _clean(data.model_dump())
        if not fields.get("title") or len(fields["title"]) < 3:
            raise HTTPException(status_code=400, detail="Title must be at least 3 characters long")
        if not fields.get("description") or len(fields["description"]) < 10:
            raise HTTPException(status_code=400, detail="Description must be at least 10 characters long")

        job = await JobRepository(db).create_job(user.id, fields)
        await log_activity(db, "CREATE_JOB", user.id, "job", job.id, {"title": job.title}, request)
        logger.info(f"Job {job.id} created by {user.id}")
        return to_response(job, 0)

    async def list_jobs(self, db: AsyncSession, user) -> List[JobResponse]:
        repo = JobRepository(db)
        jobs = await repo.get_jobs_by_owner(user.id)
        counts = await repo.get_candidate_counts([job.id for job in jobs])
        return [to_response(job, counts.get(job.id, 0)) for job in jobs]

    async def get_owned_job(self, db: AsyncSession, user, job_id: str) -> Job:
        job = await JobRepository(db).get_job_by_id(job_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        if job.user_id != user.id:
            raise HTTPException(status_code=403, detail="Not authorized to access this job")
        return job

    async def get_job(self, db: AsyncSession, user, job_id: str) -> JobResponse:
        job = await self.get_owned_job(db, user, job_id)
        counts = await JobRepository(db).get_candidate_counts([job.id])
        return to_response(job, counts.get(job.id, 0))

    async def update_job(self, db: AsyncSession, user, job_id: str, data: JobUpdate,
                         request: Optional[Request] = None) -> JobResponse:
        job = await self.get_owned_job(db, user, job_id)
        changes = _clean(data.model_dump(exclude_unset=True))
        for required in ("title", "description", "status"):
            if required in changes and changes[required] is None:
                raise HTTPException(status_code=400, detail=f"{required} cannot be empty")

        job = await JobRepository(db).update_job(job, changes)
        await log_activity(db, "UPDATE_JOB", user.id, "job", job.id, {"fields": sorted(changes)}, request)
        return await self.get_job(db, user, job.id)

    async def delete_job(self, db: AsyncSession, user, job_id: str, storage: ResumeStorage,
                         request: Optional[Request] = None) -> dict:
        job = await self.get_owned_job(db, user, job_id)
        await remove_job(db, job, storage)
        await log_activity(db, "DELETE_JOB", user.id, "job", job_id, {"title": job.title}, request)
        return {"success": True}


async def remove_job(db: AsyncSession, job: Job, storage: ResumeStorage) -> None:
    """Resume files first (best-effort), then the job and its candidates."""
    urls = await CandidateRepository.list_resume_urls(db, job_id=job.id)
    cleanup = await storage.remove_resumes(urls)
    if cleanup.failed:
        logger.warning(f"Could not remove {len(cleanup.failed)} resume file(s) of job {job.id}")
    await JobRepository(db).delete_job(job)


job_service = JobService()


def get_job_service() -> JobService:
    return job_service
