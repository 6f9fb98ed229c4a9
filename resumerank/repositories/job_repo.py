from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from resumerank.models.candidate import Candidate
from resumerank.models.job import Job


class JobRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_job(self, user_id: str, data: dict) -> Job:
        job = Job(user_id=user_id, **data)
        self.db.add(job)
        await self.db.commit()
        await self.db.refresh(job)
        return job

    async def get_job_by_id(self, job_id: str) -> Optional[Job]:
        result = await self.db.execute(select(Job).where(Job.id == job_id))
        return result.scalar_one_or_none()

    async def get_jobs_by_owner(self, user_id: str) -> List[Job]:
        result = await self.db.execute(
            select(Job).where(Job.user_id == user_id).order_by(Job.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_all_jobs(self, skip: int = 0, limit: int = 100) -> List[Job]:
        result = await self.db.execute(
            select(Job).order_by(Job.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all())

    async def get_candidate_counts(self, job_ids: List[str]) -> Dict[str, int]:
        if not job_ids:
            return {}
        result = await self.db.execute(
            select(Candidate.job_id, func.count())
            .where(Candidate.job_id.in_(job_ids))
            .group_by(Candidate.job_id)
        )
        return {job_id: count for job_id, count in result.all()}

    async def count_by_status(self, user_id: Optional[str] = None) -> Dict[str, int]:
        stmt = select(Job.status, func.count()).group_by(Job.status)
        if user_id:
            stmt = stmt.where(Job.user_id == user_id)
        result = await self.db.execute(stmt)
        return {status: count for status, count in result.all()}

    async def update_job(self, job: Job, update_data: dict) -> Job:
        for k, v in update_data.items():
            setattr(job, k, v)
        job.updated_at = datetime.now(timezone.utc)
        await self.db.commit()
        await self.db.refresh(job)
        return job

    async def delete_job(self, job: Job) -> None:
        # Candidates go first so the delete does not depend on database-level cascades
        await self.db.execute(
            delete(Candidate)
            .where(Candidate.job_id == job.id)
            .execution_options(synchronize_session=False)
        )
        await self.db.delete(job)
        await self.db.commit()
