from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from resumerank.models.candidate import Candidate
from resumerank.models.job import Job


@dataclass
class CandidateOwnership:
    """A candidate row joined with the owner of its parent job."""
    id: str
    job_id: str
    owner_id: str
    name: str
    resume_url: Optional[str] = None
    tags: List[dict] = field(default_factory=list)


@dataclass
class CandidateWithJob:
    """A candidate with the job text the analyzer scores it against."""
    id: str
    job_id: str
    owner_id: str
    name: str
    status: str
    resume_url: Optional[str]
    ai_score: Optional[int]
    job_brief: Optional[str]


class CandidateRepository:
    @staticmethod
    async def get_ownership(db: AsyncSession, candidate_ids: Sequence[str]) -> List[CandidateOwnership]:
        result = await db.execute(
            select(
                Candidate.id,
                Candidate.job_id,
                Job.user_id,
                Candidate.name,
                Candidate.resume_url,
                Candidate.tags,
            )
            .join(Job, Candidate.job_id == Job.id)
            .where(Candidate.id.in_(candidate_ids))
        )
        return [
            CandidateOwnership(
                id=row[0],
                job_id=row[1],
                owner_id=row[2],
                name=row[3],
                resume_url=row[4],
                tags=list(row[5] or []),
            )
            for row in result.all()
        ]

    @staticmethod
    async def get_by_id(db: AsyncSession, candidate_id: str) -> Optional[Candidate]:
        result = await db.execute(
            select(Candidate)
            .where(Candidate.id == candidate_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_many_with_job(db: AsyncSession, candidate_ids: Sequence[str]) -> List[Candidate]:
        result = await db.execute(
            select(Candidate)
            .options(selectinload(Candidate.job))
            .where(Candidate.id.in_(candidate_ids))
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_by_job_and_email(db: AsyncSession, job_id: str, email: str) -> Optional[Candidate]:
        result = await db.execute(
            select(Candidate).where(
                Candidate.job_id == job_id,
                func.lower(Candidate.email) == email.lower()
            )
        )
        return result.scalars().first()

    @staticmethod
    async def list_by_job(db: AsyncSession, job_id: str) -> List[Candidate]:
        result = await db.execute(
            select(Candidate)
            .where(Candidate.job_id == job_id)
            .order_by(Candidate.created_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def create(db: AsyncSession, data: dict) -> Candidate:
        candidate = Candidate(**data)
        db.add(candidate)
        await db.commit()
        await db.refresh(candidate)
        return candidate

    @staticmethod
    async def update_fields(db: AsyncSession, candidate: Candidate, update_data: dict) -> Candidate:
        for k, v in update_data.items():
            setattr(candidate, k, v)
        candidate.updated_at = datetime.now(timezone.utc)
        await db.commit()
        await db.refresh(candidate)
        return candidate

    @staticmethod
    async def set_status(db: AsyncSession, candidate_ids: Sequence[str], status: str) -> int:
        """Single UPDATE for the whole batch; caller commits."""
        result = await db.execute(
            update(Candidate)
            .where(Candidate.id.in_(candidate_ids))
            .values(status=status, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    async def set_tags(db: AsyncSession, candidate_id: str, tags: List[dict]) -> int:
        """Caller commits."""
        result = await db.execute(
            update(Candidate)
            .where(Candidate.id == candidate_id)
            .values(tags=tags, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    async def delete_many(db: AsyncSession, candidate_ids: Sequence[str]) -> int:
        """Caller commits."""
        result = await db.execute(
            delete(Candidate)
            .where(Candidate.id.in_(candidate_ids))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    async def list_tag_sets_for_user(db: AsyncSession, user_id: str) -> List[List[dict]]:
        result = await db.execute(
            select(Candidate.tags)
            .where(Candidate.user_id == user_id)
            .order_by(Candidate.created_at)
        )
        return [list(tags) for (tags,) in result.all() if tags]

    @staticmethod
    async def list_resume_urls(db: AsyncSession, job_id: Optional[str] = None, user_id: Optional[str] = None) -> List[str]:
        stmt = select(Candidate.resume_url).where(Candidate.resume_url.is_not(None))
        if job_id:
            stmt = stmt.where(Candidate.job_id == job_id)
        if user_id:
            stmt = stmt.where(Candidate.user_id == user_id)
        result = await db.execute(stmt)
        return [url for (url,) in result.all()]

    @staticmethod
    async def count_by_status(db: AsyncSession, user_id: Optional[str] = None) -> Dict[str, int]:
        stmt = select(Candidate.status, func.count()).group_by(Candidate.status)
        if user_id:
            stmt = stmt.where(Candidate.user_id == user_id)
        result = await db.execute(stmt)
        return {status: count for status, count in result.all()}

    @staticmethod
    async def get_for_analysis(db: AsyncSession, candidate_ids: Sequence[str]) -> List[CandidateWithJob]:
        """Rows come back in the order of ``candidate_ids``."""
        candidates = await CandidateRepository.get_many_with_job(db, candidate_ids)
        by_id = {
            c.id: CandidateWithJob(
                id=c.id,
                job_id=c.job_id,
                owner_id=c.job.user_id if c.job else c.user_id,
                name=c.name,
                status=c.status,
                resume_url=c.resume_url,
                ai_score=c.ai_score,
                job_brief=c.job.analysis_brief() if c.job and c.job.description else None,
            )
            for c in candidates
        }
        return [by_id[i] for i in candidate_ids if i in by_id]

    @staticmethod
    async def save_analysis(db: AsyncSession, candidate_id: str, analysis: dict, status: Optional[str] = None) -> int:
        """Caller commits."""
        values = {
            "ai_score": analysis["score"],
            "ai_summary": analysis["summary"],
            "ai_analysis": analysis,
            "analyzed_at": datetime.now(timezone.utc),
            "updated_at": datetime.now(timezone.utc),
        }
        if status:
            values["status"] = status
        result = await db.execute(
            update(Candidate)
            .where(Candidate.id == candidate_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
