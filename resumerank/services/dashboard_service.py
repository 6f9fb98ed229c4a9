from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from resumerank.models.candidate import Candidate, CandidateStatus
from resumerank.models.job import JobStatus
from resumerank.repositories.candidate_repo import CandidateRepository
from resumerank.repositories.job_repo import JobRepository
from resumerank.repositories.quota_repo import QuotaRepository


async def get_dashboard_summary(db: AsyncSession, user_id: str):
    job_counts = await JobRepository(db).count_by_status(user_id)
    candidate_counts = await CandidateRepository.count_by_status(db, user_id)

    jobs_by_status = {s.value: job_counts.get(s.value, 0) for s in JobStatus}
    candidates_by_status = {s.value: candidate_counts.get(s.value, 0) for s in CandidateStatus}

    avg_query = select(func.avg(Candidate.ai_score)).where(
        Candidate.user_id == user_id, Candidate.ai_score.is_not(None)
    )
    avg_score = (await db.execute(avg_query)).scalar()

    recent_query = (
        select(Candidate)
        .where(Candidate.user_id == user_id)
        .order_by(Candidate.created_at.desc())
        .limit(5)
    )
    recent = (await db.execute(recent_query)).scalars().all()
    recent_candidates = [
        {
            "id": c.id,
            "job_id": c.job_id,
            "name": c.name,
            "status": c.status,
            "ai_score": c.ai_score,
            "date": c.created_at.date().isoformat() if c.created_at else None
        }
        for c in recent
    ]

    quota = await QuotaRepository.get_or_create(db, user_id)

    return {
        "total_jobs": sum(jobs_by_status.values()),
        "open_jobs": jobs_by_status[JobStatus.OPEN.value],
        "total_candidates": sum(candidates_by_status.values()),
        "jobs_by_status": jobs_by_status,
        "candidates_by_status": candidates_by_status,
        "candidate_funnel": [
            {"label": s.value.replace("_", " ").title(), "count": candidates_by_status[s.value]}
            for s in CandidateStatus
        ],
        "average_ai_score": round(float(avg_score), 1) if avg_score is not None else None,
        "credits": {
            "used": quota.used_credits,
            "total": quota.ai_credits,
            "remaining": quota.remaining
        },
        "recent_candidates": recent_candidates
    }
