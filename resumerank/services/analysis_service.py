"""
Resume analysis workflows: single analysis (server-to-server and owner
triggered) and owner-requested re-analysis of up to a batch of candidates.
"""
import logging
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from resumerank.core.config import settings
from resumerank.core.errors import AnalysisError
from resumerank.models.candidate import CandidateStatus
from resumerank.realtime.broadcast import broadcast_candidate_change
from resumerank.realtime.channels import ChannelHub
from resumerank.repositories import user_repo
from resumerank.repositories.candidate_repo import CandidateRepository, CandidateWithJob
from resumerank.repositories.quota_repo import QuotaRepository
from resumerank.schemas.analysis_schema import ReanalyzeItem, ReanalyzeResponse, ReanalyzeSummary
from resumerank.services.activity_log import log_activity
from resumerank.services.ai_screening_service import ResumeAnalyzer
from resumerank.services.notification_service import NotificationService
from resumerank.services.storage import ResumeStorage

logger = logging.getLogger(__name__)

ANALYSIS_COMPLETED = "AI_ANALYSIS_COMPLETED"
REANALYSIS_COMPLETED = "AI_REANALYSIS_COMPLETED"


async def has_credits(db: AsyncSession, user_id: str) -> bool:
    quota = await QuotaRepository.get_or_create(db, user_id)
    return quota.used_credits < quota.ai_credits


async def ensure_credits(db: AsyncSession, user_id: str) -> None:
    if not await has_credits(db, user_id):
        raise HTTPException(status_code=403, detail="AI credit quota exceeded")


async def _download(storage: ResumeStorage, row: CandidateWithJob) -> bytes:
    try:
        return await storage.read(row.resume_url)
    except Exception as e:
        logger.error(f"Failed to download resume {row.resume_url} for {row.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to download resume")


async def _store_result(db: AsyncSession, row: CandidateWithJob, analysis: dict, action: str, metadata: dict,
                        hub: Optional[ChannelHub], notifier: Optional[NotificationService]) -> None:
    new_status = CandidateStatus.REVIEWING.value if row.status == CandidateStatus.PENDING_REVIEW.value else None
    await CandidateRepository.save_analysis(db, row.id, analysis, status=new_status)
    await QuotaRepository.increment_used(db, row.owner_id)
    await log_activity(db, action, row.owner_id, "candidate", row.id, metadata, commit=False)
    await db.commit()

    await broadcast_candidate_change(row.job_id, row.owner_id, "update", row.id, hub=hub)

    if notifier is not None:
        owner = await user_repo.get_user_by_id(db, row.owner_id)
        if owner:
            await notifier.notify_analysis_completed(owner.id, owner.email, row.id, row.name, analysis["score"])


async def analyze_candidate(db: AsyncSession, candidate_id: str, storage: ResumeStorage, analyzer: ResumeAnalyzer,
                            hub: Optional[ChannelHub] = None, notifier: Optional[NotificationService] = None,
                            owner_id: Optional[str] = None) -> dict:
    """
    Analyze one candidate. With ``owner_id`` the caller must own the candidate.
    """
    rows = await CandidateRepository.get_for_analysis(db, [candidate_id])
    if owner_id is not None and (not rows or rows[0].owner_id != owner_id):
        raise HTTPException(status_code=403, detail="Candidate not found or unauthorized")
    if not rows:
        raise HTTPException(status_code=404, detail="Candidate not found")
    row = rows[0]

    if row.ai_score is not None:
        return {"success": True, "message": "Already analyzed", "score": row.ai_score}
    if not row.resume_url:
        raise HTTPException(status_code=400, detail="Resume URL not found")
    if not row.job_brief:
        raise HTTPException(status_code=400, detail="Job description not found")

    await ensure_credits(db, row.owner_id)
    data = await _download(storage, row)
    try:
        analysis = await analyzer.analyze_file(data, row.resume_url, row.job_brief)
    except AnalysisError as e:
        logger.error(f"Analysis failed for {row.id} (temporary={e.is_temporary}): {e.message}")
        raise

    await _store_result(db, row, analysis, ANALYSIS_COMPLETED, {"score": analysis["score"], "analysis": analysis},
                        hub, notifier)
    logger.info(f"Analysis completed for {row.id}: score {analysis['score']}")
    return {"success": True, "score": analysis["score"], "summary": analysis["summary"], "analysis": analysis}


async def reanalyze_candidates(db: AsyncSession, user_id: str, candidate_ids: List[str], storage: ResumeStorage,
                               analyzer: ResumeAnalyzer, limiter, hub: Optional[ChannelHub] = None,
                               notifier: Optional[NotificationService] = None) -> ReanalyzeResponse:
    if len(candidate_ids) > settings.MAX_REANALYZE_BATCH:
        raise HTTPException(
            status_code=400,
            detail=f"Maximum {settings.MAX_REANALYZE_BATCH} candidates can be re-analyzed at once"
        )

    rows = await CandidateRepository.get_for_analysis(db, candidate_ids)
    if any(row.owner_id != user_id for row in rows):
        raise HTTPException(status_code=403, detail="Unauthorized: Some candidates do not belong to you")

    results: List[ReanalyzeItem] = []
    for row in rows:
        if not row.resume_url:
            results.append(ReanalyzeItem(candidateId=row.id, success=False, error="No resume file found"))
            continue

        rate = await limiter.check("ai", user_id)
        if not rate.success:
            results.append(ReanalyzeItem(
                candidateId=row.id, success=False,
                error="Rate limit exceeded. Please wait and try again.", isTemporary=True))
            continue

        if not row.job_brief:
            results.append(ReanalyzeItem(candidateId=row.id, success=False, error="Job description not found"))
            continue

        if not await has_credits(db, user_id):
            results.append(ReanalyzeItem(candidateId=row.id, success=False, error="AI credit quota exceeded"))
            continue

        try:
            data = await _download(storage, row)
            analysis = await analyzer.analyze_file(data, row.resume_url, row.job_brief)
            await _store_result(db, row, analysis, REANALYSIS_COMPLETED,
                                {"score": analysis["score"], "reanalysis": True}, hub, notifier)
        except HTTPException as e:
            results.append(ReanalyzeItem(candidateId=row.id, success=False, error=e.detail))
            continue
        except AnalysisError as e:
            logger.error(f"Re-analysis failed for {row.id} (temporary={e.is_temporary}): {e.message}")
            results.append(ReanalyzeItem(
                candidateId=row.id, success=False,
                error="AI service temporarily overloaded" if e.is_temporary else e.message,
                isTemporary=e.is_temporary))
            continue
        except Exception as e:
            await db.rollback()
            logger.error(f"Re-analysis error for {row.id}: {e}")
            results.append(ReanalyzeItem(candidateId=row.id, success=False, error="Internal error during analysis"))
            continue

        results.append(ReanalyzeItem(
            candidateId=row.id, success=True, score=analysis["score"], summary=analysis["summary"]))

    successful = sum(1 for r in results if r.success)
    return ReanalyzeResponse(
        summary=ReanalyzeSummary(
            total=len(candidate_ids),
            successful=successful,
            failed=len(results) - successful,
            temporary=sum(1 for r in results if r.isTemporary),
        ),
        results=results,
    )
