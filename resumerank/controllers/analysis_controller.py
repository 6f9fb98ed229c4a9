from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from resumerank.db.database import get_db
from resumerank.realtime.channels import ChannelHub, get_channel_hub
from resumerank.schemas.analysis_schema import AnalyzeRequest, ReanalyzeRequest, ReanalyzeResponse
from resumerank.services.ai_screening_service import ResumeAnalyzer, get_resume_analyzer
from resumerank.services.analysis_service import analyze_candidate, reanalyze_candidates
from resumerank.services.auth.auth_service import get_current_user, service_token_required
from resumerank.services.notification_service import NotificationService, get_notification_service
from resumerank.services.rate_limit import enforce_rate_limit, get_rate_limiter
from resumerank.services.storage import ResumeStorage, get_resume_storage

router = APIRouter()


@router.post("/analyze", dependencies=[Depends(service_token_required)])
async def analyze(
    data: AnalyzeRequest,
    db: AsyncSession = Depends(get_db),
    storage: ResumeStorage = Depends(get_resume_storage),
    analyzer: ResumeAnalyzer = Depends(get_resume_analyzer),
    hub: ChannelHub = Depends(get_channel_hub),
    notifier: NotificationService = Depends(get_notification_service)
):
    """Server-to-server analysis, called by the background worker."""
    return await analyze_candidate(db, data.candidate_id, storage, analyzer, hub, notifier)


@router.post("/trigger")
async def trigger(
    data: AnalyzeRequest,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    storage: ResumeStorage = Depends(get_resume_storage),
    analyzer: ResumeAnalyzer = Depends(get_resume_analyzer),
    hub: ChannelHub = Depends(get_channel_hub),
    notifier: NotificationService = Depends(get_notification_service),
    limiter=Depends(get_rate_limiter)
):
    await enforce_rate_limit("ai", current_user.id, limiter)
    return await analyze_candidate(db, data.candidate_id, storage, analyzer, hub, notifier,
                                   owner_id=current_user.id)


@router.post("/re-analyze", response_model=ReanalyzeResponse, response_model_exclude_none=True)
async def reanalyze(
    data: ReanalyzeRequest,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    storage: ResumeStorage = Depends(get_resume_storage),
    analyzer: ResumeAnalyzer = Depends(get_resume_analyzer),
    hub: ChannelHub = Depends(get_channel_hub),
    notifier: NotificationService = Depends(get_notification_service),
    limiter=Depends(get_rate_limiter)
):
    return await reanalyze_candidates(db, current_user.id, data.candidate_ids, storage, analyzer, limiter,
                                      hub, notifier)


@router.get("/test-connection")
async def test_connection(
    current_user=Depends(get_current_user),
    analyzer: ResumeAnalyzer = Depends(get_resume_analyzer)
):
    return await analyzer.test_connection()
