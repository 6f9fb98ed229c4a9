import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

import pandas as pd
from fastapi import Depends, HTTPException, Request, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from resumerank.core.config import settings
from resumerank.core.validators import InputValidator
from resumerank.models.candidate import Candidate, CandidateStatus
from resumerank.models.job import Job, JobStatus
from resumerank.realtime.broadcast import broadcast_bulk_candidate_change, broadcast_candidate_change
from resumerank.realtime.channels import ChannelHub, get_channel_hub
from resumerank.repositories.candidate_repo import CandidateOwnership, CandidateRepository
from resumerank.repositories import user_repo
from resumerank.repositories.job_repo import JobRepository
from resumerank.schemas.candidate_schema import (
    BulkDeleteRequest, BulkMutationResponse, BulkStatusUpdateRequest, BulkTagRequest, CandidateUpdate
)
from resumerank.services.activity_log import log_activity, log_activities
from resumerank.services.analysis_service import has_credits
from resumerank.services.notification_service import NotificationService, get_notification_service
from resumerank.services.storage import ResumeStorage, build_resume_key, get_resume_storage, resume_content_type
from resumerank.services.tags import SUGGESTED_TAGS, apply_tag_action, dedupe_tags, unique_tags

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["Name", "Email", "Phone", "AI Score", "Status", "AI Summary", "Notes", "Tags",
                  "Applied Date", "Last Updated"]


def get_analysis_enqueuer() -> Callable[[str], None]:
    """Queues background analysis for a new candidate."""
    from celery_app import analyze_candidate_task
    return analyze_candidate_task.delay


def _format_status(value: str) -> str:
    return " ".join(word.capitalize() for word in value.split("_"))


def _format_date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else ""


class CandidateService:
    def __init__(self, storage: ResumeStorage, hub: Optional[ChannelHub] = None,
                 notifier: Optional[NotificationService] = None,
                 enqueue_analysis: Optional[Callable[[str], None]] = None):
        self.storage = storage
        self.hub = hub
        self.notifier = notifier
        self.enqueue_analysis = enqueue_analysis

    # --- ownership ---

    async def _owned_rows(self, db: AsyncSession, user, candidate_ids: List[str]) -> List[CandidateOwnership]:
        """Every referenced candidate must sit under one of the caller's jobs."""
        rows = await CandidateRepository.get_ownership(db, candidate_ids)
        foreign = [row.id for row in rows if row.owner_id != user.id]
        if foreign:
            logger.warning(f"User {user.id} tried to modify candidates they do not own: {foreign}")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN,
                                detail="Unauthorized to update some candidates")
        return rows

    async def _owned_job(self, db: AsyncSession, user, job_id: str) -> Job:
        job = await JobRepository(db).get_job_by_id(job_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        if job.user_id != user.id:
            raise HTTPException(status_code=403, detail="Not authorized to access this job")
        return job

    async def _owned_candidate(self, db: AsyncSession, user, candidate_id: str) -> Candidate:
        candidate = await CandidateRepository.get_by_id(db, candidate_id)
        if not candidate:
            raise HTTPException(status_code=404, detail="Candidate not found")
        if candidate.user_id != user.id:
            raise HTTPException(status_code=403, detail="Not authorized to access this candidate")
        return candidate

    # --- bulk mutations ---

    async def bulk_update_status(self, db: AsyncSession, user, data: BulkStatusUpdateRequest,
                                 request: Optional[Request] = None) -> BulkMutationResponse:
        rows = await self._owned_rows(db, user, data.candidate_ids)
        if not rows:
            return BulkMutationResponse(count=0)

        new_status = data.status.value
        ids = [row.id for row in rows]
        await CandidateRepository.set_status(db, ids, new_status)
        await log_activities(db, "BULK_UPDATE_STATUS", user.id, "candidate",
                             [(i, {"new_status": new_status}) for i in ids], request, commit=False)
        await db.commit()
        logger.info(f"Bulk updated {len(ids)} candidate(s) to {new_status} for user {user.id}")

        await broadcast_bulk_candidate_change(rows, "update", hub=self.hub)
        if self.notifier is not None:
            await self.notifier.notify_status_change(user.id, user.email, len(ids), new_status)
        return BulkMutationResponse(count=len(ids))

    async def bulk_tag(self, db: AsyncSession, user, data: BulkTagRequest,
                       request: Optional[Request] = None) -> BulkMutationResponse:
        rows = await self._owned_rows(db, user, data.candidate_ids)
        if not rows:
            return BulkMutationResponse(count=0, failed=0)

        tags = [tag.model_dump() for tag in data.tags]
        failed: List[str] = []
        written: List[CandidateOwnership] = []
        for row in rows:
            new_tags = apply_tag_action(row.tags, data.action, tags)
            # Savepoint per candidate so one bad write leaves the transaction usable
            try:
                async with db.begin_nested():
                    updated = await CandidateRepository.set_tags(db, row.id, new_tags)
            except SQLAlchemyError as e:
                logger.error(f"Tag write failed for candidate {row.id}: {e}")
                failed.append(row.id)
                continue
            if updated:
                written.append(row)
            else:
                failed.append(row.id)
        if failed:
            logger.error(f"Bulk tag {data.action} failed for candidates: {failed}")

        await log_activities(db, "BULK_TAG_UPDATE", user.id, "candidate",
                             [(row.id, {"operation": data.action, "tags": tags}) for row in written],
                             request, commit=False)
        await db.commit()
        logger.info(f"Bulk tag {data.action} on {len(written)}/{len(rows)} candidate(s) for user {user.id}")

        if written:
            await broadcast_bulk_candidate_change(written, "update", hub=self.hub)
        return BulkMutationResponse(count=len(rows), failed=len(failed))

    async def bulk_delete(self, db: AsyncSession, user, data: BulkDeleteRequest,
                          request: Optional[Request] = None) -> BulkMutationResponse:
        rows = await self._owned_rows(db, user, data.candidate_ids)
        if not rows:
            raise HTTPException(status_code=404, detail="No candidates found")

        cleanup = await self.storage.remove_resumes(row.resume_url for row in rows)
        if cleanup.failed:
            logger.warning(f"Could not remove {len(cleanup.failed)} resume file(s); deleting rows anyway")

        ids = [row.id for row in rows]
        await CandidateRepository.delete_many(db, ids)
        await log_activities(db, "BULK_DELETE", user.id, "candidate",
                             [(row.id, {"candidate_name": row.name}) for row in rows], request, commit=False)
        await db.commit()
        logger.info(f"Bulk deleted {len(ids)} candidate(s) for user {user.id}")

        await broadcast_bulk_candidate_change(rows, "delete", hub=self.hub)
        return BulkMutationResponse(count=len(ids))

    # --- tags ---

    async def update_candidate_tags(self, db: AsyncSession, user, candidate_id: str, tags: List[dict],
                                    request: Optional[Request] = None) -> dict:
        candidate = await self._owned_candidate(db, user, candidate_id)
        new_tags = dedupe_tags(tags)
        await CandidateRepository.set_tags(db, candidate.id, new_tags)
        await log_activity(db, "UPDATE_TAGS", user.id, "candidate", candidate.id,
                           {"tags": new_tags}, request, commit=False)
        await db.commit()

        await broadcast_candidate_change(candidate.job_id, user.id, "update", candidate.id, hub=self.hub)
        return {"success": True, "tags": new_tags}

    async def list_tags(self, db: AsyncSession, user) -> dict:
        tags = unique_tags(await CandidateRepository.list_tag_sets_for_user(db, user.id))
        return {"tags": tags, "count": len(tags)}

    def suggested_tags(self) -> dict:
        return {"tags": SUGGESTED_TAGS, "count": len(SUGGESTED_TAGS)}

    # --- single candidates ---

    async def _read_resume(self, resume: UploadFile) -> Tuple[bytes, str]:
        file_name = resume.filename or ""
        content_type = resume_content_type(file_name)
        if content_type is None:
            raise HTTPException(status_code=400, detail="Resume must be a PDF or DOCX file")
        data = await resume.read()
        if not data:
            raise HTTPException(status_code=400, detail="Resume file is empty")
        if len(data) > settings.MAX_RESUME_SIZE_BYTES:
            raise HTTPException(status_code=400, detail="Resume file is too large")
        return data, content_type

    async def _create_with_resume(self, db: AsyncSession, job: Job, name: str, email: str,
                                  phone: Optional[str], notes: Optional[str], resume: UploadFile) -> Candidate:
        name = InputValidator.validate_name(name)
        email = InputValidator.validate_email(email)
        phone = InputValidator.validate_phone(phone)
        data, content_type = await self._read_resume(resume)

        if await CandidateRepository.get_by_job_and_email(db, job.id, email):
            raise HTTPException(status_code=400, detail="You have already applied to this position")

        candidate = await CandidateRepository.create(db, {
            "job_id": job.id,
            "user_id": job.user_id,
            "name": name,
            "email": email,
            "phone": phone,
            "notes": InputValidator.sanitize_string(notes, max_length=5000) if notes else None,
            "status": CandidateStatus.PENDING_REVIEW.value,
            "tags": [],
        })

        key = build_resume_key(job.id, resume.filename)
        try:
            await self.storage.save(key, data, content_type)
        except Exception as e:
            logger.error(f"Resume upload failed for candidate {candidate.id}: {e}")
            await CandidateRepository.delete_many(db, [candidate.id])
            await db.commit()
            raise HTTPException(status_code=500, detail="Failed to upload resume")

        return await CandidateRepository.update_fields(db, candidate, {"resume_url": key})

    def _queue_analysis(self, candidate_id: str) -> None:
        if self.enqueue_analysis is None:
            return
        try:
            self.enqueue_analysis(candidate_id)
            logger.info(f"Queued analysis for candidate {candidate_id}")
        except Exception as e:
            logger.error(f"Failed to queue analysis for candidate {candidate_id}: {e}")

    async def create_candidate(self, db: AsyncSession, user, job_id: str, name: str, email: str,
                               phone: Optional[str], notes: Optional[str], resume: UploadFile,
                               request: Optional[Request] = None) -> Candidate:
        job = await self._owned_job(db, user, job_id)
        if not await has_credits(db, user.id):
            raise HTTPException(status_code=403, detail="AI credit quota exceeded")

        candidate = await self._create_with_resume(db, job, name, email, phone, notes, resume)
        await log_activity(db, "CREATE_CANDIDATE", user.id, "candidate", candidate.id,
                           {"name": candidate.name, "job_id": job.id}, request)

        await broadcast_candidate_change(job.id, user.id, "insert", candidate.id, hub=self.hub)
        self._queue_analysis(candidate.id)
        return candidate

    async def apply(self, db: AsyncSession, job_id: str, name: str, email: str, phone: Optional[str],
                    resume: UploadFile, request: Optional[Request] = None) -> dict:
        """Public application; the job owner is the actor of record."""
        job = await JobRepository(db).get_job_by_id(job_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        if job.status != JobStatus.OPEN.value:
            raise HTTPException(status_code=400, detail="This job is no longer accepting applications")

        candidate = await self._create_with_resume(db, job, name, email, phone, None, resume)
        await log_activity(db, "PUBLIC_APPLICATION", job.user_id, "candidate", candidate.id,
                           {"name": candidate.name, "job_title": job.title}, request)
        logger.info(f"Public application {candidate.id} for job {job.id}")

        await broadcast_candidate_change(job.id, job.user_id, "insert", candidate.id, hub=self.hub)
        if self.notifier is not None:
            owner = await user_repo.get_user_by_id(db, job.user_id)
            if owner:
                await self.notifier.notify_new_candidate(owner.id, owner.email, job.id, job.title, candidate.name)
        self._queue_analysis(candidate.id)
        return {"success": True, "candidateId": candidate.id}

    async def get_candidate(self, db: AsyncSession, user, candidate_id: str) -> Candidate:
        return await self._owned_candidate(db, user, candidate_id)

    async def list_candidates(self, db: AsyncSession, user, job_id: str) -> List[Candidate]:
        await self._owned_job(db, user, job_id)
        return await CandidateRepository.list_by_job(db, job_id)

    async def update_candidate(self, db: AsyncSession, user, candidate_id: str, data: CandidateUpdate,
                               request: Optional[Request] = None) -> Candidate:
        candidate = await self._owned_candidate(db, user, candidate_id)
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes:
            changes["name"] = InputValidator.validate_name(changes["name"])
        if "email" in changes:
            changes["email"] = InputValidator.validate_email(changes["email"])
        if "phone" in changes:
            changes["phone"] = InputValidator.validate_phone(changes["phone"])
        if "notes" in changes and changes["notes"] is not None:
            changes["notes"] = InputValidator.sanitize_string(changes["notes"], max_length=5000)
        if changes.get("status") is not None:
            changes["status"] = changes["status"].value
        changes = {k: v for k, v in changes.items() if v is not None or k in ("phone", "notes")}
        status_changed = "status" in changes and changes["status"] != candidate.status

        candidate = await CandidateRepository.update_fields(db, candidate, changes)
        await log_activity(db, "UPDATE_CANDIDATE", user.id, "candidate", candidate.id,
                           {"fields": sorted(changes)}, request)

        await broadcast_candidate_change(candidate.job_id, user.id, "update", candidate.id, hub=self.hub)
        if status_changed and self.notifier is not None:
            await self.notifier.notify_status_change(user.id, user.email, 1, candidate.status)
        return candidate

    async def delete_candidate(self, db: AsyncSession, user, candidate_id: str,
                               request: Optional[Request] = None) -> dict:
        candidate = await self._owned_candidate(db, user, candidate_id)
        job_id, name = candidate.job_id, candidate.name

        await self.storage.remove_resumes([candidate.resume_url])
        await CandidateRepository.delete_many(db, [candidate.id])
        await log_activity(db, "DELETE_CANDIDATE", user.id, "candidate", candidate_id,
                           {"candidate_name": name}, request, commit=False)
        await db.commit()

        await broadcast_candidate_change(job_id, user.id, "delete", candidate_id, hub=self.hub)
        return {"success": True}

    async def export_csv(self, db: AsyncSession, user, job_id: str) -> Tuple[str, str]:
        job = await self._owned_job(db, user, job_id)
        candidates = await CandidateRepository.list_by_job(db, job_id)
        frame = pd.DataFrame(
            [
                {
                    "Name": c.name,
                    "Email": c.email,
                    "Phone": c.phone or "N/A",
                    "AI Score": c.ai_score if c.ai_score is not None else "Not Scored",
                    "Status": _format_status(c.status),
                    "AI Summary": c.ai_summary or "N/A",
                    "Notes": c.notes or "N/A",
                    "Tags": ", ".join(tag["name"] for tag in (c.tags or [])),
                    "Applied Date": _format_date(c.created_at),
                    "Last Updated": _format_date(c.updated_at),
                }
                for c in candidates
            ],
            columns=EXPORT_COLUMNS,
        )
        slug = "".join(ch if ch.isalnum() else "_" for ch in job.title).lower()
        filename = f"candidates_{slug}_{datetime.now(timezone.utc).date().isoformat()}.csv"
        return filename, frame.to_csv(index=False)


def get_candidate_service(
    storage: ResumeStorage = Depends(get_resume_storage),
    hub: ChannelHub = Depends(get_channel_hub),
    notifier: NotificationService = Depends(get_notification_service),
    enqueue_analysis: Callable[[str], None] = Depends(get_analysis_enqueuer),
) -> CandidateService:
    return CandidateService(storage, hub, notifier, enqueue_analysis)
