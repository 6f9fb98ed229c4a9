from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from resumerank.db.database import get_db
from resumerank.schemas.candidate_schema import (
    BulkDeleteRequest, BulkMutationResponse, BulkStatusUpdateRequest, BulkTagRequest,
    CandidateResponse, CandidateTagsUpdate, CandidateUpdate, TagListResponse
)
from resumerank.services.auth.auth_service import get_current_user
from resumerank.services.candidate_service import CandidateService, get_candidate_service
from resumerank.services.rate_limit import rate_limit

router = APIRouter()


# --- Bulk operations ---

@router.post("/candidates/bulk-update", response_model=BulkMutationResponse, response_model_exclude_none=True,
             dependencies=[Depends(rate_limit("api"))])
async def bulk_update_status(
    data: BulkStatusUpdateRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    service: CandidateService = Depends(get_candidate_service)
):
    return await service.bulk_update_status(db, current_user, data, request)


@router.post("/candidates/bulk-tag", response_model=BulkMutationResponse,
             dependencies=[Depends(rate_limit("api"))])
async def bulk_tag(
    data: BulkTagRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    service: CandidateService = Depends(get_candidate_service)
):
    return await service.bulk_tag(db, current_user, data, request)


@router.post("/candidates/bulk-delete", response_model=BulkMutationResponse, response_model_exclude_none=True,
             dependencies=[Depends(rate_limit("api"))])
async def bulk_delete(
    data: BulkDeleteRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    service: CandidateService = Depends(get_candidate_service)
):
    return await service.bulk_delete(db, current_user, data, request)


# --- Tags ---

@router.get("/candidates/tags", response_model=TagListResponse)
async def list_tags(
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    service: CandidateService = Depends(get_candidate_service)
):
    return await service.list_tags(db, current_user)


@router.get("/candidates/tags/suggested", response_model=TagListResponse)
async def suggested_tags(
    current_user=Depends(get_current_user),
    service: CandidateService = Depends(get_candidate_service)
):
    return service.suggested_tags()


@router.put("/candidates/{candidate_id}/tags")
async def update_candidate_tags(
    candidate_id: str,
    data: CandidateTagsUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    service: CandidateService = Depends(get_candidate_service)
):
    tags = [tag.model_dump() for tag in data.tags]
    return await service.update_candidate_tags(db, current_user, candidate_id, tags, request)


# --- Single candidates ---

@router.get("/candidates/{candidate_id}", response_model=CandidateResponse)
async def get_candidate(
    candidate_id: str,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    service: CandidateService = Depends(get_candidate_service)
):
    return await service.get_candidate(db, current_user, candidate_id)


@router.patch("/candidates/{candidate_id}", response_model=CandidateResponse)
async def update_candidate(
    candidate_id: str,
    data: CandidateUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    service: CandidateService = Depends(get_candidate_service)
):
    return await service.update_candidate(db, current_user, candidate_id, data, request)


@router.delete("/candidates/{candidate_id}")
async def delete_candidate(
    candidate_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    service: CandidateService = Depends(get_candidate_service)
):
    return await service.delete_candidate(db, current_user, candidate_id, request)


# --- Job scoped ---

@router.get("/jobs/{job_id}/candidates", response_model=List[CandidateResponse])
async def list_candidates(
    job_id: str,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    service: CandidateService = Depends(get_candidate_service)
):
    return await service.list_candidates(db, current_user, job_id)


@router.post("/jobs/{job_id}/candidates", response_model=CandidateResponse, status_code=201,
             dependencies=[Depends(rate_limit("upload"))])
async def create_candidate(
    job_id: str,
    request: Request,
    name: str = Form(...),
    email: str = Form(...),
    phone: Optional[str] = Form(None),
    notes: Optional[str] = Form(None),
    resume: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    service: CandidateService = Depends(get_candidate_service)
):
    return await service.create_candidate(db, current_user, job_id, name, email, phone, notes, resume, request)


@router.get("/jobs/{job_id}/candidates/export")
async def export_candidates(
    job_id: str,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    service: CandidateService = Depends(get_candidate_service)
):
    filename, content = await service.export_csv(db, current_user, job_id)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


# --- Public ---

@router.post("/apply", dependencies=[Depends(rate_limit("upload"))])
async def apply(
    request: Request,
    jobId: str = Form(...),
    name: str = Form(...),
    email: str = Form(...),
    phone: Optional[str] = Form(None),
    resume: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    service: CandidateService = Depends(get_candidate_service)
):
    return await service.apply(db, jobId, name, email, phone, resume, request)
