from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from resumerank.core.validators import is_valid_hex_color, is_valid_tag_name, TAG_NAME_MAX_LENGTH
from resumerank.models.candidate import CandidateStatus


class Tag(BaseModel):
    name: str
    color: str

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if not is_valid_tag_name(value):
            raise ValueError(f"Tag name must be 1-{TAG_NAME_MAX_LENGTH} characters")
        return value.strip()

    @field_validator("color")
    @classmethod
    def check_color(cls, value: str) -> str:
        if not is_valid_hex_color(value):
            raise ValueError("Tag color must be a hex color like #3b82f6")
        return value


def _require_ids(ids: List[str]) -> List[str]:
    cleaned = [i for i in ids if isinstance(i, str) and i.strip()]
    if not cleaned or len(cleaned) != len(ids):
        raise ValueError("Invalid candidate IDs")
    # Keep request order, drop repeats
    return list(dict.fromkeys(cleaned))


class BulkStatusUpdateRequest(BaseModel):
    candidate_ids: List[str] = Field(..., alias="candidateIds")
    status: CandidateStatus

    @field_validator("candidate_ids")
    @classmethod
    def check_ids(cls, value: List[str]) -> List[str]:
        return _require_ids(value)

    class Config:
        populate_by_name = True


class BulkTagRequest(BaseModel):
    candidate_ids: List[str] = Field(..., alias="candidateIds")
    action: Literal["add", "remove", "replace"]
    tags: List[Tag]

    @field_validator("candidate_ids")
    @classmethod
    def check_ids(cls, value: List[str]) -> List[str]:
        return _require_ids(value)

    class Config:
        populate_by_name = True


class BulkDeleteRequest(BaseModel):
    candidate_ids: List[str] = Field(..., alias="candidateIds")

    @field_validator("candidate_ids")
    @classmethod
    def check_ids(cls, value: List[str]) -> List[str]:
        return _require_ids(value)

    class Config:
        populate_by_name = True


class BulkMutationResponse(BaseModel):
    success: bool = True
    count: int
    failed: Optional[int] = None


class CandidateTagsUpdate(BaseModel):
    tags: List[Tag]


class CandidateUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2)
    email: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[CandidateStatus] = None
    notes: Optional[str] = None


class CandidateResponse(BaseModel):
    id: str
    job_id: str
    user_id: str
    name: str
    email: str
    phone: Optional[str] = None
    resume_url: Optional[str] = None
    notes: Optional[str] = None
    status: CandidateStatus
    ai_score: Optional[int] = None
    ai_summary: Optional[str] = None
    ai_analysis: Optional[Dict[str, Any]] = None
    tags: List[Tag] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TagListResponse(BaseModel):
    tags: List[Tag]
    count: int
