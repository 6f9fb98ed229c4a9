from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from resumerank.models.job import JobStatus


class JobCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10)
    requirements: Optional[str] = None
    location: Optional[str] = None
    salary_range: Optional[str] = None
    status: JobStatus = JobStatus.OPEN


class JobUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=3, max_length=200)
    description: Optional[str] = Field(default=None, min_length=10)
    requirements: Optional[str] = None
    location: Optional[str] = None
    salary_range: Optional[str] = None
    status: Optional[JobStatus] = None


class JobResponse(BaseModel):
    id: str
    user_id: str
    title: str
    description: str
    requirements: Optional[str] = None
    location: Optional[str] = None
    salary_range: Optional[str] = None
    status: JobStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    candidate_count: Optional[int] = None

    class Config:
        from_attributes = True
