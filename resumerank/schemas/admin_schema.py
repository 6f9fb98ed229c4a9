from pydantic import BaseModel, Field, StrictBool

from resumerank.models.job import JobStatus


class UserTargetRequest(BaseModel):
    user_id: str = Field(..., alias="userId", min_length=1)

    class Config:
        populate_by_name = True


class ToggleAdminRequest(UserTargetRequest):
    is_admin: StrictBool = Field(..., alias="isAdmin")


class UpdateQuotaRequest(UserTargetRequest):
    ai_credits: int = Field(..., alias="aiCredits", ge=0)


class JobTargetRequest(BaseModel):
    job_id: str = Field(..., alias="jobId", min_length=1)

    class Config:
        populate_by_name = True


class JobStatusRequest(JobTargetRequest):
    status: JobStatus
