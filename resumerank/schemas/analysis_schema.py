from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class AnalyzeRequest(BaseModel):
    candidate_id: str = Field(..., alias="candidateId", min_length=1)

    class Config:
        populate_by_name = True


class ReanalyzeRequest(BaseModel):
    candidate_ids: List[str] = Field(..., alias="candidateIds")

    @field_validator("candidate_ids")
    @classmethod
    def check_ids(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("candidateIds array is required")
        return list(dict.fromkeys(value))

    class Config:
        populate_by_name = True


class ReanalyzeItem(BaseModel):
    candidateId: str
    success: bool
    score: Optional[int] = None
    summary: Optional[str] = None
    error: Optional[str] = None
    isTemporary: Optional[bool] = None


class ReanalyzeSummary(BaseModel):
    total: int
    successful: int
    failed: int
    temporary: int


class ReanalyzeResponse(BaseModel):
    success: bool = True
    summary: ReanalyzeSummary
    results: List[ReanalyzeItem]
