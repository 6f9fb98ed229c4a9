import uuid
from enum import Enum

from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, JSON, func
from sqlalchemy.orm import relationship

from resumerank.db.base import Base


class CandidateStatus(str, Enum):
    PENDING_REVIEW = "PENDING_REVIEW"
    REVIEWING = "REVIEWING"
    SHORTLISTED = "SHORTLISTED"
    INTERVIEWED = "INTERVIEWED"
    REJECTED = "REJECTED"
    HIRED = "HIRED"


class Candidate(Base):
    __tablename__ = "candidates"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    # Denormalized owner of the parent job
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    email = Column(String(254), nullable=False)
    phone = Column(String(40), nullable=True)
    resume_url = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    status = Column(String(20), default=CandidateStatus.PENDING_REVIEW.value, nullable=False)
    ai_score = Column(Integer, nullable=True)
    ai_summary = Column(Text, nullable=True)
    ai_analysis = Column(JSON, nullable=True)
    analyzed_at = Column(DateTime(timezone=True), nullable=True)

    # List of {"name": ..., "color": ...}
    tags = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    job = relationship("Job", back_populates="candidates")
