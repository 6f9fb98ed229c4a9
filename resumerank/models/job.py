import uuid
from enum import Enum

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship

from resumerank.db.base import Base


class JobStatus(str, Enum):
    OPEN = "OPEN"
    PAUSED = "PAUSED"
    CLOSED = "CLOSED"


class Job(Base):
    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    requirements = Column(Text, nullable=True)
    location = Column(String(200), nullable=True)
    salary_range = Column(String(100), nullable=True)

    status = Column(String(20), default=JobStatus.OPEN.value, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="jobs")
    candidates = relationship(
        "Candidate",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    def analysis_brief(self) -> str:
        """Job description in the shape the resume analyzer expects."""
        lines = [f"Title: {self.title}", f"Description: {self.description}"]
        if self.requirements:
            lines.append(f"Requirements: {self.requirements}")
        if self.location:
            lines.append(f"Location: {self.location}")
        return "\n".join(lines)
