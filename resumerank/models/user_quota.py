from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func

from resumerank.db.base import Base


class UserQuota(Base):
    __tablename__ = "user_quotas"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    ai_credits = Column(Integer, nullable=False, default=100)
    used_credits = Column(Integer, nullable=False, default=0)
    reset_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def remaining(self) -> int:
        return max(0, (self.ai_credits or 0) - (self.used_credits or 0))
