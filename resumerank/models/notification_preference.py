from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, func

from resumerank.db.base import Base


class NotificationPreference(Base):
    __tablename__ = "notification_preferences"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    enabled = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
