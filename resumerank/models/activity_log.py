from sqlalchemy import Column, Integer, String, DateTime, JSON
from datetime import datetime, timezone
from resumerank.db.base import Base


class ActivityLog(Base):
    __tablename__ = 'activity_log'
    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(
        timezone.utc), nullable=False, index=True)
    # No foreign key: entries outlive the users and resources they mention
    user_id = Column(String(36), nullable=True, index=True)
    action = Column(String(100), nullable=False)
    resource_type = Column(String(50), nullable=True)
    resource_id = Column(String(36), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    metadata_ = Column("metadata", JSON, nullable=True)
