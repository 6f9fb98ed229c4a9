from sqlalchemy import Column, Integer, String, DateTime
from resumerank.db.base import Base
from datetime import datetime

class RevokedToken(Base):
    __tablename__ = "revoked_tokens"
    id = Column(Integer, primary_key=True, index=True)
    jti = Column(String, unique=True, index=True, nullable=False)
    revoked_at = Column(DateTime, default=datetime.utcnow)
