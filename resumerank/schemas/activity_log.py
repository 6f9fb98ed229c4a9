from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, Optional

class ActivityLogSchema(BaseModel):
    id: Optional[int]
    created_at: datetime
    user_id: Optional[str]
    action: str
    resource_type: Optional[str]
    resource_id: Optional[str]
    ip_address: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="metadata_")

    class Config:
        from_attributes = True
