from pydantic import BaseModel


class NotificationPreferenceSchema(BaseModel):
    enabled: bool
