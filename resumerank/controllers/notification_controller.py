from fastapi import APIRouter, Depends

from resumerank.schemas.notification_schema import NotificationPreferenceSchema
from resumerank.services.auth.auth_service import get_current_user
from resumerank.services.notification_service import NotificationService, get_notification_service

router = APIRouter()


@router.get("/preferences", response_model=NotificationPreferenceSchema)
async def get_preferences(
    current_user=Depends(get_current_user),
    notifier: NotificationService = Depends(get_notification_service)
):
    return {"enabled": await notifier.preferences.is_enabled(current_user.id)}


@router.put("/preferences", response_model=NotificationPreferenceSchema)
async def update_preferences(
    data: NotificationPreferenceSchema,
    current_user=Depends(get_current_user),
    notifier: NotificationService = Depends(get_notification_service)
):
    return {"enabled": await notifier.preferences.set_enabled(current_user.id, data.enabled)}
