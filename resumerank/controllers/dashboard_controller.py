from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from resumerank.db.database import get_db
from resumerank.services.auth.auth_service import get_current_user
from resumerank.services.dashboard_service import get_dashboard_summary

router = APIRouter()

@router.get("/dashboard/summary")
async def dashboard_summary(
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await get_dashboard_summary(db, current_user.id)
