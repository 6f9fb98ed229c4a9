from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from resumerank.core.config import settings
from resumerank.models.user_quota import UserQuota


class QuotaRepository:
    @staticmethod
    async def get(db: AsyncSession, user_id: str) -> Optional[UserQuota]:
        result = await db.execute(
            select(UserQuota)
            .where(UserQuota.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_or_create(db: AsyncSession, user_id: str) -> UserQuota:
        quota = await QuotaRepository.get(db, user_id)
        if quota is None:
            quota = UserQuota(user_id=user_id, ai_credits=settings.DEFAULT_AI_CREDITS, used_credits=0)
            db.add(quota)
            await db.commit()
            await db.refresh(quota)
        return quota

    @staticmethod
    async def set_credits(db: AsyncSession, user_id: str, ai_credits: int) -> UserQuota:
        quota = await QuotaRepository.get(db, user_id)
        if quota is None:
            quota = UserQuota(user_id=user_id, ai_credits=ai_credits, used_credits=0)
            db.add(quota)
        else:
            quota.ai_credits = ai_credits
            quota.updated_at = datetime.now(timezone.utc)
        await db.commit()
        await db.refresh(quota)
        return quota

    @staticmethod
    async def reset_used(db: AsyncSession, user_id: str) -> bool:
        result = await db.execute(
            update(UserQuota)
            .where(UserQuota.user_id == user_id)
            .values(used_credits=0, reset_at=datetime.now(timezone.utc), updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount > 0

    @staticmethod
    async def increment_used(db: AsyncSession, user_id: str) -> None:
        """Atomic counter bump; caller commits."""
        await db.execute(
            update(UserQuota)
            .where(UserQuota.user_id == user_id)
            .values(used_credits=UserQuota.used_credits + 1)
            .execution_options(synchronize_session=False)
        )
