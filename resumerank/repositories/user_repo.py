from typing import List, Optional

from sqlalchemy import delete
from sqlalchemy.future import select

from resumerank.models.candidate import Candidate
from resumerank.models.job import Job
from resumerank.models.notification_preference import NotificationPreference
from resumerank.models.user import User
from resumerank.models.user_quota import UserQuota


async def get_user_by_email(db, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()

async def get_user_by_id(db, user_id: str) -> Optional[User]:
    """Get user by id"""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()

async def list_users(db, skip: int = 0, limit: int = 100) -> List[User]:
    result = await db.execute(
        select(User).order_by(User.created_at.desc()).offset(skip).limit(limit)
    )
    return list(result.scalars().all())

async def create_user(db, email: str, hashed_password: str, full_name: Optional[str] = None,
                      company_name: Optional[str] = None, ai_credits: int = 100) -> User:
    """Create a new user with its quota and notification preference rows."""
    new_user = User(
        email=email,
        hashed_password=hashed_password,
        full_name=full_name,
        company_name=company_name,
    )
    db.add(new_user)
    await db.flush()
    db.add(UserQuota(user_id=new_user.id, ai_credits=ai_credits, used_credits=0))
    db.add(NotificationPreference(user_id=new_user.id, enabled=True))
    await db.commit()
    await db.refresh(new_user)
    return new_user

async def delete_user(db, user: User) -> None:
    """Delete a user and everything they own."""
    for model in (Candidate, Job, UserQuota, NotificationPreference):
        await db.execute(
            delete(model)
            .where(model.user_id == user.id)
            .execution_options(synchronize_session=False)
        )
    await db.delete(user)
    await db.commit()
