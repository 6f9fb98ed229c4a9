"""
Notification Service - change notifications to job owners by email (SendGrid)
"""
import asyncio
import html
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

import sendgrid
from fastapi import Depends
from sendgrid.helpers.mail import Mail, Email, To, Content
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from resumerank.core.config import settings
from resumerank.db.database import get_db
from resumerank.models.notification_preference import NotificationPreference

logger = logging.getLogger(__name__)


class PreferenceStore(ABC):
    @abstractmethod
    async def is_enabled(self, user_id: str) -> bool:
        pass

    @abstractmethod
    async def set_enabled(self, user_id: str, enabled: bool) -> bool:
        pass


class SqlPreferenceStore(PreferenceStore):
    """Preferences in the notification_preferences table; missing rows mean enabled."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get(self, user_id: str) -> Optional[NotificationPreference]:
        result = await self.db.execute(
            select(NotificationPreference).where(NotificationPreference.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def is_enabled(self, user_id: str) -> bool:
        preference = await self._get(user_id)
        return True if preference is None else bool(preference.enabled)

    async def set_enabled(self, user_id: str, enabled: bool) -> bool:
        preference = await self._get(user_id)
        if preference is None:
            preference = NotificationPreference(user_id=user_id, enabled=enabled)
            self.db.add(preference)
        else:
            preference.enabled = enabled
            preference.updated_at = datetime.now(timezone.utc)
        await self.db.commit()
        return enabled


class NotificationService:
    def __init__(self, preference_store: PreferenceStore, api_key: Optional[str] = None,
                 from_email: str = settings.NOTIFICATION_FROM_EMAIL, app_url: str = settings.APP_URL):
        self.preferences = preference_store
        self.sg = sendgrid.SendGridAPIClient(api_key=api_key) if api_key else None
        self.from_email = Email(from_email)
        self.app_url = app_url.rstrip("/")

    def send_email(self, to_email: str, subject: str, html_content: str) -> int:
        mail = Mail(self.from_email, To(to_email), subject, Content("text/html", html_content))
        response = self.sg.client.mail.send.post(request_body=mail.get())
        return response.status_code

    async def _notify(self, user_id: str, to_email: str, subject: str, html_content: str) -> bool:
        """Send when the owner opted in; failures are logged, never raised."""
        try:
            if not await self.preferences.is_enabled(user_id):
                return False
            if self.sg is None:
                logger.info(f"SendGrid not configured, skipping '{subject}' for {user_id}")
                return False
            status_code = await asyncio.to_thread(self.send_email, to_email, subject, html_content)
            logger.info(f"Sent '{subject}' to {to_email} ({status_code})")
            return 200 <= status_code < 300
        except Exception as e:
            logger.error(f"Failed to send '{subject}' to {to_email}: {e}")
            return False

    async def notify_new_candidate(self, owner_id: str, owner_email: str, job_id: str, job_title: str,
                                   candidate_name: str) -> bool:
        subject = f"New application: {job_title}"
        html_content = f"""
            <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h2 style="color: #2c3e50;">New candidate</h2>
                <p><b>{html.escape(candidate_name)}</b> applied for <b>{html.escape(job_title)}</b>.</p>
                <p><a href="{self.app_url}/jobs/{job_id}">Review the application</a></p>
            </div>
        """
        return await self._notify(owner_id, owner_email, subject, html_content)

    async def notify_analysis_completed(self, owner_id: str, owner_email: str, candidate_id: str,
                                        candidate_name: str, score: int) -> bool:
        subject = f"AI analysis ready: {candidate_name}"
        html_content = f"""
            <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h2 style="color: #2c3e50;">Resume analysis completed</h2>
                <p><b>{html.escape(candidate_name)}</b> scored <b>{score}/100</b>.</p>
                <p><a href="{self.app_url}/candidates/{candidate_id}">Open the candidate</a></p>
            </div>
        """
        return await self._notify(owner_id, owner_email, subject, html_content)

    async def notify_status_change(self, owner_id: str, owner_email: str, count: int, status: str) -> bool:
        noun = "candidate" if count == 1 else "candidates"
        subject = f"{count} {noun} moved to {status}"
        html_content = f"<p>Hello,</p><p>{count} {noun} changed status to <b>{html.escape(status)}</b>.</p>"
        return await self._notify(owner_id, owner_email, subject, html_content)


def get_notification_service(db: AsyncSession = Depends(get_db)) -> NotificationService:
    return NotificationService(SqlPreferenceStore(db), settings.SENDGRID_API_KEY)
