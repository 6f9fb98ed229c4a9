from __future__ import annotations

from typing import Dict, List

import pytest

from conftest import make_candidate, make_job
from resumerank.services.notification_service import NotificationService, PreferenceStore


class MemoryPreferenceStore(PreferenceStore):
    def __init__(self, disabled=()):
        self.disabled = set(disabled)

    async def is_enabled(self, user_id):
        return user_id not in self.disabled

    async def set_enabled(self, user_id, enabled):
        (self.disabled.discard if enabled else self.disabled.add)(user_id)
        return enabled


class RecordingNotificationService(NotificationService):
    def __init__(self, store):
        super().__init__(store, api_key="SG.test")
        self.sent: List[Dict[str, str]] = []

    def send_email(self, to_email, subject, html_content):
        self.sent.append({"to": to_email, "subject": subject, "html": html_content})
        return 202


@pytest.mark.integration
async def test_dashboard_summary(client, db, owner, other):
    job = await make_job(db, owner)
    await make_job(db, owner, title="Closed Role", status="CLOSED")
    await make_candidate(db, job, name="Ada Lovelace", ai_score=90, status="SHORTLISTED")
    await make_candidate(db, job, name="Alan Turing", ai_score=71)
    await make_candidate(db, job, name="Anita Borg")
    await make_candidate(db, await make_job(db, other), name="Grace Hopper", ai_score=10)

    response = await client.get("/dashboard/summary", headers=owner.headers)

    assert response.status_code == 200
    summary = response.json()
    assert summary["total_jobs"] == 2
    assert summary["open_jobs"] == 1
    assert summary["total_candidates"] == 3
    assert summary["candidates_by_status"]["PENDING_REVIEW"] == 2
    assert summary["average_ai_score"] == 80.5
    assert summary["credits"] == {"used": 0, "total": 100, "remaining": 100}
    assert len(summary["recent_candidates"]) == 3
    assert summary["candidate_funnel"][0] == {"label": "Pending Review", "count": 2}


@pytest.mark.integration
async def test_notification_preferences_round_trip(client, owner):
    initial = await client.get("/notifications/preferences", headers=owner.headers)
    assert initial.json() == {"enabled": True}

    updated = await client.put("/notifications/preferences", headers=owner.headers, json={"enabled": False})
    assert updated.json() == {"enabled": False}

    again = await client.get("/notifications/preferences", headers=owner.headers)
    assert again.json() == {"enabled": False}


@pytest.mark.unit
async def test_notifications_respect_opt_out():
    service = RecordingNotificationService(MemoryPreferenceStore(disabled={"quiet"}))

    assert await service.notify_status_change("loud", "loud@example.com", 2, "SHORTLISTED") is True
    assert await service.notify_status_change("quiet", "quiet@example.com", 2, "SHORTLISTED") is False

    assert [mail["to"] for mail in service.sent] == ["loud@example.com"]
    assert service.sent[0]["subject"] == "2 candidates moved to SHORTLISTED"


@pytest.mark.unit
async def test_notification_escapes_candidate_names():
    service = RecordingNotificationService(MemoryPreferenceStore())

    await service.notify_new_candidate("u1", "owner@example.com", "job-1", "Engineer", "<script>x</script>")

    assert "<script>" not in service.sent[0]["html"]
    assert "/jobs/job-1" in service.sent[0]["html"]


@pytest.mark.unit
async def test_send_failures_are_swallowed():
    class Failing(RecordingNotificationService):
        def send_email(self, to_email, subject, html_content):
            raise RuntimeError("sendgrid down")

    service = Failing(MemoryPreferenceStore())

    assert await service.notify_analysis_completed("u1", "owner@example.com", "c1", "Ada", 88) is False


@pytest.mark.unit
async def test_without_api_key_nothing_is_sent():
    service = NotificationService(MemoryPreferenceStore())

    assert service.sg is None
    assert await service.notify_status_change("u1", "owner@example.com", 1, "HIRED") is False
