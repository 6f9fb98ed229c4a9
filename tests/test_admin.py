from __future__ import annotations

import pytest

from conftest import fetch_activity, fetch_candidate, make_candidate, make_job

pytestmark = pytest.mark.integration


async def test_admin_routes_need_admin(client, owner):
    response = await client.get("/admin/users", headers=owner.headers)

    assert response.status_code == 403
    assert response.json() == {"error": "Admin access required"}


async def test_list_users_includes_quota(client, admin, owner):
    response = await client.get("/admin/users", headers=admin.headers)

    assert response.status_code == 200
    by_email = {user["email"]: user for user in response.json()}
    assert by_email[owner.email]["ai_credits"] == 100
    assert by_email[owner.email]["used_credits"] == 0
    assert by_email[admin.email]["is_admin"] is True


async def test_toggle_admin(client, session_factory, admin, owner):
    granted = await client.post("/admin/users/toggle-admin", headers=admin.headers,
                                json={"userId": owner.id, "isAdmin": True})
    assert granted.status_code == 200
    assert (await client.get("/admin/stats", headers=owner.headers)).status_code == 200

    revoked = await client.post("/admin/users/toggle-admin", headers=admin.headers,
                                json={"userId": owner.id, "isAdmin": False})
    assert revoked.status_code == 200

    assert [log.action for log in await fetch_activity(session_factory)] == [
        "ADMIN_GRANT_ADMIN", "ADMIN_REVOKE_ADMIN"
    ]


async def test_admin_cannot_demote_or_delete_self(client, admin):
    demote = await client.post("/admin/users/toggle-admin", headers=admin.headers,
                               json={"userId": admin.id, "isAdmin": False})
    delete = await client.post("/admin/users/delete", headers=admin.headers, json={"userId": admin.id})

    assert demote.status_code == 400
    assert delete.status_code == 400


async def test_toggle_admin_needs_a_real_boolean(client, admin, owner):
    response = await client.post("/admin/users/toggle-admin", headers=admin.headers,
                                 json={"userId": owner.id, "isAdmin": "yes"})

    assert response.status_code == 400


async def test_update_quota_and_reset_credits(client, admin, owner):
    updated = await client.post("/admin/users/update-quota", headers=admin.headers,
                                json={"userId": owner.id, "aiCredits": 250})
    assert updated.status_code == 200

    negative = await client.post("/admin/users/update-quota", headers=admin.headers,
                                 json={"userId": owner.id, "aiCredits": -1})
    assert negative.status_code == 400

    reset = await client.post("/admin/users/reset-credits", headers=admin.headers, json={"userId": owner.id})
    assert reset.status_code == 200

    users = {user["id"]: user for user in (await client.get("/admin/users", headers=admin.headers)).json()}
    assert users[owner.id]["ai_credits"] == 250
    assert users[owner.id]["used_credits"] == 0


async def test_delete_user_removes_their_data(client, db, session_factory, fakes, admin, owner):
    job = await make_job(db, owner)
    fakes.storage.files["resumes/a.pdf"] = b"pdf"
    candidate = await make_candidate(db, job, resume_url="resumes/a.pdf")

    response = await client.post("/admin/users/delete", headers=admin.headers, json={"userId": owner.id})

    assert response.status_code == 200
    assert await fetch_candidate(session_factory, candidate.id) is None
    assert fakes.storage.deleted == ["resumes/a.pdf"]
    assert (await client.get("/auth/me", headers=owner.headers)).status_code == 401
    logs = await fetch_activity(session_factory, "ADMIN_DELETE_USER")
    assert logs[0].resource_id == owner.id
    assert logs[0].metadata_ == {"email": owner.email}


async def test_delete_unknown_user(client, admin):
    response = await client.post("/admin/users/delete", headers=admin.headers, json={"userId": "missing"})

    assert response.status_code == 404


async def test_admin_job_moderation(client, db, session_factory, admin, owner):
    job = await make_job(db, owner)

    paused = await client.post("/admin/jobs/update-status", headers=admin.headers,
                               json={"jobId": job.id, "status": "PAUSED"})
    assert paused.status_code == 200
    log = (await fetch_activity(session_factory, "ADMIN_UPDATE_JOB_STATUS"))[0]
    assert log.metadata_ == {"title": job.title, "owner_id": owner.id, "old_status": "OPEN", "new_status": "PAUSED"}

    bad = await client.post("/admin/jobs/update-status", headers=admin.headers,
                            json={"jobId": job.id, "status": "ARCHIVED"})
    assert bad.status_code == 400

    deleted = await client.post("/admin/jobs/delete", headers=admin.headers, json={"jobId": job.id})
    assert deleted.status_code == 200
    assert (await client.get(f"/jobs/{job.id}", headers=owner.headers)).status_code == 404


async def test_activity_feed_and_stats(client, db, admin, owner):
    await make_candidate(db, await make_job(db, owner), ai_score=77)
    await client.post("/admin/users/reset-credits", headers=admin.headers, json={"userId": owner.id})

    activity = await client.get("/admin/activity", headers=admin.headers, params={"action": "ADMIN_RESET_CREDITS"})
    assert activity.status_code == 200
    entries = activity.json()
    assert len(entries) == 1
    assert entries[0]["resource_id"] == owner.id
    assert entries[0]["metadata"] == {"used_credits": 0}

    stats = (await client.get("/admin/stats", headers=admin.headers)).json()
    assert stats["total_users"] == 2
    assert stats["total_admins"] == 1
    assert stats["total_jobs"] == 1
    assert stats["analyzed_candidates"] == 1
    assert stats["jobs_by_status"] == {"OPEN": 1}
