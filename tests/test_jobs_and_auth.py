from __future__ import annotations

import pytest

from conftest import TEST_PASSWORD, fetch_activity, fetch_candidate, make_candidate, make_job

pytestmark = pytest.mark.integration


async def test_register_login_me_logout(client):
    registered = await client.post("/auth/register", json={
        "email": "New.User@example.com", "password": "Secret123", "full_name": "New User"
    })
    assert registered.status_code == 201
    user_id = registered.json()["user_id"]

    login = await client.post("/auth/login", json={"email": "new.user@example.com", "password": "Secret123"})
    assert login.status_code == 200
    token = login.json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    me = await client.get("/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["id"] == user_id
    assert me.json()["is_admin"] is False

    assert (await client.post("/auth/logout", headers=headers)).status_code == 200
    assert (await client.get("/auth/me", headers=headers)).status_code == 401


async def test_register_duplicate_email(client, owner):
    response = await client.post("/auth/register", json={"email": owner.email, "password": "Secret123"})

    assert response.status_code == 400
    assert response.json() == {"error": "User already exists"}


async def test_register_weak_password(client):
    response = await client.post("/auth/register", json={"email": "weak@example.com", "password": "short"})

    assert response.status_code == 400


async def test_login_wrong_password(client, owner):
    response = await client.post("/auth/login", json={"email": owner.email, "password": TEST_PASSWORD + "x"})

    assert response.status_code == 401
    assert "error" in response.json()


async def test_garbage_token_is_unauthorized(client):
    response = await client.get("/jobs/", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid authentication credentials"}


async def test_create_and_list_jobs(client, db, session_factory, owner):
    created = await client.post("/jobs/", headers=owner.headers, json={
        "title": "  Platform Engineer  ",
        "description": "Own our <script>alert(1)</script>Kubernetes platform.",
        "location": "Remote",
    })

    assert created.status_code == 201
    job = created.json()
    assert job["title"] == "Platform Engineer"
    assert "<script>" not in job["description"]
    assert job["status"] == "OPEN"
    assert job["candidate_count"] == 0

    await make_candidate(db, await make_job(db, owner, title="Other Role"))
    listed = await client.get("/jobs/", headers=owner.headers)
    counts = {item["title"]: item["candidate_count"] for item in listed.json()}
    assert counts == {"Platform Engineer": 0, "Other Role": 1}
    assert len(await fetch_activity(session_factory, "CREATE_JOB")) == 1


async def test_job_validation(client, owner):
    response = await client.post("/jobs/", headers=owner.headers, json={"title": "QA", "description": "short"})

    assert response.status_code == 400


async def test_update_job(client, db, owner):
    job = await make_job(db, owner)

    response = await client.patch(f"/jobs/{job.id}", headers=owner.headers, json={"status": "PAUSED"})

    assert response.status_code == 200
    assert response.json()["status"] == "PAUSED"

    cleared = await client.patch(f"/jobs/{job.id}", headers=owner.headers, json={"title": None})
    assert cleared.status_code == 400


async def test_jobs_of_other_owners_are_forbidden(client, db, owner, other):
    job = await make_job(db, other)

    assert (await client.get(f"/jobs/{job.id}", headers=owner.headers)).status_code == 403
    assert (await client.patch(f"/jobs/{job.id}", headers=owner.headers, json={"status": "CLOSED"})).status_code == 403
    assert (await client.get(f"/jobs/{job.id}/candidates", headers=owner.headers)).status_code == 403
    assert (await client.get("/jobs/missing", headers=owner.headers)).status_code == 404


async def test_delete_job_removes_candidates_and_files(client, db, session_factory, fakes, owner):
    job = await make_job(db, owner)
    fakes.storage.files["resumes/a.pdf"] = b"pdf"
    candidate = await make_candidate(db, job, resume_url="resumes/a.pdf")

    response = await client.delete(f"/jobs/{job.id}", headers=owner.headers)

    assert response.status_code == 200
    assert await fetch_candidate(session_factory, candidate.id) is None
    assert fakes.storage.deleted == ["resumes/a.pdf"]
    assert (await client.get(f"/jobs/{job.id}", headers=owner.headers)).status_code == 404


async def test_unknown_route_uses_error_body(client):
    response = await client.get("/nowhere")

    assert response.status_code == 404
    assert "error" in response.json()
