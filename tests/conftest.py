from __future__ import annotations

import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-resumerank-tests")
os.environ.setdefault("SERVICE_TOKEN", "test-service-token")
os.environ["REDIS_URL"] = ""
os.environ["SENDGRID_API_KEY"] = ""
os.environ["STORAGE_BACKEND"] = "local"

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

import resumerank.models  # noqa: F401
from main import app
from resumerank.core.errors import AnalysisError
from resumerank.core.security import create_access_token, get_password_hash
from resumerank.db.base import Base
from resumerank.db.database import get_db
from resumerank.models.activity_log import ActivityLog
from resumerank.models.candidate import Candidate
from resumerank.models.job import Job
from resumerank.realtime.channels import ChannelHub, get_channel_hub
from resumerank.repositories import user_repo
from resumerank.services.ai_screening_service import get_resume_analyzer
from resumerank.services.candidate_service import get_analysis_enqueuer
from resumerank.services.rate_limit import InMemoryRateLimiter, get_rate_limiter
from resumerank.services.storage import ResumeStorage, get_resume_storage

TEST_PASSWORD = "Password123"


class FakeStorage(ResumeStorage):
    def __init__(self):
        self.files: Dict[str, bytes] = {}
        self.fail_save = False
        self.fail_delete = False
        self.fail_read = False
        self.deleted: List[str] = []

    async def save(self, key, data, content_type=None):
        if self.fail_save:
            raise RuntimeError("storage unavailable")
        self.files[key] = data
        return key

    async def read(self, key):
        if self.fail_read or key not in self.files:
            raise RuntimeError(f"missing object {key}")
        return self.files[key]

    async def delete(self, key):
        if self.fail_delete:
            raise RuntimeError("storage unavailable")
        self.deleted.append(key)
        self.files.pop(key, None)


class FakeAnalyzer:
    def __init__(self):
        self.score = 82
        self.error: Optional[AnalysisError] = None
        self.calls: List[str] = []

    async def analyze_file(self, data, file_name, job_description):
        self.calls.append(file_name)
        if self.error is not None:
            raise self.error
        return {
            "score": self.score,
            "summary": "Strong Python background.",
            "strengths": ["Python"],
            "weaknesses": [],
            "recommendation": "INTERVIEW",
        }

    async def test_connection(self):
        return {"success": True, "model": "fake", "response": "ok"}


class RecordingHub(ChannelHub):
    """In-process hub that also remembers every publish."""

    def __init__(self):
        super().__init__()
        self.published: List[tuple] = []

    async def publish(self, name, event, payload):
        self.published.append((name, event, payload))
        await super().publish(name, event, payload)

    def channels(self) -> List[str]:
        return [name for name, _, _ in self.published]


@dataclass
class Account:
    id: str
    email: str
    token: str

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@dataclass
class Fakes:
    storage: FakeStorage = field(default_factory=FakeStorage)
    analyzer: FakeAnalyzer = field(default_factory=FakeAnalyzer)
    hub: RecordingHub = field(default_factory=RecordingHub)
    limiter: InMemoryRateLimiter = field(default_factory=InMemoryRateLimiter)
    enqueued: List[str] = field(default_factory=list)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'resumerank.sqlite3'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fakes() -> Fakes:
    return Fakes()


@pytest.fixture
def test_app(session_factory, fakes):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_resume_storage] = lambda: fakes.storage
    app.dependency_overrides[get_resume_analyzer] = lambda: fakes.analyzer
    app.dependency_overrides[get_channel_hub] = lambda: fakes.hub
    app.dependency_overrides[get_rate_limiter] = lambda: fakes.limiter
    app.dependency_overrides[get_analysis_enqueuer] = lambda: fakes.enqueued.append
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(test_app):
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client


# --- seed helpers ---

async def make_account(db: AsyncSession, email: str, is_admin: bool = False, ai_credits: int = 100) -> Account:
    user = await user_repo.create_user(db, email, get_password_hash(TEST_PASSWORD), full_name="Test User",
                                       ai_credits=ai_credits)
    if is_admin:
        user.is_admin = True
        await db.commit()
    token = create_access_token({"sub": user.email, "user_id": user.id})
    return Account(id=user.id, email=user.email, token=token)


async def make_job(db: AsyncSession, owner: Account, title: str = "Backend Engineer", status: str = "OPEN") -> Job:
    job = Job(
        user_id=owner.id,
        title=title,
        description="Build and run Python services on FastAPI and PostgreSQL.",
        requirements="5+ years of Python",
        status=status,
    )
    db.add(job)
    await db.commit()
    await db.refresh(job)
    return job


async def make_candidate(db: AsyncSession, job: Job, name: str = "Ada Lovelace", email: Optional[str] = None,
                         resume_url: Optional[str] = None, tags: Optional[List[dict]] = None,
                         ai_score: Optional[int] = None, status: str = "PENDING_REVIEW") -> Candidate:
    candidate = Candidate(
        job_id=job.id,
        user_id=job.user_id,
        name=name,
        email=email or f"{name.split()[0].lower()}@example.com",
        resume_url=resume_url,
        tags=tags or [],
        ai_score=ai_score,
        status=status,
    )
    db.add(candidate)
    await db.commit()
    await db.refresh(candidate)
    return candidate


async def fetch_candidate(session_factory, candidate_id: str) -> Optional[Candidate]:
    async with session_factory() as session:
        return await session.get(Candidate, candidate_id)


async def fetch_activity(session_factory, action: Optional[str] = None) -> List[ActivityLog]:
    async with session_factory() as session:
        stmt = select(ActivityLog).order_by(ActivityLog.id)
        if action:
            stmt = stmt.where(ActivityLog.action == action)
        result = await session.execute(stmt)
        return list(result.scalars().all())


@pytest.fixture
async def owner(db) -> Account:
    return await make_account(db, "owner@example.com")


@pytest.fixture
async def other(db) -> Account:
    return await make_account(db, "other@example.com")


@pytest.fixture
async def admin(db) -> Account:
    return await make_account(db, "admin@example.com", is_admin=True)


def pdf_upload(name: str = "resume.pdf", data: bytes = b"%PDF-1.4 fake resume") -> Dict[str, Any]:
    return {"resume": (name, data, "application/pdf")}
