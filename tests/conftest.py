"""
Test configuration and fixtures for the Website Improver API.

Every test gets a fresh SQLite schema, the in-memory rate limiter, and a
recording queue instead of Celery.
"""

import os
import tempfile
from typing import List, Tuple

from dotenv import load_dotenv

load_dotenv()

test_db_path = tempfile.mktemp(suffix=".db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{test_db_path}"
os.environ["FORCE_IN_MEMORY_RATE_LIMITER"] = "true"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["IDENTITY_WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["OPENAI_API_KEY"] = ""
os.environ["REFUND_CREDITS_ON_FAILURE"] = "false"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from website_improver.features.analysis.models.analysis_job import AnalysisJob  # noqa: E402,F401
from website_improver.features.analysis.schemas.analysis import AnalysisJobDescriptor  # noqa: E402
from website_improver.features.analysis.services.queue import get_analysis_queue  # noqa: E402
from website_improver.features.auth.utils.security import create_access_token  # noqa: E402
from website_improver.features.credits.models.user_account import PlanTier, UserAccount  # noqa: E402
from website_improver.platform.db.base import Base  # noqa: E402
from website_improver.platform.db.session import get_db  # noqa: E402
from website_improver.platform.utils.rate_limit import (  # noqa: E402
    analysis_rate_limiter,
    url_check_rate_limiter,
)


class FakeQueue:
    """Records enqueued descriptors instead of publishing to a broker."""

    def __init__(self):
        self.enqueued: List[Tuple[AnalysisJobDescriptor, int]] = []
        self.removed: List[str] = []
        self.fail_with = None

    def enqueue(self, descriptor, priority=1):
        if self.fail_with is not None:
            raise self.fail_with
        self.enqueued.append((descriptor, priority))

    def remove(self, job_id):
        self.removed.append(job_id)
        return True

    def status(self):
        return {"active": 0, "reserved": len(self.enqueued), "scheduled": 0}


@pytest.fixture(autouse=True)
def reset_rate_limiters():
    analysis_rate_limiter.reset()
    url_check_rate_limiter.reset()
    yield
    analysis_rate_limiter.reset()
    url_check_rate_limiter.reset()


@pytest.fixture
async def engine():
    test_engine = create_async_engine(os.environ["DATABASE_URL"], poolclass=NullPool)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_queue():
    return FakeQueue()


@pytest.fixture
def make_account(db):
    async def _make(user_id="user_123", credits=5, plan=PlanTier.free, email=None):
        account = UserAccount(id=user_id, email=email or f"{user_id}@example.com", plan=plan, credits=credits)
        db.add(account)
        await db.commit()
        await db.refresh(account)
        return account

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user_id="user_123"):
        token = create_access_token({"sub": user_id})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def test_app(session_factory, fake_queue):
    """FastAPI app wired to the per-test database and the fake queue."""
    from website_improver.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_analysis_queue] = lambda: fake_queue
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://testserver") as ac:
        yield ac
