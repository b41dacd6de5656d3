"""Shared test fixtures.

The suite runs against an in-memory SQLite database (aiosqlite) built from
the ORM metadata, so neither PostgreSQL nor Redis is required.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timezone

os.environ["QF_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["QF_JWT_SECRET"] = "questforge-test-secret"
os.environ["QF_JWT_ALGORITHM"] = "HS256"
os.environ["QF_LOG_FORMAT"] = "console"

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from questforge.config import get_settings

get_settings.cache_clear()

from questforge.auth.jwt import create_access_token, reset_keys
from questforge.database import close_db, get_engine, init_db
from questforge.db.base import Base
from questforge.db.models import PATH_HUNTER, Profile, QuestDefinition, WorkoutPlan, WorkoutPlanDay
from questforge.main import create_app


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory schema per test; yields a session factory bound to it."""
    get_settings.cache_clear()
    reset_keys()
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)

    await close_db()


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for service calls and assertions."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def make_profile(db_session: AsyncSession) -> Callable[..., Awaitable[Profile]]:
    """Factory: insert and commit a profile."""

    async def _make(
        username: str | None = None,
        display_name: str | None = None,
        path: str | None = PATH_HUNTER,
    ) -> Profile:
        now = datetime.now(timezone.utc)
        profile = Profile(
            id=str(uuid.uuid4()),
            username=username,
            display_name=display_name,
            path=path,
            total_xp=0,
            current_streak=0,
            longest_streak=0,
            created_at=now,
            updated_at=now,
        )
        db_session.add(profile)
        await db_session.commit()
        return profile

    return _make


@pytest_asyncio.fixture
async def make_quest(db_session: AsyncSession) -> Callable[..., Awaitable[QuestDefinition]]:
    """Factory: insert and commit a quest definition."""

    async def _make(
        title: str = "Read 20 Pages + Notes",
        path: str = PATH_HUNTER,
        xp_reward: int = 20,
        is_active: bool = True,
    ) -> QuestDefinition:
        quest = QuestDefinition(
            title=title,
            description="",
            path=path,
            category="study",
            difficulty="easy",
            xp_reward=xp_reward,
            is_active=is_active,
            flavor_text="",
        )
        db_session.add(quest)
        await db_session.commit()
        return quest

    return _make


@pytest_asyncio.fixture
async def make_plan(db_session: AsyncSession) -> Callable[..., Awaitable[WorkoutPlan]]:
    """Factory: insert and commit a workout plan with two days."""

    async def _make(name: str = "HUNTER CUT PHASE PPL 5D", path: str | None = PATH_HUNTER) -> WorkoutPlan:
        plan = WorkoutPlan(name=name, path=path, description="", is_active=True)
        db_session.add(plan)
        await db_session.flush()
        db_session.add_all([
            WorkoutPlanDay(plan_id=plan.id, day_number=1, title="PUSH A", template={"focus": "push"}),
            WorkoutPlanDay(plan_id=plan.id, day_number=2, title="PULL A", template={"focus": "pull"}),
        ])
        await db_session.commit()
        return plan

    return _make


@pytest_asyncio.fixture
async def client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client over the app, sharing the test database."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def auth_headers() -> Callable[[str], dict[str, str]]:
    """Build an Authorization header for a user id."""

    def _headers(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers
