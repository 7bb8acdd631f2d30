"""
Shared fixtures — in-memory SQLite for fast tests.

Each test gets a fresh database. The ``client`` fixture routes the app's
``get_session`` dependency to the same session the test uses, so rows
created through services are visible to HTTP calls and vice versa.
"""

from __future__ import annotations

import os

os.environ.setdefault("CS_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import datetime as dt
import uuid
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import app.models  # noqa: F401
from app.core.auth import create_jwt
from app.core.database import get_session
from app.main import app as fastapi_app
from app.models.user import User
from app.services.opportunities import create_opportunity
from app.services.organizations import create_organization
from churchserve_shared.schemas.opportunities import OpportunityCreate
from churchserve_shared.schemas.organizations import OrgCreateRequest


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
async def client(session):
    # Handlers commit themselves; a rejected request must not roll back
    # rows the test created before calling it.
    async def _override_session():
        yield session

    fastapi_app.dependency_overrides[get_session] = _override_session
    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Bearer JWT auth, the way API clients call the server."""
    def _headers(user: User) -> dict[str, str]:
        token, _ = create_jwt(user.id)
        return {"Authorization": f"Bearer {token}"}

    return _headers


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user(session):
    async def _make(username: str | None = None, **fields: Any) -> User:
        name = username or f"user-{uuid.uuid4().hex[:8]}"
        user = User(username=name, email=fields.pop("email", f"{name}@example.com"), **fields)
        session.add(user)
        await session.flush()
        return user

    return _make


@pytest.fixture
def make_org(session):
    async def _make(owner: User, name: str = "Grace Community Church", **fields: Any):
        req = OrgCreateRequest(
            name=name,
            address=fields.pop("address", "12 Main St"),
            city=fields.pop("city", "Springfield"),
            state=fields.pop("state", "IL"),
            zip_code=fields.pop("zip_code", "62701"),
            **fields,
        )
        return await create_organization(req, owner.id, session)

    return _make


@pytest.fixture
def make_opportunity(session):
    async def _make(org, creator: User, **fields: Any):
        data = OpportunityCreate(
            organization_id=org.id,
            title=fields.pop("title", "Food pantry shift"),
            description=fields.pop("description", "Sort and hand out groceries"),
            category=fields.pop("category", "Food Service"),
            date=fields.pop("date", dt.date(2026, 11, 7)),
            start_time=fields.pop("start_time", dt.time(9, 0)),
            end_time=fields.pop("end_time", dt.time(12, 0)),
            volunteers_needed=fields.pop("volunteers_needed", 5),
            **fields,
        )
        return await create_opportunity(session, data, creator.id)

    return _make
