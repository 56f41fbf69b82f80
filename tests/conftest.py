"""Shared test fixtures."""

import json
import random

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from arena.api.encounters import get_narrative_agent
from arena.domain.orchestrator import run_registry
from arena.infra.db import get_db, get_session_factory
from arena.main import app
from arena.models.db_models import Base, User
from arena.modules.llm.agent import MockAgent
from arena.modules.llm.tools import ToolRegistry

SEED = 20


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    # A file, not :memory:, since runs open their own connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await run_registry.wait_all()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def _override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_narrative_agent] = lambda: MockAgent(
        tools=ToolRegistry(random.Random(SEED))
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    await run_registry.wait_all()
    app.dependency_overrides.clear()


async def register_user(
    client: AsyncClient,
    username: str = "TestUser",
    password: str | None = None,
) -> dict:
    """Register a user and return dict with user_id, api_key, headers."""
    body = {"username": username}
    if password is not None:
        body["password"] = password
    resp = await client.post("/api/auth/register", json=body)
    assert resp.status_code == 200
    data = resp.json()
    return {
        "user_id": data["user_id"],
        "api_key": data["api_key"],
        "access_token": data["access_token"],
        "headers": {"Authorization": f"Bearer {data['access_token']}"},
    }


async def set_role(session_factory, user_id: str, role: str) -> None:
    async with session_factory() as db:
        user = await db.get(User, user_id)
        user.role = role
        await db.commit()


def parse_sse(body: str) -> list[dict]:
    """Split a buffered SSE body into ``{"id", "event", "data"}`` dicts."""
    frames = []
    for block in body.strip().split("\n\n"):
        frame = {}
        for line in block.splitlines():
            name, _, value = line.partition(": ")
            frame[name] = value
        frames.append({
            "id": int(frame["id"]),
            "event": frame["event"],
            "data": json.loads(frame["data"]),
        })
    return frames


class ScriptedRng:
    """Random source that returns queued values, for pinning exact rolls."""

    def __init__(self, ints=(), floats=()):
        self.ints = list(ints)
        self.floats = list(floats)

    def randint(self, a, b):
        value = self.ints.pop(0)
        assert a <= value <= b, f"scripted {value} outside [{a}, {b}]"
        return value

    def randrange(self, start, stop):
        value = self.ints.pop(0)
        assert start <= value < stop, f"scripted {value} outside [{start}, {stop})"
        return value

    def random(self):
        return self.floats.pop(0) if self.floats else 0.0
