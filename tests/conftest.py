from __future__ import annotations
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.db.session import get_db, init_models
from app.main import app as fastapi_app
from app.models.group import Group, GroupMember
from app.models.user import User
from tests.helpers import ALICE, BOB, CAROL, DAVE, FAMILY


@pytest.fixture()
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture()
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def family(session_factory):
    """Alice, Bob and Carol share household 1. Dave is registered but outside it."""
    async with session_factory() as session:
        session.add_all([
            User(id=ALICE, name="Alice", email="alice@example.com"),
            User(id=BOB, name="Bob", email="bob@example.com"),
            User(id=CAROL, name="Carol", email="carol@example.com"),
            User(id=DAVE, name="Dave", email="dave@example.com"),
        ])
        session.add(Group(id=FAMILY, name="Home", created_by=ALICE))
        await session.flush()
        session.add_all([GroupMember(group_id=FAMILY, user_id=uid) for uid in (ALICE, BOB, CAROL)])
        await session.commit()
    return {"group_id": FAMILY, "members": [ALICE, BOB, CAROL]}


@pytest.fixture()
async def client(session_factory, family):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as c:
        yield c
    fastapi_app.dependency_overrides.clear()

