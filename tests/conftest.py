import os
import uuid

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./spark-test.db")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

import app.models  # noqa: F401
from app.crud import crud_user
from app.db.base_class import Base
from app.db.session import create_engine_for_url, create_session_factory
from app.services import discovery_service, message_service

# Manila and nearby points, used across the feed tests
MANILA = (14.5995, 120.9842)
QUEZON_CITY = (14.6760, 121.0437)  # ~10 km from Manila
CEBU = (10.3157, 123.8854)  # ~570 km from Manila


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "spark.sqlite"
    engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(engine)
    engine.dispose()
    return path


@pytest_asyncio.fixture
async def session_factory(db_path):
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(session_factory):
    """Create a committed user in a short-lived session of its own.

    Create users before reading through ``db``: an open SQLite transaction
    holds the write lock until it ends.
    """

    async def _make(name="user", age=25, position=MANILA, **fields):
        async with session_factory() as session:
            return await crud_user.create_user(
                session,
                email=f"{name}-{uuid.uuid4().hex[:8]}@example.com",
                name=name,
                age=age,
                latitude=position[0],
                longitude=position[1],
                **fields,
            )

    return _make


@pytest.fixture(autouse=True)
def emitted(monkeypatch):
    """Socket.IO events the services tried to push, as (event, data, user_ids)."""
    events = []

    async def _record(event, data, user_ids):
        events.append((event, data, list(user_ids)))

    monkeypatch.setattr(discovery_service, "emit_to_users", _record)
    monkeypatch.setattr(message_service, "emit_to_users", _record)
    return events
