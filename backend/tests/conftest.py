import os
import tempfile

# Settings are read once at import time, so the environment has to be ready first.
_tmp_dir = tempfile.mkdtemp(prefix="dietcoach-tests-")
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_tmp_dir, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret"

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from dietcoach import models  # noqa: F401
from dietcoach.core.database import engine, Base, SessionLocal
from dietcoach.models.user import User
from dietcoach.providers import ProviderResponse


@pytest_asyncio.fixture
async def db_setup():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(db_setup):
    async with SessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def user(db):
    u = User(email="coach@example.com", first_name="Asha", dietary_preference="vegetarian")
    db.add(u)
    await db.commit()
    await db.refresh(u)
    return u


def reply(content):
    return ProviderResponse(content=content, meta_data={"provider": "openai"})


@pytest.fixture
def mock_provider():
    provider = MagicMock()
    provider.generate = AsyncMock()
    provider.stream_generate = AsyncMock()
    return provider


def text_chunk(text):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text, tool_calls=None))])


def tool_chunk(index, call_id=None, name=None, arguments=None):
    call = SimpleNamespace(index=index, id=call_id, function=SimpleNamespace(name=name, arguments=arguments))
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=None, tool_calls=[call]))])


async def fake_stream(*chunks):
    for chunk in chunks:
        yield chunk
