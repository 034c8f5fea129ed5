import os

os.environ["STORAGE_BACKEND"] = "sql"
os.environ["AUTH_PROVIDER"] = "jwt"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["DATABASE_AUTO_CREATE"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-with-enough-bytes-for-hs256"

from typing import Callable, List, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from simulados.core.auth import TokenData, get_current_user
from simulados.core.database import Base, make_sessionmaker
from simulados.main import app
from simulados.models import orm  # noqa: F401
from simulados.models.schemas import Alternative, Difficulty, Question, QuestionCreate
from simulados.storage.factory import get_storage
from simulados.storage.sql import SqlStorage


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine):
    return make_sessionmaker(engine)


@pytest.fixture
async def storage(sessionmaker):
    async with sessionmaker() as session:
        yield SqlStorage(session)


@pytest.fixture
def make_question(storage) -> Callable:
    """Insert a question; only the fields a test cares about need to be given."""
    counter = {"n": 0}

    async def _make(subject: str = "Matemática", difficulty: Difficulty = Difficulty.MEDIUM,
                    correct: str = "a", is_active: bool = True, **extra) -> Question:
        counter["n"] += 1
        data = QuestionCreate(
            title=f"{subject} #{counter['n']}",
            statement=f"Enunciado {counter['n']}",
            alternatives=[Alternative(id=i, text=f"Alternativa {i}") for i in ("a", "b", "c", "d")],
            correct_alternative=correct,
            subject=subject,
            difficulty=difficulty,
            is_active=is_active,
            **extra,
        )
        return await storage.create_question(data)

    return _make


@pytest.fixture
def login() -> Callable:
    """Swap the identity dependency for a fixed user."""
    def _login(sub: str = "user-1", roles: Optional[List[str]] = None) -> TokenData:
        user = TokenData(sub=sub, roles=roles or ["student"])
        app.dependency_overrides[get_current_user] = lambda: user
        return user

    return _login


@pytest.fixture
async def client(sessionmaker, login):
    async def override_storage():
        async with sessionmaker() as session:
            yield SqlStorage(session)

    app.dependency_overrides[get_storage] = override_storage
    login()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
