import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import src.domain.entities  # noqa: F401  (registers tables)
from src.adapter.services.in_memory_rate_limiter import InMemoryRateLimiter
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.depends import (
    get_code_sender,
    get_password_hasher,
    get_rate_limiter,
    get_unit_of_work,
)
from tests.fixtures.json_loader import TestDataLoader
from tests.utils.code_sender import CapturingCodeSender


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    Session = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with Session() as session:
        yield session


@pytest.fixture
def code_sender():
    return CapturingCodeSender()


@pytest.fixture
def rate_limiter():
    return InMemoryRateLimiter()


@pytest_asyncio.fixture
async def client(db_session, fast_hasher, code_sender, rate_limiter):
    from src.api.app import create_app
    from config import ApplicationConfig

    app = create_app(ApplicationConfig)

    async def override_get_unit_of_work():
        yield SqlAlchemyUnitOfWork(db_session)

    app.dependency_overrides[get_unit_of_work] = override_get_unit_of_work
    app.dependency_overrides[get_password_hasher] = lambda: fast_hasher
    app.dependency_overrides[get_code_sender] = lambda: code_sender
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def registered(client):
    """alice, registered; returns the register response body"""
    alice = TestDataLoader.get_copy("alice")
    response = await client.post("/auth/register", json=alice)
    assert response.status_code == 201
    return response.json()
