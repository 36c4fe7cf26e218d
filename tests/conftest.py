"""
Shared fixtures: in-memory SQLite database, token codec, credential service,
and an HTTP client wired to the FastAPI app.
"""

import os

os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from auth.jwt import TokenCodec
from auth.service import CredentialService
from database.models import Base

TEST_SECRET = "test-secret"


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def codec():
    return TokenCodec(TEST_SECRET)


@pytest.fixture
def service(db, codec):
    return CredentialService(db, codec)


@pytest.fixture
def app(session_factory, codec):
    from auth.dependencies import get_token_codec
    from database.session import get_db_session
    from main import create_app

    async def _test_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db_session] = _test_db_session
    app.dependency_overrides[get_token_codec] = lambda: codec
    return app


@pytest_asyncio.fixture
async def http(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def alice():
    return {
        "email": "alice@example.com",
        "password": "Secret123!",
        "firstName": "Alice",
        "lastName": "Liddell",
    }
