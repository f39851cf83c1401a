from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.auth.otp import OtpCheck, digest
from app.database import set_session_factory
from app.dependencies import get_blob_store, get_otp_store
from app.main import app
from app.rate_limit import limiter
from shared.database.postgres import Base, get_async_engine, session_factory_for

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeBlobStore:
    """In-memory BlobStore."""

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self._seq = 0

    async def put(self, data: bytes, *, content_type: str, filename: str) -> str:
        self._seq += 1
        ref = f"syllabi/{self._seq}_{filename}"
        self.blobs[ref] = data
        return ref

    async def delete(self, ref: str) -> None:
        self.deleted.append(ref)
        self.blobs.pop(ref, None)

    async def url_for(self, ref: str) -> str:
        return f"https://blobs.test/{ref}?sig=abc"


class FakeOtpStore:
    """In-memory OtpStore with the same attempt semantics as the Redis one."""

    def __init__(self) -> None:
        self.codes: dict[str, str] = {}
        self.tries: dict[str, int] = {}
        self.last_code: str | None = None

    async def issue(self, key: str, code: str, ttl_seconds: int) -> None:
        self.codes[key] = digest(code)
        self.tries[key] = 0
        self.last_code = code

    async def check(self, key: str, code: str, max_attempts: int) -> OtpCheck:
        stored = self.codes.get(key)
        if stored is None:
            return OtpCheck.EXPIRED
        if self.tries[key] >= max_attempts:
            return OtpCheck.EXHAUSTED
        if stored != digest(code):
            self.tries[key] += 1
            return OtpCheck.EXHAUSTED if self.tries[key] >= max_attempts else OtpCheck.INVALID
        del self.codes[key]
        del self.tries[key]
        return OtpCheck.VALID


@pytest.fixture(autouse=True)
def _disable_rate_limits():
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    engine = get_async_engine(TEST_DATABASE_URL)

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = session_factory_for(engine)
    set_session_factory(factory)
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def otp_store() -> FakeOtpStore:
    return FakeOtpStore()


@pytest_asyncio.fixture
async def async_client(
    session_factory, blob_store: FakeBlobStore, otp_store: FakeOtpStore
) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_otp_store] = lambda: otp_store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()

