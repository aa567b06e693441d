"""
Test infrastructure for the vlog API.

Strategy
--------
- SQLite in-memory via aiosqlite, shared through ``StaticPool`` because an
  in-memory database only exists on the connection that created it.
- pysqlite/aiosqlite defer BEGIN on their own, which breaks SAVEPOINT
  (used by tag get-or-create and likes).  The two engine listeners below
  switch the driver's implicit transactions off and emit BEGIN ourselves.
- ``get_db`` is overridden so every request uses the test session factory
  with the same commit/rollback boundary as production.
- Tables are created before and dropped after each test.
- Redis is disabled (``cache._redis = None``); the CacheManager treats that
  as a permanent miss, so every test reads through to the database.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from vlog.cache import cache
from vlog.config import settings
from vlog.database import Base, get_db, transaction_scope
from vlog.main import app
from vlog.middleware import install_query_counter
from vlog.models import Blog, User

# Cheapest bcrypt cost; hashing strength is irrelevant in tests.
settings.BCRYPT_ROUNDS = 4

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine_test.sync_engine, "connect")
def _disable_driver_begin(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine_test.sync_engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with transaction_scope(async_session_test) as session:
        yield session


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    cache._redis = None
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live session for service-level tests (seeding, asserting ORM state)."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def query_log():
    """Collect every SELECT sent to the test engine while the test runs."""
    statements: list[str] = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith("SELECT"):
            statements.append(statement)

    event.listen(engine_test.sync_engine, "before_cursor_execute", _record)
    yield statements
    event.remove(engine_test.sync_engine, "before_cursor_execute", _record)


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory: ``await make_user("nick", with_blog=True)`` -> persisted User."""

    async def _make(nickname: str, with_blog: bool = True) -> User:
        user = User(email=f"{nickname}@example.com", nickname=nickname, password="not-a-hash")
        db_session.add(user)
        await db_session.flush()
        if with_blog:
            db_session.add(Blog(title=f"{nickname}'s blog", user_id=user.id))
            await db_session.flush()
        return user

    return _make
