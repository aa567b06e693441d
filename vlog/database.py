from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from vlog.cache import POST_LISTS_STALE, cache
from vlog.config import settings
from vlog.middleware import install_query_counter

# Module-level engine variable allows tests to override with a test engine.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

# Register the per-request SQL query counter on the production engine.
install_query_counter(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


@asynccontextmanager
async def transaction_scope(session_factory: async_sessionmaker):
    """
    Run one unit of work in a single transaction.

    Every service call only flushes; the commit (or rollback on any
    exception) happens here, so a failed post mutation leaves no partial
    writes behind.  Post list pages flagged stale during the transaction
    are purged once more after the commit.
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        if session.info.pop(POST_LISTS_STALE, False):
            await cache.invalidate_posts()


async def get_db():
    """Yield one session per request inside ``transaction_scope``."""
    async with transaction_scope(async_session) as session:
        yield session
