from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool
from shiftdesk.config import get_settings
from shiftdesk.services.realtime_service import realtime_broker

settings = get_settings()


def _engine_options(url: str) -> dict:
    # In-memory SQLite only lives as long as its single connection.
    if url.startswith("sqlite") and (url.endswith("://") or ":memory:" in url):
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_async_engine(
    settings.database_url,
    echo=settings.sql_echo,
    **_engine_options(settings.database_url),
)
if settings.database_url.startswith("sqlite"):
    # SQLite ignores ON DELETE rules unless asked per connection
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db():
    """
    One session and one transaction per request. Commits when the handler
    returns, rolls back on any exception, then publishes the realtime events
    the request queued.

    Routes depend on it with ``scope="function"`` so the commit completes
    before the response is sent.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            realtime_broker.discard_pending(session)
            raise
        realtime_broker.publish_pending(session)
