from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession
from sqlalchemy.orm import sessionmaker

from app.core.config import settings


def _enable_sqlite_transactions(engine: AsyncEngine) -> None:
    """Let SQLite honour transactions and SAVEPOINTs.

    The sqlite driver defers BEGIN until the first DML statement, which breaks
    savepoints and lets two writers read the same stale snapshot. Take over
    BEGIN ourselves and grab the write lock immediately.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine_for_url(url: str, **kwargs) -> AsyncEngine:
    if url.startswith("sqlite"):
        engine = create_async_engine(url, **kwargs)
        _enable_sqlite_transactions(engine)
        return engine
    return create_async_engine(url, pool_pre_ping=True, **kwargs)


def create_session_factory(bind: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


engine = create_engine_for_url(settings.DATABASE_URL)

# Create a session factory bound to the engine
AsyncSessionLocal = create_session_factory(engine)


# Dependency function for FastAPI to get a DB session
async def get_db() -> AsyncSession:
    """Dependency function to get DB session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
