import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy import event

from app.config import settings
from app.models import Base

logger = logging.getLogger(__name__)

# Engine and session factory - initialized in init_db() during startup
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _create_session_factory(engine):
    """Create async session factory from engine"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory (initialized in init_db)"""
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() during startup.")
    return _session_factory


def create_engine_for_path(database_path: str, *, busy_timeout_sec: int | None = None) -> AsyncEngine:
    """
    Create an async SQLite engine with WAL enabled on every connection.

    Args:
        database_path: Filesystem path of the SQLite database
        busy_timeout_sec: How long a writer waits on a locked database before failing
    """
    timeout = busy_timeout_sec if busy_timeout_sec is not None else settings.sqlite_busy_timeout_sec
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{database_path}",
        echo=False,
        pool_pre_ping=True,
        connect_args={"timeout": timeout, "check_same_thread": False},
    )

    def configure_sqlite(dbapi_conn, _):
        """Configure SQLite connection parameters"""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode = WAL")
        cursor.execute("PRAGMA synchronous = NORMAL")
        cursor.close()

    event.listen(engine.sync_engine, "connect", configure_sqlite)
    return engine


async def init_db(database_path: str | None = None) -> async_sessionmaker[AsyncSession]:
    """Initialize database schema, engine and session factory"""
    global _engine, _session_factory

    path = database_path or settings.database_path
    logger.info("Initializing database at %s", path)

    _engine = create_engine_for_path(path)

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    _session_factory = _create_session_factory(_engine)

    logger.info("Database initialized successfully")
    return _session_factory


async def close_db() -> None:
    """Close database connections on shutdown"""
    global _engine, _session_factory
    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database connections closed")


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncIterator[AsyncSession]:
    """
    Provide an async session wrapped in a transaction that commits on success
    and rolls back on error.

    Args:
        session_factory: Factory to use; defaults to the one created by init_db()
    """
    factory = session_factory or get_session_factory()

    async with factory() as session:
        async with session.begin():
            yield session
