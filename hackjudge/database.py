"""
hackjudge/database.py
Database configuration for the judge queue.

Two session factories share one engine:
- AsyncSessionLocal: plain sessions for reads (statistics, dashboards)
- WriteSessionLocal: sessions whose transactions take the write lock up front
  (SQLite BEGIN IMMEDIATE, SERIALIZABLE elsewhere). The locking allocator and
  completion path use these so check-then-write runs as one unit.
"""
import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from hackjudge.config.settings import Settings
from hackjudge.orm.base import Base
import hackjudge.orm  # ensures all models are registered

logger = logging.getLogger(__name__)

IMMEDIATE_OPTION = "hackjudge_immediate"


def is_sqlite_url(url: str) -> bool:
    return "sqlite" in url.lower()


def create_engine_for(url: str, busy_timeout: float = Settings.DB_BUSY_TIMEOUT_SECONDS) -> AsyncEngine:
    """
    Create an async engine.

    SQLite: pysqlite's implicit BEGIN is disabled so that we control the
    BEGIN statement ourselves; write sessions emit BEGIN IMMEDIATE, which
    takes the RESERVED lock before the first read of the transaction.
    """
    if is_sqlite_url(url):
        engine = create_async_engine(
            url,
            echo=False,
            future=True,
            pool_pre_ping=True,
            pool_size=10,           # Keep some connections ready
            max_overflow=20,        # Allow more connections under load
            pool_timeout=30,        # Wait up to 30s for connection
            connect_args={
                "timeout": busy_timeout,   # SQLite busy timeout in seconds
            }
        )
        _install_sqlite_begin_hooks(engine)
    else:
        engine = create_async_engine(
            url,
            echo=False,
            future=True,
            pool_pre_ping=True,
            pool_size=20,
            max_overflow=30,
            pool_timeout=30,
            pool_recycle=3600,
        )
    return engine


def _install_sqlite_begin_hooks(engine: AsyncEngine) -> None:
    file_backed = engine.url.database not in (None, "", ":memory:")

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_implicit_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        if file_backed:
            # WAL lets statistics readers run while the allocator holds the write lock
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        if conn.get_execution_options().get(IMMEDIATE_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def write_engine_for(engine: AsyncEngine) -> AsyncEngine:
    """Engine view whose transactions serialize writers."""
    if engine.dialect.name == "sqlite":
        return engine.execution_options(**{IMMEDIATE_OPTION: True})
    return engine.execution_options(isolation_level="SERIALIZABLE")


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = create_engine_for(Settings.DATABASE_URL)

AsyncSessionLocal = make_session_factory(engine)
WriteSessionLocal = make_session_factory(write_engine_for(engine))


async def get_db():
    """Dependency for getting async database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


def get_read_session_factory() -> async_sessionmaker:
    """Dependency for the plain session factory used for candidate selection."""
    return AsyncSessionLocal


def get_write_session_factory() -> async_sessionmaker:
    """Dependency for the write session factory used by the allocator."""
    return WriteSessionLocal


async def create_tables(target: AsyncEngine) -> None:
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db():
    """
    Initialize database: create tables if they don't exist.
    """
    logger.info("Initializing database...")

    try:
        logger.info(f"Database dialect: {engine.url.get_backend_name()}")
        await create_tables(engine)

        logger.info("✓ Database initialization complete")

    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise


async def close_db():
    """Close database connection"""
    await engine.dispose()
    logger.info("Database connection closed")
