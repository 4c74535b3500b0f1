"""
Database Engine and Session Factory

The engine and the session factory are built explicitly, once per process,
by the application lifespan (see ``kbase.main``) and kept on ``app.state``.
Nothing here opens a connection at import time, so tests and scripts can
build their own engine against a different database.

Architecture Flow:
------------------
Lifespan start → create_engine() → create_session_factory() → app.state
↓
API Request → get_db() → one AsyncSession / one transaction → commit/rollback
↓
Lifespan end → close_db() → engine.dispose()

Learning Resources:
- SQLAlchemy Engine: https://docs.sqlalchemy.org/en/20/core/engines.html
- Async Sessions: https://docs.sqlalchemy.org/en/20/orm/extensions/asyncio.html
- SQLite savepoints: https://docs.sqlalchemy.org/en/20/dialects/sqlite.html#serializable-isolation-savepoints-transactional-ddl
"""

from typing import Any, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool

from kbase.core.config import settings
from kbase.core.logging import get_logger

logger = get_logger(__name__)


# ================================
# Database Engine Configuration
# ================================

def get_engine_config(database_url: str) -> dict[str, Any]:
    """
    Engine keyword arguments for the given URL and the current APP_ENV.

    PostgreSQL (asyncpg):
    - development / production: pooled (DB_POOL_SIZE + DB_MAX_OVERFLOW)
    - testing / staging: NullPool, every checkout is a fresh connection
    - pool_pre_ping detects connections dropped by the server

    SQLite (aiosqlite) takes none of the pool sizing options.
    """
    config: dict[str, Any] = {"echo": settings.DB_ECHO}

    if database_url.startswith("sqlite"):
        logger.info("configuring_database_engine", dialect="sqlite")
        return config

    config.update({
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "pool_timeout": 30,
        "connect_args": {
            "server_settings": {"application_name": settings.APP_NAME},
        },
    })

    if settings.is_development or settings.is_production:
        logger.info(
            "configuring_database_engine",
            environment=settings.APP_ENV,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )
        config.update({
            "poolclass": AsyncAdaptedQueuePool,
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
        })
        if settings.is_production:
            config["pool_recycle"] = 7200
    else:
        logger.info(
            "configuring_database_engine",
            environment=settings.APP_ENV,
            pool_type="NullPool",
        )
        config["poolclass"] = NullPool

    return config


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    Make SQLite behave like PostgreSQL for our transaction usage.

    The sqlite3 driver issues its own BEGIN lazily, which breaks SAVEPOINT
    (``session.begin_nested()``). Turning that off and emitting BEGIN from
    SQLAlchemy's "begin" event restores proper nesting. Foreign keys are
    off by default in SQLite and are switched on per connection.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_engine(database_url: Optional[str] = None, **overrides: Any) -> AsyncEngine:
    """
    Create the async database engine.

    Args:
        database_url: Defaults to settings.DATABASE_URL
        **overrides: Extra create_async_engine() arguments (tests pass
            ``poolclass=StaticPool`` for a shared in-memory SQLite)

    Returns:
        AsyncEngine: The database engine instance
    """
    url = database_url or settings.DATABASE_URL
    engine_config = get_engine_config(url)
    engine_config.update(overrides)

    engine = create_async_engine(url, **engine_config)

    if url.startswith("sqlite"):
        _enable_sqlite_savepoints(engine)

    logger.info(
        "database_engine_created",
        driver=engine.dialect.driver,
        pool_size=engine_config.get("pool_size", "default"),
    )
    return engine


# ================================
# Session Factory
# ================================

def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Build the factory every request session comes from.

    - autoflush=False: services flush explicitly when they need generated ids
    - expire_on_commit=False: objects stay readable after the final commit,
      which lets routes serialize what the service returned
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


# ================================
# Lifecycle Functions
# ================================

async def init_db(engine: AsyncEngine, create_tables: bool = False) -> None:
    """
    Verify connectivity, optionally creating tables.

    Production schemas come from Alembic migrations; ``create_tables`` is
    only switched on for development and SQLite runs.
    """
    logger.info("initializing_database")

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))

        logger.info("database_connection_successful")

        if create_tables:
            import kbase.models  # noqa: F401  (registers every table)
            from kbase.db.base import Base

            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            logger.info("database_tables_created")

    except Exception as e:
        logger.error(
            "database_initialization_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise


async def close_db(engine: AsyncEngine) -> None:
    """Dispose of the connection pool at shutdown."""
    logger.info("closing_database_connections")

    try:
        await engine.dispose()
        logger.info("database_connections_closed")
    except Exception as e:
        # Shutting down anyway
        logger.error(
            "database_closure_failed",
            error=str(e),
            error_type=type(e).__name__,
        )


# ================================
# Database Health Check
# ================================

async def check_db_health(engine: AsyncEngine) -> bool:
    """
    Ping the database.

    Returns:
        bool: True if a trivial query succeeds, False otherwise
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    except Exception as e:
        logger.error(
            "database_health_check_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        return False
