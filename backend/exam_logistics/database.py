# backend/exam_logistics/database.py

"""
Async engine and session management for the allocation store.
"""

import asyncio
import logging
import os
from typing import Optional, AsyncGenerator, Dict, Any
from contextlib import asynccontextmanager

from sqlalchemy import text, event
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from .models import Base

logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Raised when the database cannot be reached or initialised."""

    pass


def _normalise_url(db_url: str) -> str:
    # Convert sync prefixes to their async drivers
    if db_url.startswith("postgresql://"):
        return db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if db_url.startswith("sqlite://") and "+aiosqlite" not in db_url:
        return db_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return db_url


class DatabaseManager:
    """Manages the async SQLAlchemy engine and session factory."""

    def __init__(self) -> None:
        self.engine: Optional[AsyncEngine] = None
        self.AsyncSessionLocal: Optional[async_sessionmaker] = None
        self._is_initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    async def initialize(
        self,
        database_url: Optional[str] = None,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
        echo: bool = False,
        max_retries: int = 3,
        retry_delay: float = 1,
    ) -> None:
        """
        Initialize async engine and async session factory.
        Retries on failure.
        """
        if self._is_initialized:
            logger.warning("Database already initialized")
            return

        db_url = database_url or os.getenv("DATABASE_URL")
        if not db_url:
            raise ValueError(
                "Database URL is required and must be async driver compatible"
            )
        db_url = _normalise_url(db_url)
        is_sqlite = db_url.startswith("sqlite")

        last_error: Optional[BaseException] = None
        for attempt in range(max_retries):
            try:
                if is_sqlite:
                    # A single shared connection keeps in-memory databases alive
                    self.engine = create_async_engine(
                        db_url,
                        echo=echo,
                        poolclass=StaticPool,
                        connect_args={"check_same_thread": False},
                    )
                else:
                    self.engine = create_async_engine(
                        db_url,
                        echo=echo,
                        pool_size=pool_size,
                        max_overflow=max_overflow,
                        pool_timeout=pool_timeout,
                        pool_recycle=pool_recycle,
                        pool_pre_ping=True,
                    )

                self.AsyncSessionLocal = async_sessionmaker(
                    bind=self.engine, expire_on_commit=False, class_=AsyncSession
                )

                self._setup_event_listeners(is_sqlite)
                await self._test_connection()

                self._is_initialized = True
                logger.info(f"Async database initialized successfully ({db_url.split('://')[0]})")
                return
            except (SQLAlchemyError, OSError) as e:
                last_error = e
                logger.error(
                    f"Database initialization attempt {attempt + 1}/{max_retries} failed: {e}"
                )
                if self.engine is not None:
                    await self.engine.dispose()
                    self.engine = None
                if attempt < max_retries - 1:
                    await asyncio.sleep(retry_delay * (attempt + 1))

        raise DatabaseError(
            f"Failed to initialize async database after {max_retries} attempts"
        ) from last_error

    def _setup_event_listeners(self, is_sqlite: bool) -> None:
        """Attach listeners to the underlying sync engine."""
        if not self.engine:
            return

        sync_engine = self.engine.sync_engine

        if is_sqlite:

            @event.listens_for(sync_engine, "connect")
            def enable_foreign_keys(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        @event.listens_for(sync_engine, "checkout")
        def on_checkout(dbapi_connection, connection_record, connection_proxy):
            logger.debug("Connection checked out from pool")

    async def _test_connection(self) -> None:
        """Run a lightweight query to ensure connectivity."""
        if self.engine is None:
            raise DatabaseError("Engine not initialized")

        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection test successful")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Async context manager returning an AsyncSession."""
        if not self._is_initialized or not self.AsyncSessionLocal:
            raise DatabaseError("Database not initialized. Call initialize() first.")

        async with self.AsyncSessionLocal() as session:
            try:
                yield session
            except Exception as e:
                logger.error(f"Async DB session error: {e}")
                await session.rollback()
                raise

    @asynccontextmanager
    async def get_db_transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """Async context manager with commit on success and rollback on failure."""
        if not self._is_initialized or not self.AsyncSessionLocal:
            raise DatabaseError("Database not initialized. Call initialize() first.")

        async with self.AsyncSessionLocal() as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                logger.error(f"Transaction error ({type(e).__name__}): {e}")
                await session.rollback()
                raise

    async def create_all_tables(self) -> None:
        """Create every mapped table."""
        if self.engine is None:
            raise DatabaseError("Database not initialized")

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("All tables created successfully")

    async def drop_all_tables(self) -> None:
        if self.engine is None:
            raise DatabaseError("Database not initialized")

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("All tables dropped successfully")

    async def close(self) -> None:
        """Dispose the async engine."""
        if self.engine:
            await self.engine.dispose()
            logger.info("Database connections closed")
        self.engine = None
        self.AsyncSessionLocal = None
        self._is_initialized = False


# Global manager
db_manager = DatabaseManager()


async def init_db(
    database_url: Optional[str] = None,
    create_tables: bool = False,
) -> DatabaseManager:
    """Initialize the global database manager from settings."""
    from .config import get_settings

    settings = get_settings()
    config = settings.database_config
    await db_manager.initialize(
        database_url=database_url or settings.DATABASE_URL,
        pool_size=config["pool_size"],
        max_overflow=config["max_overflow"],
        pool_timeout=config["pool_timeout"],
        pool_recycle=config["pool_recycle"],
        echo=config["echo"],
    )

    if create_tables:
        await db_manager.create_all_tables()
    return db_manager


async def check_db_health(manager: Optional[DatabaseManager] = None) -> Dict[str, Any]:
    """Async health check."""
    manager = manager or db_manager
    try:
        if manager.engine is None:
            raise DatabaseError("Engine not initialized")

        async with manager.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "message": "Database is accessible",
        }
    except (DatabaseError, SQLAlchemyError) as e:
        return {
            "status": "unhealthy",
            "error": str(e),
            "message": "Database connection failed",
        }
