"""
Database connection and session management.
Uses SQLAlchemy 2.0 async pattern.

The engine is owned by a ``Database`` handle that the application opens at
startup and closes at shutdown; nothing here is created at import time.
Bound parameters are never rendered into logs or error text, since user
inserts carry password hashes.
"""

from typing import Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from pharmacy_auth.logging_config import get_logger

logger = get_logger(__name__)


class Database:
    """Pooled connection handle to the credential database."""

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        timeout_seconds: float = 10.0,
    ):
        self.url = url
        self.echo = echo
        self.timeout_seconds = timeout_seconds
        self._engine: Optional[AsyncEngine] = None
        self._session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self) -> None:
        """Create the engine and session factory. Idempotent."""
        if self._engine is not None:
            return

        if self.is_sqlite:
            # SQLite with NullPool: every session gets its own connection
            engine = create_async_engine(
                self.url,
                echo=self.echo,
                hide_parameters=True,
                connect_args={
                    "check_same_thread": False,
                    "timeout": self.timeout_seconds,
                },
                poolclass=NullPool,
            )

            @event.listens_for(engine.sync_engine, "connect")
            def _set_sqlite_pragma(dbapi_conn, connection_record):
                """Enable foreign keys on every new SQLite connection."""
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()
        else:
            # PostgreSQL settings with connection pooling
            engine = create_async_engine(
                self.url,
                echo=self.echo,
                hide_parameters=True,
                pool_pre_ping=True,
                pool_size=5,
                max_overflow=10,
                pool_timeout=self.timeout_seconds,
            )

        self._engine = engine
        self._session_maker = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database engine created", extra={"dialect": engine.dialect.name})

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    def session(self) -> AsyncSession:
        """Return a new session; use as ``async with database.session() as s``."""
        if self._session_maker is None:
            raise RuntimeError("Database is not open")
        return self._session_maker()

    async def create_schema(self) -> None:
        """Create tables for all registered models."""
        from pharmacy_auth.kernel.models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        """Return True if a trivial query round-trips."""
        if self._engine is None:
            return False
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.warning("Database ping failed", exc_info=True)
            return False

    async def close(self) -> None:
        """Close database connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_maker = None
            logger.info("Database connections closed")
