"""
Database engine and transactions for the SQL Entry Store.

Every public store call runs in its own short transaction. Inserts go
through Database.insert, which turns a uniqueness violation into the
caller's ConflictError so racing appends surface as a retryable conflict.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable

from sqlalchemy import event
from sqlalchemy.exc import IntegrityError as SAIntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ..config import get_settings
from ..errors import ConflictError
from .models import Base


class Database:
    """Async engine, session factory and schema setup."""

    def __init__(self, url: str | None = None, echo: bool | None = None):
        """
        Initialize database.

        Args:
            url: Database URL (default: from settings)
            echo: Log SQL statements (default: settings.debug)
        """
        settings = get_settings()
        self.url = url or settings.database_url

        self.engine = create_async_engine(
            self.url,
            echo=settings.debug if echo is None else echo,
        )
        if self.is_sqlite:
            event.listen(self.engine.sync_engine, "connect", _sqlite_pragmas)

        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @property
    def is_sqlite(self) -> bool:
        return self.engine.dialect.name == "sqlite"

    async def init_db(self) -> None:
        """Create the entry, checkpoint and certificate tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on success and rolls back on any error."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def insert(self, row: Base, conflict: Callable[[], ConflictError]) -> None:
        """
        Insert one row in its own transaction.

        Args:
            row: Mapped row to add
            conflict: Builds the error raised when a unique constraint rejects the row

        Raises:
            ConflictError: from ``conflict()``, chained to the driver error
        """
        try:
            async with self.session() as session:
                session.add(row)
        except SAIntegrityError as exc:
            raise conflict() from exc

    async def close(self) -> None:
        """Dispose of the engine's connection pool."""
        await self.engine.dispose()


def _sqlite_pragmas(dbapi_connection, connection_record) -> None:
    # Wait for a competing writer instead of failing with "database is locked"
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


# Global database instance
_db: Database | None = None


def get_db() -> Database:
    """Get or create global database instance."""
    global _db
    if _db is None:
        _db = Database()
    return _db


async def init_database() -> None:
    """Initialize database tables."""
    db = get_db()
    await db.init_db()
