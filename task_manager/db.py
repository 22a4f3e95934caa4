import logging
from typing import AsyncGenerator, Optional
from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from .config import normalize_database_url
from .models import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the async engine and session factory for one process.

    Nothing connects until open() is awaited; close() disposes the pool.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = normalize_database_url(url)
        self.echo = echo
        self.engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def is_open(self) -> bool:
        return self.engine is not None

    async def open(self) -> None:
        """Create the engine and make sure the tasks table exists"""
        if self.is_open:
            return

        if self.is_sqlite:
            self.engine = create_async_engine(self.url, echo=self.echo, future=True)
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_pragmas)
        else:
            self.engine = create_async_engine(
                self.url,
                echo=self.echo,
                future=True,
                pool_pre_ping=True,  # Verify connections before use
                pool_size=5,
                max_overflow=10,
                pool_timeout=20,
                pool_recycle=300,
            )

        self._session_factory = sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database ready url=%s", self.safe_url)

    async def close(self) -> None:
        """Dispose the engine; safe to call more than once"""
        if self.engine is None:
            return
        await self.engine.dispose()
        self.engine = None
        self._session_factory = None
        logger.info("Database connections closed")

    def session(self) -> AsyncSession:
        if self._session_factory is None:
            raise RuntimeError("Database is not open")
        return self._session_factory()

    @property
    def safe_url(self) -> str:
        # Hide credentials when logging
        if "@" not in self.url:
            return self.url
        scheme, _, rest = self.url.partition("://")
        return f"{scheme}://***@{rest.split('@', 1)[1]}"


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session"""
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session
