"""Connection pool for one answer-store database.

The server creates a ``Database`` in its lifespan from ``DatabaseSettings``,
builds the ``SqlAnswerStore`` over it and disposes it on shutdown::

    database = Database(load_database_settings())
    store = database.answer_store()
    ...
    await database.dispose()

Creating a ``Database`` opens no connection; the pool connects lazily.
"""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from triage_db.config import DatabaseSettings
from triage_db.store import SqlAnswerStore

logger = logging.getLogger(__name__)


class Database:
    """Async engine plus the session factory handed to ``SqlAnswerStore``."""

    def __init__(self, settings: DatabaseSettings) -> None:
        self.settings = settings
        self.engine = create_async_engine(
            settings.url,
            echo=settings.echo,
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_pre_ping=True,
        )
        # Answers loaded by one session stay readable after its commit
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def answer_store(self) -> SqlAnswerStore:
        return SqlAnswerStore(self.session_factory)

    async def ping(self) -> None:
        """Round-trip ``SELECT 1``; raises if the database is unreachable."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Answer database pool disposed")
