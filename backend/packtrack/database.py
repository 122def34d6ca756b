from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from packtrack.config import settings


class Base(DeclarativeBase):
    pass


class Database:
    """Owns the engine and session factory for one process lifetime.

    Created unopened; the application lifespan calls ``open()`` on startup
    and ``close()`` on shutdown.
    """

    def __init__(self, url: str | None = None, **engine_kwargs):
        self.url = url or settings.database_url
        self.engine_kwargs = engine_kwargs
        self.engine: AsyncEngine | None = None
        self.sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_open(self) -> bool:
        return self.engine is not None

    def open(self) -> None:
        if self.is_open:
            return
        kwargs = dict(self.engine_kwargs)
        if self.url.startswith("postgresql"):
            kwargs.setdefault("pool_size", settings.database_pool_size)
            kwargs.setdefault("max_overflow", settings.database_max_overflow)
        self.engine = create_async_engine(self.url, echo=settings.database_echo, **kwargs)
        self.sessionmaker = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
        self.engine = None
        self.sessionmaker = None

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """Session scoped to one transaction: commit on exit, roll back on error."""
        if not self.is_open:
            raise RuntimeError("Database is not open")
        async with self.sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one transactional session per request."""
    db: Database = request.app.state.db
    async with db.sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
