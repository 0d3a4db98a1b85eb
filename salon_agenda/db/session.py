# salon_agenda/db/session.py

from typing import AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from salon_agenda.core.config import settings


def build_engine(url: str) -> AsyncEngine:
    """Async engine for PostgreSQL (asyncpg) or SQLite (aiosqlite)."""
    if make_url(url).get_backend_name() == "sqlite":
        # Writers from concurrent sessions wait for the file lock instead of failing
        return create_async_engine(url, connect_args={"timeout": 15})
    return create_async_engine(
        url,
        pool_pre_ping=True,  # avoids stale connection errors
        pool_size=5,
        max_overflow=10,
    )


# One engine per process
engine = build_engine(settings.async_db_uri)

# Short-lived sessions per request; objects stay usable after commit
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


class Base(DeclarativeBase):
    pass


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one session per request, closed afterwards."""
    async with AsyncSessionLocal() as session:
        yield session
