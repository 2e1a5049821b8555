"""
Async SQLAlchemy engine and session factory.

Production runs on PostgreSQL through ``asyncpg``; pool sizing comes from
settings.  Sessions keep loaded attributes after commit because the
lifecycle engine returns rows to the API after committing.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from src.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base for the fleet tables."""


async def dispose_engine() -> None:
    await engine.dispose()
