import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from msgbroker.config import Settings

logger = logging.getLogger(__name__)

settings = Settings()

async_engine = create_async_engine(
    settings.database_url,
    echo=(settings.environment == "development"),
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
)

AsyncSessionFactory = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(AsyncAttrs, DeclarativeBase):
    pass


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run one broker operation as a single unit of work.

    Everything flushed inside the block is committed together on exit, or
    rolled back together if the block raises. Domain errors roll back too,
    so a rejected publish leaves no rows behind.
    """
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        logger.debug("Broker transaction rolled back", exc_info=True)
        raise


async def create_schema(engine: AsyncEngine) -> None:
    # Register the tables on Base.metadata.
    from msgbroker.models import message, subscription, topic  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
