from loguru import logger
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from clinic.settings import settings


def create_engine(url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """Create the database engine, defaults come from settings."""
    return create_async_engine(
        url or str(settings.db_url),
        echo=settings.DB_ECHO if echo is None else echo,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to ``engine``."""
    return async_sessionmaker(
        engine,
        expire_on_commit=False,
    )


async def close_engine(engine: AsyncEngine) -> None:
    """Close database engine."""
    await engine.dispose()
    logger.info("Close database engine")
