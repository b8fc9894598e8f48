"""Async database engine and session management."""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings


def _engine_options(url: str) -> dict:
    """Pool sizing only applies to server databases; SQLite (tests) uses its own pool."""
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": 20, "max_overflow": 10, "pool_pre_ping": True}


engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    **_engine_options(settings.database_url),
)

async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session. Used as a FastAPI dependency."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
