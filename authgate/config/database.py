"""Async engine and session factory for the SQLAlchemy user providers."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .settings import settings

# Built on first use by a provider
async_engine: AsyncEngine | None = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None


def get_async_engine() -> AsyncEngine:
    """Get or create the engine for ``settings.DATABASE_URL``."""
    global async_engine
    if async_engine is None:
        options = {"echo": settings.DEBUG, "pool_pre_ping": True}
        if not settings.DATABASE_URL.startswith("sqlite"):
            options["pool_recycle"] = 3600
        async_engine = create_async_engine(settings.DATABASE_URL, **options)
    return async_engine


def get_async_session_local() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory handed to user providers."""
    global AsyncSessionLocal
    if AsyncSessionLocal is None:
        AsyncSessionLocal = async_sessionmaker(
            get_async_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return AsyncSessionLocal


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine and session factory."""
    global async_engine, AsyncSessionLocal
    if async_engine is not None:
        await async_engine.dispose()
    async_engine = None
    AsyncSessionLocal = None
