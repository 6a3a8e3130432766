"""Async SQLAlchemy engine and session management."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from leave_ledger.config import settings

_engine_options: dict = {
    "echo": settings.ENVIRONMENT == "development" and settings.LOG_LEVEL == "debug",
    "pool_pre_ping": True,
}
# SQLite pools do not take sizing arguments
if not settings.DATABASE_URL.startswith("sqlite"):
    _engine_options.update(pool_size=10, max_overflow=20)

# Async engine for FastAPI
engine = create_async_engine(settings.DATABASE_URL, **_engine_options)

# Async session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


async def create_tables() -> None:
    """Create all tables known to the metadata (no-op for existing ones)."""
    import leave_ledger.common.audit  # noqa: F401
    import leave_ledger.core_hr.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db() -> AsyncSession:
    """FastAPI dependency: yield an async database session."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
