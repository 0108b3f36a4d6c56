# db.py
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)

from config import settings
from db_base import Base  # <- import Base from separate module


# ---------- Engine & Session (async) ----------

engine = create_async_engine(
    settings.DATABASE_URL,  # postgresql+asyncpg://... or sqlite+aiosqlite:///... in tests
    echo=settings.DEBUG,
    pool_pre_ping=not settings.DATABASE_URL.startswith("sqlite"),
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
    autocommit=False,
)


# ---------- Optional init helper (for dev only) ----------

async def init_db() -> None:
    """
    Optional helper to create tables from ORM metadata.

    In production, prefer Alembic migrations.
    """
    # Import models so they are registered on Base.metadata
    import db_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db() -> None:
    """Drop every table known to the ORM metadata."""
    import db_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def dispose_engine() -> None:
    await engine.dispose()


# ---------- FastAPI dependency ----------

async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async DB session."""
    async with AsyncSessionLocal() as session:
        yield session
