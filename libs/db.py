# libs/db.py
import os
from typing import AsyncIterator, Optional
from urllib.parse import quote_plus

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[sessionmaker] = None


def get_database_url() -> str:
    """
    DATABASE_URL wins; otherwise the URL is built from DATABASE_* parts so
    Kubernetes deployments can use separate env vars.
    """
    if "DATABASE_URL" in os.environ:
        return os.environ["DATABASE_URL"]

    db_host = os.getenv("DATABASE_HOST", "127.0.0.1")
    db_port = os.getenv("DATABASE_PORT", "5432")
    db_user = os.getenv("DATABASE_USER", "tourist_safety")
    db_password = os.getenv("DATABASE_PASSWORD", "")
    db_name = os.getenv("DATABASE_NAME", "tourist_safety")

    db_password_encoded = quote_plus(db_password) if db_password else ""
    return f"postgresql+asyncpg://{db_user}:{db_password_encoded}@{db_host}:{db_port}/{db_name}"


def get_engine() -> AsyncEngine:
    """Engine is created on first use so the in-memory backend never needs a driver."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(get_database_url(), echo=False, future=True)
    return _engine


def get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


async def get_db() -> AsyncIterator[AsyncSession]:
    """Async session for FastAPI dependency injection."""
    async with get_session_factory()() as session:
        yield session


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
