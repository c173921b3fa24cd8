from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from upskill.config.settings import get_settings


settings = get_settings()


def create_app_engine(database_url: str | None = None) -> AsyncEngine:
    """Create the async engine.

    - Postgres (asyncpg): standard pool with pre-ping.
    - SQLite (aiosqlite, local runs and tests): driver defaults, no pool sizing.
    """
    database_url = database_url or settings.DATABASE_URL

    kwargs: dict[str, Any] = {"echo": False}  # Set True for SQL debugging
    if database_url.startswith("postgresql"):
        kwargs.update(
            pool_size=10,
            max_overflow=10,
            pool_recycle=3600,  # ~1h
            pool_pre_ping=True,
            pool_use_lifo=True,
            connect_args={"timeout": 10},
        )

    return create_async_engine(database_url, **kwargs)


# Create the engine
engine: AsyncEngine = create_app_engine()
