"""
Database Configuration.

This module handles the setup of the database connection using SQLModel
(which wraps SQLAlchemy). The engine is built from the configured connection
string when the process starts, so importing it has no side effects.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

engine_kwargs = {
    "pool_size": 10,
    "max_overflow": 20,
    "pool_timeout": 30,
    "pool_recycle": 1800,
    "pool_pre_ping": True,
}


def normalize_database_url(database_url: str) -> str:
    """Ensure usage of the asyncpg driver for PostgreSQL URLs."""
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


def create_engine(database_url: str) -> AsyncEngine:
    """Create the async engine; pool options only apply to server databases."""
    database_url = normalize_database_url(database_url)
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url)
    return create_async_engine(database_url, **engine_kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        autoflush=False,
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def check_connection(engine: AsyncEngine) -> None:
    """Run a trivial query so a bad connection string fails at startup."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
