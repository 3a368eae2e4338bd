"""
Database setup and engine management.
"""

import logging
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase


logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


# Sync driver scheme -> async driver scheme
ASYNC_DRIVERS = {
    "sqlite": "sqlite+aiosqlite",
    "postgresql": "postgresql+asyncpg",
    "mysql": "mysql+aiomysql",
}


def get_async_database_url(url: str) -> str:
    """Get the async database URL for a connection string.

    Converts sync URLs to async URLs if needed.
    e.g., sqlite:// -> sqlite+aiosqlite://
          postgresql:// -> postgresql+asyncpg://
          mysql:// -> mysql+aiomysql://
    """
    scheme, sep, rest = url.partition("://")

    # Explicit driver already given
    if not sep or "+" in scheme:
        return url

    if scheme in ASYNC_DRIVERS:
        return f"{ASYNC_DRIVERS[scheme]}://{rest}"

    return url


def with_database(url: str | URL, database: str) -> URL:
    """Return the URL pointing at the given database name."""
    return make_url(url).set(database=database)


def is_sqlite(url: str | URL) -> bool:
    """Check whether the URL targets SQLite."""
    return make_url(url).get_backend_name() == "sqlite"


def _ensure_sqlite_parent_dir(url: str | URL) -> None:
    """Ensure parent directory exists for SQLite database."""
    # Format: sqlite+aiosqlite:///./data/casbin.db or sqlite:////abs/path/casbin.db
    url = make_url(url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        db_path = Path(url.database)
        db_path.parent.mkdir(parents=True, exist_ok=True)


def create_async_db_engine(url: str | URL, echo: bool = False, **kwargs) -> AsyncEngine:
    """Create an async database engine."""
    if isinstance(url, str):
        url = get_async_database_url(url)
    _ensure_sqlite_parent_dir(url)
    return create_async_engine(url, echo=echo, **kwargs)


def create_async_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory."""
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def create_database(url: str | URL, database: str, echo: bool = False) -> None:
    """Create the named database on the server if it does not exist.

    Connects with the server-level URL, so the URL may omit a database.
    PostgreSQL has no CREATE DATABASE IF NOT EXISTS, so the catalog is
    checked first. Connection errors propagate to the caller.
    """
    engine = create_async_db_engine(url, echo=echo, isolation_level="AUTOCOMMIT")
    try:
        async with engine.connect() as conn:
            if engine.dialect.name == "postgresql":
                result = await conn.execute(
                    text("SELECT 1 FROM pg_database WHERE datname = :name"),
                    {"name": database},
                )
                if result.scalar() is None:
                    await conn.execute(text(f'CREATE DATABASE "{database}"'))
                    logger.info(f"Created database {database}")
            else:
                await conn.execute(text(f"CREATE DATABASE IF NOT EXISTS {database}"))
    finally:
        await engine.dispose()


async def init_db(engine: AsyncEngine) -> None:
    """Initialize the database, creating all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
