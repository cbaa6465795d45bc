"""Database session factory setup."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel


def create_engine(db_url: str, pool_size: int = 5) -> AsyncEngine:
    """Create the async engine.

    SQLite URLs skip pool sizing since the dialect picks its own pool class.

    Args:
        db_url: SQLAlchemy async URL (sqlite+aiosqlite://... or postgresql+psycopg://...)
        pool_size: Maximum number of connections in the pool for server databases
    """
    if db_url.startswith("sqlite"):
        return create_async_engine(db_url, echo=False)

    return create_async_engine(
        db_url,
        pool_size=pool_size,
        max_overflow=0,
        pool_pre_ping=True,
        echo=False,
    )


def setup_db_session(
    db_url: str | None = None,
    pool_size: int = 5,
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create async database session factory.

    Args:
        db_url: Database connection URL, ignored when ``engine`` is given
        pool_size: Maximum number of connections in the pool (default: 5)
        engine: Existing engine to bind sessions to

    Returns:
        Async session factory for creating database sessions
    """
    if engine is None:
        if db_url is None:
            raise ValueError("db_url or engine is required")
        engine = create_engine(db_url, pool_size)

    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Prevent lazy loading issues after commit
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables registered on SQLModel metadata.

    Used by the CLI and tests; deployed databases are migrated with Alembic.
    """
    import illustrate.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
