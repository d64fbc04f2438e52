# ============================================================================
# Database Connection
# ============================================================================
from fastapi import Request
from sqlalchemy.ext.asyncio import (
    create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
)
from sqlalchemy.orm import DeclarativeBase
import logging

logger = logging.getLogger(__name__)

# Define Base FIRST (very important)
class Base(DeclarativeBase):
    pass

def normalize_database_url(database_url: str) -> str:
    """Convert postgresql:// to postgresql+asyncpg://"""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url

def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    database_url = normalize_database_url(database_url)
    logger.info(
        f"📦 Connecting to database: {database_url.split('@')[1] if '@' in database_url else database_url}"
    )

    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=echo)

    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )

def build_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )

def insert_ignoring_conflicts(session: AsyncSession, model):
    """
    Dialect-specific INSERT that silently skips rows violating a unique
    constraint (ON CONFLICT DO NOTHING). Callers chain `.values()` and,
    optionally, `.returning()` to learn whether the row was written.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise RuntimeError(f"Conditional inserts are not supported on '{dialect}'")

    return insert(model).on_conflict_do_nothing()

async def get_db(request: Request):
    session_maker = request.app.state.session_maker
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
