"""Async Session Factory — provides async DB sessions for direct usage outside FastAPI.

Invariants:
    - Same engine options as DatabaseSessionManager (SQLite gets foreign keys on)
    - Meant for scripts and test fixtures (file-backed race databases)

Design Decisions:
    - Separate from infrastructure/database.py: convenience for non-FastAPI contexts
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.infrastructure.database import build_engine


def create_session_factory(
    database_url: str,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory for the given database URL."""
    engine = build_engine(database_url)
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )
