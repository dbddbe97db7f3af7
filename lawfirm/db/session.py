"""
db/session.py
-------------
One async engine per process and the request-scoped session dependency.

  - PostgreSQL (asyncpg): pooled, 10 + 20 overflow, pre-ping, hourly recycle.
  - SQLite (aiosqlite, local runs and tests): NullPool, one connection per
    checkout.
  - expire_on_commit=False: committed objects stay readable without an
    implicit async refresh.
  - Services that must persist state before raising (lockout counter, AI
    job status, invitation expiry) commit explicitly; everything else is
    committed by get_db when the handler returns.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from lawfirm.core.config import settings


def _engine_options(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        return {"poolclass": NullPool}
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


# ── Engine ────────────────────────────────────────────────────────────────────
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_options(settings.DATABASE_URL),
)

# ── Session Factory ───────────────────────────────────────────────────────────
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yields a session; commit on return, rollback on any exception."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
