"""
Database Session Management

Lazily created async engine and session maker shared by the SQL repositories.
PostgreSQL (asyncpg) in production, SQLite (aiosqlite) for local runs.
"""

import logging
import ssl
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from adminguard.api.config import settings

logger = logging.getLogger("ADMINGUARD_Db")

_engine: Optional[AsyncEngine] = None
_async_session_maker: Optional[async_sessionmaker] = None


def _engine_options(url: str) -> Dict[str, Any]:
    """Pool and driver options for the configured backend."""
    backend = make_url(url).get_backend_name()

    if backend == "sqlite":
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }

    connect_args: Dict[str, Any] = {}
    if settings.DATABASE_SSL:
        context = ssl.create_default_context()
        if not settings.DATABASE_SSL_VERIFY:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = context

    # Every repository call opens its own short transaction
    return {"poolclass": NullPool, "connect_args": connect_args}


def get_engine() -> AsyncEngine:
    """Get or create the database engine."""
    global _engine

    if _engine is None:
        url = settings.DATABASE_URL
        logger.info(f"Creating engine for {make_url(url).render_as_string(hide_password=True)}")
        _engine = create_async_engine(url, echo=settings.DATABASE_ECHO, **_engine_options(url))

    return _engine


def get_session_maker() -> async_sessionmaker:
    """Get or create the session maker."""
    global _async_session_maker

    if _async_session_maker is None:
        _async_session_maker = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    return _async_session_maker


async def init_db() -> None:
    """Open the engine; create tables only in DEBUG (production runs migrations)."""
    from adminguard.api.db.models import Base

    if not settings.DEBUG:
        get_engine()
        return

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tables created (DEBUG mode)")


async def check_db() -> bool:
    """Readiness probe: True when the database answers a trivial query."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Database readiness check failed: {e}")
        return False
    return True


async def close_db() -> None:
    """Dispose of the engine and forget the session maker."""
    global _engine, _async_session_maker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_maker = None
        logger.info("Database connection closed")
