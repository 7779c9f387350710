"""
Async persistence layer for projects, submissions and reports.

Production runs on PostgreSQL through asyncpg; the test suite points
``DATABASE_URL`` at a SQLite file through aiosqlite.  ``build_engine`` hides
the driver differences so both share one code path.
"""
from typing import Any, AsyncGenerator, Dict
import logging

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from app.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def engine_options(url: str) -> Dict[str, Any]:
    """
    Engine keyword arguments for *url*.

    NullPool everywhere: connections are opened per session, so a fresh
    event loop (one per test) never inherits a pooled connection.  Pre-ping
    only matters for a network database.
    """
    options: Dict[str, Any] = {"echo": False, "poolclass": NullPool}
    if not is_sqlite(url):
        options["pool_pre_ping"] = True
    return options


def build_engine(url: str) -> AsyncEngine:
    engine = create_async_engine(url, **engine_options(url))
    logger.debug("Created %s engine", make_url(url).get_backend_name())
    return engine


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    """Sessions keep loaded attributes after commit so responses can be built from them."""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine(settings.DATABASE_URL)
AsyncSessionLocal = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session.

    The request is one unit of work: a resubmission (new submission row plus
    report deletion) or an analysis (report upsert) is committed only when the
    handler returns, and rolled back as a whole when it raises.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as exc:
            await session.rollback()
            logger.warning("Rolled back request session: %s", exc)
            raise


async def create_tables(bind: AsyncEngine) -> None:
    """Create any missing tables for the readiness models on *bind*."""
    from app.models import database_models  # noqa: F401  (registers the models)

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tables ready: %s", ", ".join(sorted(Base.metadata.tables)))


async def drop_tables(bind: AsyncEngine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def init_db() -> None:
    """Startup hook: create tables on the configured database."""
    try:
        await create_tables(engine)
    except Exception as exc:
        logger.error("Database initialisation failed (%s): %s", make_url(settings.DATABASE_URL).get_backend_name(), exc)
        raise


async def close_db() -> None:
    """Shutdown hook: release the engine."""
    await engine.dispose()
    logger.info("Database engine disposed")
