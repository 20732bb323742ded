"""
Async Database Helper for Celery Tasks

Celery workers run each task in a fresh event loop (``asyncio.run``), so they
cannot share the request-side engine whose pooled connections are bound to the
web server's loop. This helper builds a short-lived engine per task.
"""

from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from website_improver.platform.config import settings


@asynccontextmanager
async def get_async_db():
    """
    Get async database session for use in sync Celery tasks.

    Usage in Celery task:
        async def _run():
            async with get_async_db() as db:
                await process_analysis_job(db, ...)

        asyncio.run(_run())
    """
    async_engine = create_async_engine(settings.DATABASE_URL, poolclass=NullPool)
    session_factory = async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )
    try:
        async with session_factory() as session:
            yield session
    finally:
        await async_engine.dispose()
