"""
Celery periodic tasks for analysis job maintenance.

This module contains tasks that run on a schedule via Celery Beat.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone

from celery import shared_task

from website_improver.platform.config import settings

logger = logging.getLogger(__name__)


async def _fail_stale_jobs() -> list:
    from website_improver.features.analysis.services import job_store
    from website_improver.features.credits.models.user_account import UserAccount  # noqa: F401
    from website_improver.platform.async_db_helper import get_async_db

    deadline = datetime.now(timezone.utc) - timedelta(seconds=settings.ANALYSIS_JOB_DEADLINE_SECONDS)
    async with get_async_db() as db:
        return await job_store.fail_stale_jobs(db, deadline)


@shared_task(bind=True, name="website_improver.features.analysis.workers.periodic_tasks.fail_stale_analysis_jobs")
def fail_stale_analysis_jobs(self):
    """
    Fail analysis jobs stuck in processing.

    Runs every STALE_JOB_SWEEP_SECONDS via Celery Beat. A job whose row has
    not been updated for ANALYSIS_JOB_DEADLINE_SECONDS is marked failed with
    "Analysis timed out" so polling clients see a terminal state.
    """
    logger.info("Checking for stale analysis jobs...")
    failed = asyncio.run(_fail_stale_jobs())
    if failed:
        logger.warning(f"Failed {len(failed)} stale analysis jobs: {', '.join(failed)}")
    return {"failed": failed}
