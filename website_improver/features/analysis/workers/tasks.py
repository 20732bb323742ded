import asyncio
import logging
from typing import Any, Dict

from sqlalchemy.exc import OperationalError

from website_improver.platform.celery_app import celery_app
from website_improver.platform.config import settings

logger = logging.getLogger(__name__)


async def _run_pipeline(descriptor: Dict[str, Any]) -> str:
    # Imported here so the models are only loaded inside a worker process
    from website_improver.features.analysis.schemas.analysis import AnalysisJobDescriptor
    from website_improver.features.analysis.services.ai.ai_advisor import AIAdvisor
    from website_improver.features.analysis.services.orchestrator import process_analysis_job as run
    from website_improver.features.analysis.services.scraping.scraping_service import ScrapingService
    from website_improver.features.credits.models.user_account import UserAccount  # noqa: F401
    from website_improver.platform.async_db_helper import get_async_db

    job = AnalysisJobDescriptor.model_validate(descriptor)
    async with get_async_db() as db, ScrapingService() as scraper:
        outcome = await run(db, job, scraper, AIAdvisor())
    return outcome.value


@celery_app.task(
    bind=True,
    name="website_improver.features.analysis.workers.tasks.process_analysis_job",
    max_retries=settings.ANALYSIS_TASK_MAX_RETRIES,
    rate_limit=settings.ANALYSIS_WORKER_RATE_LIMIT,
    acks_late=True,
)
def process_analysis_job(self, descriptor: Dict[str, Any]) -> Dict[str, Any]:
    """
    Run the analysis pipeline for one admitted job.

    Pipeline failures are recorded on the job and are not retried. Only a
    database that cannot be reached (before the job was claimed) is retried
    with exponential backoff.
    """
    job_id = descriptor.get("job_id")
    logger.info(f"[{job_id}] Worker picked up analysis job (attempt {self.request.retries + 1})")

    try:
        outcome = asyncio.run(_run_pipeline(descriptor))
    except (OperationalError, OSError) as exc:
        countdown = settings.ANALYSIS_TASK_RETRY_BACKOFF ** (self.request.retries + 1)
        logger.warning(f"[{job_id}] Infrastructure error, retrying in {countdown}s: {exc}")
        raise self.retry(exc=exc, countdown=countdown)

    logger.info(f"[{job_id}] Worker finished with outcome {outcome}")
    return {"job_id": job_id, "outcome": outcome}
