"""
Analysis orchestrator.

Admission (request side): check balance, persist the job, reserve the credit,
enqueue. A job row exists only if its credit was reserved; when the debit
fails the row is deleted again before the error propagates.

Processing (worker side): claim the job, then scrape -> snapshot -> AI advice
-> scores -> improvements, persisting progress after each stage. Any
unrecovered error marks the job failed; AI failures never get that far
because the advisor degrades to its rule-based fallback.
"""
import enum
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from website_improver.features.analysis.models.analysis_job import AnalysisJobStatus
from website_improver.features.analysis.schemas.analysis import (
    AnalysisJobDescriptor,
    AnalysisJobSummary,
    AnalysisOptions,
)
from website_improver.features.analysis.services import job_store
from website_improver.features.analysis.services.ai.ai_advisor import AIAdvisor
from website_improver.features.analysis.services.extraction.content_extractor import ContentExtractor
from website_improver.features.analysis.services.queue import AnalysisQueue
from website_improver.features.analysis.services.scoring.scoring_engine import calculate_scores
from website_improver.features.analysis.services.scraping.scraping_service import ScrapingService
from website_improver.features.credits.models.user_account import PlanTier
from website_improver.features.credits.services import credit_ledger
from website_improver.platform.config import settings
from website_improver.platform.exceptions import (
    InsufficientCreditsError,
    JobFinalizedError,
    UpstreamFailureError,
)
from website_improver.platform.logger import get_logger

logger = get_logger(__name__)

PROGRESS_SCRAPED = 30
PROGRESS_ADVISED = 50
PROGRESS_SCORED = 80


class ProcessOutcome(enum.Enum):
    completed = "completed"
    failed = "failed"
    skipped = "skipped"


def _normalize_options(options: Union[AnalysisOptions, Dict[str, Any], None]) -> AnalysisOptions:
    if options is None:
        return AnalysisOptions()
    if isinstance(options, AnalysisOptions):
        return options
    return AnalysisOptions.model_validate(options)


async def priority_for(db: AsyncSession, user_id: str) -> int:
    account = await credit_ledger.get_account(db, user_id)
    if account is not None and account.plan == PlanTier.pro:
        return settings.ANALYSIS_PRO_PRIORITY
    return settings.ANALYSIS_DEFAULT_PRIORITY


async def create_analysis_job(
    db: AsyncSession,
    queue: AnalysisQueue,
    user_id: str,
    url: str,
    options: Union[AnalysisOptions, Dict[str, Any], None] = None,
) -> AnalysisJobSummary:
    cost = settings.ANALYSIS_CREDIT_COST
    analysis_options = _normalize_options(options)

    if not await credit_ledger.has_sufficient_balance(db, user_id, cost):
        logger.info(f"Rejected analysis of {url} for user {user_id}: insufficient credits")
        raise InsufficientCreditsError()

    estimated_completion = datetime.now(timezone.utc) + timedelta(seconds=settings.ANALYSIS_ESTIMATED_SECONDS)
    job = await job_store.create_job(
        db,
        user_id=user_id,
        url=url,
        options=analysis_options.model_dump(),
        credits_used=cost,
        estimated_completion_time=estimated_completion,
    )
    job_id = job.id
    summary = AnalysisJobSummary(
        job_id=job_id,
        status=job.status.value,
        url=job.url,
        created_at=job.created_at,
        estimated_completion_time=job.estimated_completion_time,
    )

    # The ORM instance may be expired once the debit touches the session
    try:
        await credit_ledger.debit(db, user_id, cost, action="website_analysis", reference_id=job_id)
    except Exception as debit_error:
        logger.warning(f"[{job_id}] Credit debit failed, removing job: {debit_error}")
        try:
            await job_store.delete_job(db, job_id)
        except Exception as delete_error:
            logger.critical(f"[{job_id}] Job left without a reserved credit: {delete_error}")
        raise debit_error

    descriptor = AnalysisJobDescriptor(
        job_id=summary.job_id,
        user_id=user_id,
        url=url,
        options=analysis_options.model_dump(),
    )
    try:
        priority = await priority_for(db, user_id)
        queue.enqueue(descriptor, priority=priority)
    except Exception as e:
        # The job stays queued in the store; scripts/requeue_jobs.py picks it up
        logger.error(f"[{summary.job_id}] Failed to enqueue analysis job: {e}")

    logger.info(f"[{summary.job_id}] Admitted analysis of {url} for user {user_id}")
    return summary


def _failure_message(exc: Exception) -> str:
    return getattr(exc, "message", None) or str(exc) or exc.__class__.__name__


async def _mark_failed(db: AsyncSession, descriptor: AnalysisJobDescriptor, exc: Exception) -> None:
    job_id = descriptor.job_id
    try:
        await db.rollback()
        await job_store.update_status(db, job_id, AnalysisJobStatus.failed, error=_failure_message(exc))
    except JobFinalizedError:
        logger.info(f"[{job_id}] Job already finished elsewhere, failure not recorded")
        return
    except Exception as write_error:
        logger.critical(f"[{job_id}] Could not record failure, job left in last persisted state: {write_error}")
        return

    if settings.REFUND_CREDITS_ON_FAILURE:
        try:
            job = await job_store.get_job(db, job_id)
            amount = (job.credits_used if job else None) or settings.ANALYSIS_CREDIT_COST
            await credit_ledger.credit(db, descriptor.user_id, amount)
            logger.info(f"[{job_id}] Refunded {amount} credits to user {descriptor.user_id}")
        except Exception as refund_error:
            logger.error(f"[{job_id}] Credit refund failed: {refund_error}")


async def process_analysis_job(
    db: AsyncSession,
    descriptor: AnalysisJobDescriptor,
    scraper: ScrapingService,
    advisor: Optional[AIAdvisor] = None,
) -> ProcessOutcome:
    job_id = descriptor.job_id
    url = descriptor.url
    options = descriptor.analysis_options
    advisor = advisor or AIAdvisor()

    if not await job_store.claim_job(db, job_id):
        logger.info(f"[{job_id}] Job missing or already claimed, skipping delivery")
        return ProcessOutcome.skipped

    started = time.monotonic()
    try:
        logger.info(f"[{job_id}] Scraping main page: {url}")
        page = await scraper.scrape(url, include_screenshot=options.include_screenshots)

        pages_analyzed = 1
        if options.seo_analysis or options.performance_analysis:
            logger.info(f"[{job_id}] Crawling additional pages: {url}")
            try:
                crawled = await scraper.crawl(url)
                if crawled:
                    pages_analyzed = len(crawled)
            except UpstreamFailureError as e:
                logger.warning(f"[{job_id}] Crawl failed, analyzing main page only: {e.message}")

        await job_store.update_status(db, job_id, AnalysisJobStatus.processing, progress=PROGRESS_SCRAPED)

        snapshot = ContentExtractor.build_snapshot(page)
        if not snapshot.url:
            snapshot.url = url

        logger.info(f"[{job_id}] Requesting AI analysis")
        analysis = await advisor.analyze(snapshot)
        await job_store.update_status(db, job_id, AnalysisJobStatus.processing, progress=PROGRESS_ADVISED)

        scores = calculate_scores(snapshot, analysis)
        await job_store.update_status(db, job_id, AnalysisJobStatus.processing, progress=PROGRESS_SCORED)

        logger.info(f"[{job_id}] Generating improvements")
        improvements = await advisor.generate_improvements(snapshot, scores, options)

        await job_store.update_status(
            db,
            job_id,
            AnalysisJobStatus.completed,
            original_site=snapshot.model_dump(mode="json", by_alias=True),
            improvements=[item.model_dump(mode="json", by_alias=True) for item in improvements],
            seo_score=scores.seo,
            performance_score=scores.performance,
            accessibility_score=scores.accessibility,
            ux_score=scores.ux,
            analysis_time=int((time.monotonic() - started) * 1000),
            pages_analyzed=pages_analyzed,
        )
    except JobFinalizedError:
        # Failed by the stale-job sweep while this run was still going
        logger.warning(f"[{job_id}] Job finished elsewhere, abandoning this run")
        return ProcessOutcome.skipped
    except Exception as e:
        logger.error(f"[{job_id}] Analysis failed: {_failure_message(e)}", exc_info=True)
        await _mark_failed(db, descriptor, e)
        return ProcessOutcome.failed

    logger.info(f"[{job_id}] Analysis completed (overall score {scores.overall})")
    return ProcessOutcome.completed
