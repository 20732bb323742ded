"""
Job store.

Single source of truth for analysis job state. Every read that is exposed to a
user is scoped by owner inside the query itself, so a job belonging to someone
else is indistinguishable from a job that does not exist.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from website_improver.features.analysis.models.analysis_job import (
    TERMINAL_STATUSES,
    AnalysisJob,
    AnalysisJobStatus,
)
from website_improver.features.analysis.schemas.analysis import (
    JobResultsResponse,
    JobStatusResponse,
    ResultMetadata,
    ScoreSummary,
)
from website_improver.platform.exceptions import JobFinalizedError, NotFoundError, PersistenceError
from website_improver.platform.logger import get_logger

logger = get_logger(__name__)

CLAIMED_PROGRESS = 10
TIMED_OUT_MESSAGE = "Analysis timed out"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def create_job(
    db: AsyncSession,
    user_id: str,
    url: str,
    options: Dict[str, Any],
    credits_used: float,
    estimated_completion_time: Optional[datetime] = None,
) -> AnalysisJob:
    job = AnalysisJob(
        user_id=user_id,
        url=url,
        status=AnalysisJobStatus.queued,
        progress=0,
        options=options,
        credits_used=credits_used,
        estimated_completion_time=estimated_completion_time,
    )
    db.add(job)
    try:
        await db.commit()
        await db.refresh(job)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to create analysis job for user {user_id}: {e}")
        raise PersistenceError("Failed to create analysis job")
    return job


async def get_job(db: AsyncSession, job_id: str, for_update: bool = False) -> Optional[AnalysisJob]:
    query = select(AnalysisJob).where(AnalysisJob.id == job_id).execution_options(populate_existing=True)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def delete_job(db: AsyncSession, job_id: str) -> None:
    """Remove a job row. Only used to undo an admission whose debit failed."""
    try:
        await db.execute(delete(AnalysisJob).where(AnalysisJob.id == job_id))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.critical(f"[{job_id}] Failed to delete job during admission rollback: {e}")
        raise PersistenceError("Failed to roll back analysis job")


async def _get_owned_job(db: AsyncSession, job_id: str, user_id: str) -> Optional[AnalysisJob]:
    result = await db.execute(
        select(AnalysisJob)
        .where(AnalysisJob.id == job_id, AnalysisJob.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def to_status_response(job: AnalysisJob) -> JobStatusResponse:
    return JobStatusResponse(
        job_id=job.id,
        status=job.status.value,
        progress=job.progress,
        url=job.url,
        created_at=job.created_at,
        updated_at=job.updated_at,
        completed_at=job.completed_at,
        error=job.error,
        estimated_completion_time=job.estimated_completion_time,
    )


async def get_status(db: AsyncSession, job_id: str, user_id: str) -> Optional[JobStatusResponse]:
    job = await _get_owned_job(db, job_id, user_id)
    if job is None:
        return None
    return to_status_response(job)


async def get_results(db: AsyncSession, job_id: str, user_id: str) -> Optional[JobResultsResponse]:
    """
    Return the stored result payload for a job owned by `user_id`.

    The status is returned alongside the payload; callers must refuse to
    expose anything but a completed job.
    """
    job = await _get_owned_job(db, job_id, user_id)
    if job is None:
        return None

    return JobResultsResponse(
        job_id=job.id,
        status=job.status.value,
        url=job.url,
        original_site=job.original_site,
        improvements=job.improvements or [],
        scores=ScoreSummary(
            seo=job.seo_score,
            performance=job.performance_score,
            accessibility=job.accessibility_score,
            ux=job.ux_score,
        ),
        metadata=ResultMetadata(
            analysis_time=job.analysis_time,
            pages_analyzed=job.pages_analyzed,
            credits_used=job.credits_used,
        ),
        created_at=job.created_at,
        completed_at=job.completed_at,
    )


async def update_status(
    db: AsyncSession,
    job_id: str,
    status: AnalysisJobStatus,
    **fields: Any,
) -> AnalysisJob:
    """
    Move a job to `status` and merge the given column values.

    Completing a job always sets progress to 100, stamps completed_at and
    clears any error. A progress value lower than the stored one is ignored
    unless the job is being failed. A completed or failed job is never
    written again: JobFinalizedError is raised instead.
    """
    try:
        job = await get_job(db, job_id, for_update=True)
        if job is None:
            raise NotFoundError("Analysis job not found", code="JOB_NOT_FOUND")
        if job.status in TERMINAL_STATUSES:
            logger.warning(f"[{job_id}] Refusing {status.value} update, job is already {job.status.value}")
            raise JobFinalizedError(f"Analysis job is already {job.status.value}")

        now = _utcnow()
        if status == AnalysisJobStatus.completed:
            fields["progress"] = 100
            fields["completed_at"] = now
            fields["error"] = None

        progress = fields.pop("progress", None)
        if progress is not None:
            if status == AnalysisJobStatus.failed or progress >= (job.progress or 0):
                job.progress = progress
            else:
                logger.warning(f"[{job_id}] Ignoring progress regression {job.progress} -> {progress}")

        for key, value in fields.items():
            if not hasattr(AnalysisJob, key):
                raise ValueError(f"Unknown analysis job field: {key}")
            setattr(job, key, value)

        job.status = status
        job.updated_at = now

        await db.commit()
        await db.refresh(job)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"[{job_id}] Failed to update analysis job to {status.value}: {e}")
        raise PersistenceError("Failed to update analysis job status")
    except Exception:
        # Release the row lock taken by the read
        await db.rollback()
        raise

    return job


async def claim_job(db: AsyncSession, job_id: str) -> bool:
    """
    Atomically move a queued job to processing.

    Returns False when the job is gone or was already claimed, which is how a
    redelivered queue message is recognised.
    """
    result = await db.execute(
        update(AnalysisJob)
        .where(AnalysisJob.id == job_id, AnalysisJob.status == AnalysisJobStatus.queued)
        .values(
            status=AnalysisJobStatus.processing,
            progress=CLAIMED_PROGRESS,
            updated_at=_utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1


async def list_user_jobs(db: AsyncSession, user_id: str, limit: int = 10) -> List[AnalysisJob]:
    result = await db.execute(
        select(AnalysisJob)
        .where(AnalysisJob.user_id == user_id)
        .order_by(AnalysisJob.created_at.desc(), AnalysisJob.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_queued_jobs(db: AsyncSession, older_than: datetime) -> List[AnalysisJob]:
    """Queued jobs created before `older_than`, oldest first."""
    result = await db.execute(
        select(AnalysisJob)
        .where(
            AnalysisJob.status == AnalysisJobStatus.queued,
            AnalysisJob.created_at < older_than,
        )
        .order_by(AnalysisJob.created_at.asc())
    )
    return list(result.scalars().all())


async def fail_stale_jobs(db: AsyncSession, deadline: datetime) -> List[str]:
    """Fail every processing job that has not been touched since `deadline`."""
    result = await db.execute(
        select(AnalysisJob.id).where(
            AnalysisJob.status == AnalysisJobStatus.processing,
            AnalysisJob.updated_at < deadline,
        )
    )
    stale_ids = list(result.scalars().all())

    failed = []
    for job_id in stale_ids:
        try:
            await update_status(db, job_id, AnalysisJobStatus.failed, error=TIMED_OUT_MESSAGE)
        except (JobFinalizedError, NotFoundError):
            # The worker finished or the row went away between the scan and now
            continue
        logger.warning(f"[{job_id}] Marked as failed after exceeding the processing deadline")
        failed.append(job_id)

    return failed
