from typing import Dict, Protocol

from website_improver.features.analysis.schemas.analysis import AnalysisJobDescriptor
from website_improver.platform.celery_app import celery_app
from website_improver.platform.config import settings
from website_improver.platform.logger import get_logger

logger = get_logger(__name__)


class AnalysisQueue(Protocol):
    """What admission needs from the work queue."""

    def enqueue(self, descriptor: AnalysisJobDescriptor, priority: int = ...) -> None: ...

    def remove(self, job_id: str) -> bool: ...

    def status(self) -> Dict[str, int]: ...


class CeleryAnalysisQueue:
    """
    Publishes analysis jobs to the Celery analysis queue.

    The Celery task id is the job id, so an operator can revoke a job by the
    id the user sees.
    """

    def enqueue(self, descriptor: AnalysisJobDescriptor, priority: int = settings.ANALYSIS_DEFAULT_PRIORITY) -> None:
        from website_improver.features.analysis.workers.tasks import process_analysis_job

        process_analysis_job.apply_async(
            kwargs={"descriptor": descriptor.model_dump()},
            task_id=descriptor.job_id,
            queue=settings.ANALYSIS_QUEUE_NAME,
            priority=priority,
        )
        logger.info(f"[{descriptor.job_id}] Added to {settings.ANALYSIS_QUEUE_NAME} queue with priority {priority}")

    def remove(self, job_id: str) -> bool:
        try:
            celery_app.control.revoke(job_id)
        except Exception as e:
            logger.error(f"[{job_id}] Failed to remove job from queue: {e}")
            return False
        logger.info(f"[{job_id}] Revoked queued analysis")
        return True

    def status(self) -> Dict[str, int]:
        counts = {"active": 0, "reserved": 0, "scheduled": 0}
        try:
            inspector = celery_app.control.inspect(timeout=1.0)
            for key, fetch in (
                ("active", inspector.active),
                ("reserved", inspector.reserved),
                ("scheduled", inspector.scheduled),
            ):
                per_worker = fetch() or {}
                counts[key] = sum(len(tasks) for tasks in per_worker.values())
        except Exception as e:
            logger.error(f"Failed to get queue status: {e}")
            return {"active": 0, "reserved": 0, "scheduled": 0}
        return counts


_queue = CeleryAnalysisQueue()


def get_analysis_queue() -> AnalysisQueue:
    return _queue
