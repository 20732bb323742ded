from celery import Celery
from kombu import Queue

from website_improver.platform.config import settings


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Queue Structure:
    - website-analysis: one message per admitted analysis job (priority queue,
      pro-plan jobs are published with a higher priority)
    - celery: periodic maintenance tasks (stale job sweep)

    Worker concurrency and the per-worker start rate bound how many analyses
    run at once; see ANALYSIS_WORKER_CONCURRENCY / ANALYSIS_WORKER_RATE_LIMIT.
    """
    celery_app = Celery(
        "website_improver",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
    )

    celery_app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        result_serializer=settings.CELERY_RESULT_SERIALIZER,
        accept_content=[settings.CELERY_ACCEPT_CONTENT],
        timezone="UTC",
        enable_utc=True,
        task_track_started=settings.CELERY_TASK_TRACK_STARTED,
        task_time_limit=settings.CELERY_TASK_TIME_LIMIT,

        result_expires=3600,

        task_routes={
            "website_improver.features.analysis.workers.tasks.process_analysis_job": {
                "queue": settings.ANALYSIS_QUEUE_NAME
            },
            "website_improver.features.analysis.workers.periodic_tasks.fail_stale_analysis_jobs": {
                "queue": "celery"
            },
        },

        task_queues=(
            Queue("default"),
            Queue("celery"),
            Queue(settings.ANALYSIS_QUEUE_NAME, queue_arguments={"x-max-priority": 10}),
        ),

        task_default_queue="default",

        worker_concurrency=settings.ANALYSIS_WORKER_CONCURRENCY,
        worker_prefetch_multiplier=1,  # Fair distribution

        # At-least-once delivery
        task_acks_late=True,
        task_reject_on_worker_lost=True,

        beat_schedule={
            "fail-stale-analysis-jobs": {
                "task": "website_improver.features.analysis.workers.periodic_tasks.fail_stale_analysis_jobs",
                "schedule": settings.STALE_JOB_SWEEP_SECONDS,
            },
        },
    )

    celery_app.autodiscover_tasks(["website_improver.features.analysis.workers"])

    return celery_app


celery_app = create_celery_app()
