"""
Re-enqueue analysis jobs that were admitted but never reached a worker.

A failed publish leaves the job queued in the database with its credit
already reserved. Run this against the same environment as the API:

    python scripts/requeue_jobs.py --older-than 10
"""
import argparse
import asyncio
from datetime import datetime, timedelta, timezone

from website_improver.features.analysis.schemas.analysis import AnalysisJobDescriptor
from website_improver.features.analysis.services.job_store import list_queued_jobs
from website_improver.features.analysis.services.orchestrator import priority_for
from website_improver.features.analysis.services.queue import get_analysis_queue
from website_improver.platform.db.session import SessionLocal


async def requeue_jobs(older_than_minutes: int, dry_run: bool = False):
    cutoff = datetime.now(timezone.utc) - timedelta(minutes=older_than_minutes)
    queue = get_analysis_queue()

    async with SessionLocal() as db:
        jobs = await list_queued_jobs(db, older_than=cutoff)
        print(f"Found {len(jobs)} queued jobs older than {older_than_minutes} minutes")

        for job in jobs:
            descriptor = AnalysisJobDescriptor(
                job_id=job.id, user_id=job.user_id, url=job.url, options=job.options or {}
            )
            if dry_run:
                print(f"  would requeue {job.id} ({job.url})")
                continue
            queue.enqueue(descriptor, priority=await priority_for(db, job.user_id))
            print(f"  requeued {job.id} ({job.url})")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--older-than", type=int, default=10, help="minutes since the job was created")
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()
    asyncio.run(requeue_jobs(args.older_than, dry_run=args.dry_run))
