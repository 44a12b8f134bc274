"""
RQ job functions for scheduled compliance work.
These are the entry points that the worker calls.
"""

import structlog
from redis import Redis
from rq import Queue, get_current_job

from compliance_engine.config import settings

logger = structlog.get_logger(__name__)


def get_queue() -> Queue:
    """Get the compliance job queue."""
    conn = Redis.from_url(settings.REDIS_URL)
    return Queue(settings.QUEUE_NAME, connection=conn)


def enqueue_expiry_check() -> str:
    """
    Enqueue the daily expiry check.
    Returns the job ID.
    """
    q = get_queue()
    job = q.enqueue(
        expiry_check_job,
        job_timeout=settings.JOB_TIMEOUT_SECONDS,
        result_ttl=86400,  # Keep results for 24 hours
        failure_ttl=604800,  # Keep failures for 7 days
    )
    logger.info("job_enqueued", job="expiry_check", job_id=job.id)
    return job.id


def expiry_check_job() -> dict:
    """
    Run the expiry check inside the RQ worker process.
    Schedule daily, e.g. from cron: `rq enqueue compliance_engine.worker.jobs.expiry_check_job`.
    """
    import asyncio

    from compliance_engine.observability.metrics import worker_jobs_active

    job = get_current_job()
    with structlog.contextvars.bound_contextvars(job="expiry_check", job_id=job.id if job else None):
        logger.info("job_started")
        worker_jobs_active.inc()
        try:
            result = asyncio.run(_expiry_check_async())
            logger.info("job_completed", errors=len(result.get("errors", [])))
            return result
        except Exception as e:
            logger.error("job_failed", error=str(e))
            raise
        finally:
            worker_jobs_active.dec()


async def _expiry_check_async() -> dict:
    """Run the check in its own session and transaction."""
    from compliance_engine.compliance.expiry import run_expiry_check
    from compliance_engine.models.database import async_session_factory, close_db

    try:
        async with async_session_factory() as session:
            result = await run_expiry_check(session)
            await session.commit()
        return result.model_dump()
    finally:
        # Each job runs on a fresh event loop; pooled connections must not outlive it
        await close_db()
