"""
/api/internal/jobs endpoints.
Trigger background compliance jobs and inspect the queue.
"""

import structlog
from fastapi import APIRouter, Depends, status
from redis import Redis
from redis.exceptions import RedisError

from compliance_engine.api.errors import ApiError, ok
from compliance_engine.config import role_list, settings
from compliance_engine.dependencies import CurrentUser, require_roles
from compliance_engine.schemas.jobs import JobEnqueued, JobStatus, QueueStats

logger = structlog.get_logger(__name__)

require_job_admin = require_roles(*role_list(settings.JOB_ADMIN_ROLES))

router = APIRouter(prefix="/api/internal/jobs", tags=["jobs"], dependencies=[Depends(require_job_admin)])


def _get_redis() -> Redis:
    """Get a Redis connection."""
    return Redis.from_url(settings.REDIS_URL)


def _queue_unavailable(exc: Exception) -> ApiError:
    return ApiError(status.HTTP_503_SERVICE_UNAVAILABLE, "QUEUE_UNAVAILABLE", f"Queue unavailable: {exc}")


@router.post("/expiry-check", status_code=status.HTTP_202_ACCEPTED)
async def trigger_expiry_check(user: CurrentUser = Depends(require_job_admin)):
    """Enqueue the expiry check now instead of waiting for the daily schedule."""
    from compliance_engine.worker.jobs import enqueue_expiry_check

    try:
        job_id = enqueue_expiry_check()
    except RedisError as exc:
        raise _queue_unavailable(exc)

    logger.info("expiry_check_triggered", job_id=job_id, user_id=str(user.id))
    return ok(JobEnqueued(job_id=job_id, job="expiry_check"))


@router.get("/queue/stats")
async def queue_stats():
    """Get current queue statistics."""
    from rq import Queue
    from rq.worker import Worker

    try:
        conn = _get_redis()
        q = Queue(settings.QUEUE_NAME, connection=conn)
        workers = Worker.all(connection=conn)

        stats = QueueStats(
            queue_name=settings.QUEUE_NAME,
            queued=len(q),
            started=q.started_job_registry.count,
            finished=q.finished_job_registry.count,
            failed=q.failed_job_registry.count,
            deferred=q.deferred_job_registry.count,
            workers=len(workers),
        )
    except RedisError as exc:
        raise _queue_unavailable(exc)
    return ok(stats)


@router.get("/{job_id}")
async def get_job_status(job_id: str):
    """Get the status of a background job."""
    from rq.exceptions import NoSuchJobError
    from rq.job import Job

    try:
        job = Job.fetch(job_id, connection=_get_redis())
    except NoSuchJobError:
        raise ApiError.not_found("Job not found")
    except RedisError as exc:
        raise _queue_unavailable(exc)

    return ok(JobStatus(
        job_id=job_id,
        status=job.get_status(),
        enqueued_at=job.enqueued_at,
        started_at=job.started_at,
        ended_at=job.ended_at,
        error_message=job.exc_info if job.exc_info else None,
        result=job.result if job.is_finished else None,
    ))
