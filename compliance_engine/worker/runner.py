"""
Worker entry point for the compliance job queue.
Run with: python -m compliance_engine.worker.runner
Schedule the daily expiry check from cron with
`rq enqueue compliance_engine.worker.jobs.expiry_check_job`.
"""

import os
import socket

import structlog
from redis import Redis
from rq import Worker

from compliance_engine.config import settings
from compliance_engine.observability.logging import setup_logging

logger = structlog.get_logger(__name__)


def worker_name() -> str:
    """RQ rejects duplicate worker names, so each process gets its own."""
    return f"compliance-worker-{socket.gethostname()}-{os.getpid()}"


def init_sentry() -> None:
    """Report job failures to Sentry when a DSN is configured."""
    if not settings.SENTRY_DSN:
        return
    import sentry_sdk
    from sentry_sdk.integrations.rq import RqIntegration
    sentry_sdk.init(dsn=settings.SENTRY_DSN, integrations=[RqIntegration()])


def main():
    """Start the RQ worker."""
    setup_logging()
    init_sentry()

    conn = Redis.from_url(settings.REDIS_URL)
    worker = Worker(queues=[settings.QUEUE_NAME], connection=conn, name=worker_name())

    logger.info(
        "worker_starting",
        queue=settings.QUEUE_NAME,
        worker=worker.name,
        job_timeout_seconds=settings.JOB_TIMEOUT_SECONDS,
    )
    worker.work(with_scheduler=False)


if __name__ == "__main__":
    main()
