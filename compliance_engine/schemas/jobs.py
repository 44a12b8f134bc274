"""
Background job schemas.
"""

from datetime import datetime
from typing import Any, Optional

from compliance_engine.schemas.common import ApiModel


class JobEnqueued(ApiModel):
    job_id: str
    job: str


class JobStatus(ApiModel):
    job_id: str
    status: str
    enqueued_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    error_message: Optional[str] = None
    result: Optional[Any] = None


class QueueStats(ApiModel):
    queue_name: str
    queued: int
    started: int
    finished: int
    failed: int
    deferred: int
    workers: int
