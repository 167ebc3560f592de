"""Fire-and-forget side effects (emails, poster cleanup) on an RQ queue.

A job never reports back to the request that queued it. A job that raises
is logged, written to the audit trail and left in the queue's failed-job
registry, where ``failures`` can still read it.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, List

from redis import Redis
from rq import Queue, Worker
from rq.job import Job

from .logging_service import log_event

logger = logging.getLogger(__name__)

DEFAULT_QUEUE = "campusconnect"
JOB_TIMEOUT = 60
FAILURE_TTL = 7 * 24 * 3600


def report_failure(job, connection, exc_type, exc_value, traceback):
    logger.warning("Background job %s (%s) failed: %r", job.id, job.func_name, exc_value)
    log_event("task_failed", meta={"job_id": job.id, "task": job.func_name, "error": repr(exc_value)})


class TaskQueue:
    def __init__(self, connection: Redis, name: str = DEFAULT_QUEUE, is_async: bool = True):
        self.connection = connection
        self.is_async = is_async
        self.queue = Queue(name, connection=connection, is_async=is_async)

    def submit(self, fn: Callable[..., Any], **kwargs) -> Job:
        """Queue ``fn(**kwargs)``. ``fn`` must be importable by the worker."""
        return self.queue.enqueue(
            fn,
            kwargs=kwargs,
            job_timeout=JOB_TIMEOUT,
            failure_ttl=FAILURE_TTL,
            on_failure=report_failure,
        )

    @property
    def failures(self) -> List[Job]:
        job_ids = self.queue.failed_job_registry.get_job_ids()
        return [job for job in Job.fetch_many(job_ids, connection=self.connection) if job is not None]

    def work(self, burst: bool = False) -> None:
        Worker([self.queue], connection=self.connection).work(burst=burst)
