"""Job worker - claims and processes one job from the queue."""

import os
import socket
import traceback
from typing import Optional

import structlog

from sentinel_grab import __version__
from sentinel_grab.jobs.models import JobOutcome
from sentinel_grab.jobs.pipeline import JobPipeline
from sentinel_grab.jobs.types import JobStatus
from sentinel_grab.repositories.jobs import JobRepository

logger = structlog.get_logger(__name__)


def generate_worker_id() -> str:
    """Generate a unique worker ID: hostname:pid."""
    return f"{socket.gethostname()}:{os.getpid()}"


class WorkerRunner:
    """Claims a job and runs it inside a catch-all guard.

    A job left Running by a killed process is not reclaimed; there is no
    lease or heartbeat expiry.
    """

    def __init__(
        self,
        repo: JobRepository,
        pipeline: JobPipeline,
        worker_id: Optional[str] = None,
    ):
        self._repo = repo
        self._pipeline = pipeline
        self._worker_id = worker_id or generate_worker_id()

    @property
    def worker_id(self) -> str:
        return self._worker_id

    async def run_once(self) -> Optional[JobOutcome]:
        """Claim and process exactly one job.

        Returns None when no job is available.
        """
        job = await self._repo.claim_next_job()
        if job is None:
            logger.info("no_jobs_available", worker_id=self._worker_id)
            return None

        log = logger.bind(job_id=job.job_id, worker_id=self._worker_id)
        log.info("job_executing", version=__version__)

        try:
            return await self._pipeline.run(job)
        except Exception as e:
            # Products that already succeeded keep their status
            error = str(e) or type(e).__name__
            log.error(
                "job_failed",
                error=error,
                error_type=type(e).__name__,
                traceback=traceback.format_exc(),
            )
            try:
                await self._repo.mark_job_failed(job.job_id)
            except Exception as mark_error:
                # Job stays Running in the store
                log.error(
                    "job_mark_failed_error",
                    error=str(mark_error),
                    error_type=type(mark_error).__name__,
                    traceback=traceback.format_exc(),
                )
            return JobOutcome(job_id=job.job_id, status=JobStatus.FAILED, error=error)
