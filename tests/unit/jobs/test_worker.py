"""Tests for job worker."""
import socket
import os
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from sentinel_grab.jobs.models import Bbox, Job, JobOutcome
from sentinel_grab.jobs.types import JobStatus
from sentinel_grab.jobs.worker import WorkerRunner, generate_worker_id
from sentinel_grab.services.catalog.base import NoScenesFoundError


def claimed_job(job_id: int = 42) -> Job:
    return Job(job_id=job_id, status=JobStatus.RUNNING, date_key="2025-05")


class TestGenerateWorkerId:
    def test_worker_id_format(self):
        worker_id = generate_worker_id()
        # Format: hostname:pid
        assert ":" in worker_id
        hostname, pid = worker_id.rsplit(":", 1)
        assert hostname == socket.gethostname()
        assert pid == str(os.getpid())


class TestWorkerRunner:
    def test_worker_creation(self):
        worker = WorkerRunner(MagicMock(), MagicMock(), worker_id="host:1")
        assert worker.worker_id == "host:1"

    @pytest.mark.asyncio
    async def test_no_job_returns_none(self):
        repo = MagicMock()
        repo.claim_next_job = AsyncMock(return_value=None)
        pipeline = MagicMock()
        pipeline.run = AsyncMock()

        outcome = await WorkerRunner(repo, pipeline).run_once()

        assert outcome is None
        pipeline.run.assert_not_called()

    @pytest.mark.asyncio
    async def test_returns_pipeline_outcome(self):
        repo = MagicMock()
        repo.claim_next_job = AsyncMock(return_value=claimed_job())
        repo.mark_job_failed = AsyncMock()
        expected = JobOutcome(job_id=42, status=JobStatus.SUCCEEDED, total=1, succeeded=1)
        pipeline = MagicMock()
        pipeline.run = AsyncMock(return_value=expected)

        outcome = await WorkerRunner(repo, pipeline).run_once()

        assert outcome is expected
        pipeline.run.assert_awaited_once()
        repo.mark_job_failed.assert_not_called()

    @pytest.mark.asyncio
    async def test_pipeline_error_marks_job_failed(self):
        repo = MagicMock()
        repo.claim_next_job = AsyncMock(return_value=claimed_job())
        repo.mark_job_failed = AsyncMock()
        pipeline = MagicMock()
        error = NoScenesFoundError(
            Bbox(-103.8, 50.5, -102.9, 51.0), date(2025, 5, 1), date(2025, 5, 31), 80
        )
        pipeline.run = AsyncMock(side_effect=error)

        outcome = await WorkerRunner(repo, pipeline).run_once()

        repo.mark_job_failed.assert_awaited_once_with(42)
        assert outcome.status == JobStatus.FAILED
        assert outcome.job_id == 42
        assert outcome.error

    @pytest.mark.asyncio
    async def test_blank_error_message_uses_type_name(self):
        repo = MagicMock()
        repo.claim_next_job = AsyncMock(return_value=claimed_job(7))
        repo.mark_job_failed = AsyncMock()
        pipeline = MagicMock()
        pipeline.run = AsyncMock(side_effect=TimeoutError())

        outcome = await WorkerRunner(repo, pipeline).run_once()

        assert outcome.error == "TimeoutError"
        repo.mark_job_failed.assert_awaited_once_with(7)

    @pytest.mark.asyncio
    async def test_store_down_while_marking_failed(self):
        repo = MagicMock()
        repo.claim_next_job = AsyncMock(return_value=claimed_job(9))
        repo.mark_job_failed = AsyncMock(side_effect=OSError("db down"))
        pipeline = MagicMock()
        pipeline.run = AsyncMock(side_effect=RuntimeError("render host gone"))

        outcome = await WorkerRunner(repo, pipeline).run_once()

        repo.mark_job_failed.assert_awaited_once_with(9)
        assert outcome.status == JobStatus.FAILED
        assert outcome.error == "render host gone"
