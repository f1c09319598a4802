"""Generation job lifecycle.

    pending -> processing -> completed | failed

completed and failed are terminal. every transition is one compare-and-set
on the stored status, so concurrent callers racing on the same job see at
most one success; the rest get ConflictError. this manager is the only
code that changes a job's status.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from assembler.errors import AuthError, ConflictError, NotFoundError
from assembler.models.filing import FilingCase
from assembler.models.job import GenerationJob, JobStatus
from assembler.services.audit import AuditLog
from assembler.services.validation import validate_filing_data

logger = logging.getLogger(__name__)


class JobLifecycleManager:
    def __init__(self, store, audit: AuditLog | None = None):
        self._store = store
        self._audit = audit or AuditLog(store)

    async def create(self, filing_data: FilingCase | dict, owner_id: str) -> GenerationJob:
        """validate, then persist a pending job holding its own snapshot of the case.
        raises ValidationError before anything is written."""
        started = time.perf_counter()
        case = validate_filing_data(filing_data)
        snapshot = case.snapshot()

        job = GenerationJob(owner_id=owner_id, filing_data=snapshot)
        await self._store.insert_job(job)
        logger.info("job %s created for owner %s", job.id, owner_id)

        await self._audit.record(
            owner_id, "/jobs", 201, job_id=job.id,
            request_payload={"filingData": snapshot},
            response_payload={"jobId": job.id},
            started=started,
        )
        return job

    async def get_job(self, job_id: str, owner_id: str) -> GenerationJob:
        """owner-scoped lookup; someone else's job looks exactly like a missing one"""
        job = await self._store.fetch_job(job_id)
        if job is None or job.owner_id != owner_id:
            raise NotFoundError("Job not found or unauthorized")
        return job

    async def list_jobs(self, owner_id: str) -> list[GenerationJob]:
        return await self._store.fetch_jobs_for_owner(owner_id)

    async def begin_processing(self, job_id: str, caller_id: str) -> GenerationJob:
        job = await self._store.fetch_job(job_id)
        if job is None:
            raise NotFoundError("Job not found or unauthorized")
        if job.owner_id != caller_id:
            raise AuthError("You don't have permission to process this job")
        if job.status != JobStatus.PENDING:
            raise ConflictError(f"Job is already {job.status.value}")

        updated = await self._store.transition_job(job_id, JobStatus.PENDING, JobStatus.PROCESSING)
        if updated is None:
            # lost the race; report whatever the winner left behind
            raise ConflictError(f"Job is already {await self._current_status(job_id)}")
        logger.info("job %s -> processing", job_id)
        return updated

    async def complete(self, job_id: str, result_package_url: str) -> GenerationJob:
        updated = await self._store.transition_job(
            job_id, JobStatus.PROCESSING, JobStatus.COMPLETED,
            result_package_url=result_package_url,
            completed_at=datetime.now(timezone.utc),
        )
        if updated is None:
            raise await self._not_processing(job_id)
        logger.info("job %s -> completed", job_id)
        return updated

    async def fail(self, job_id: str, error_message: str) -> GenerationJob:
        updated = await self._store.transition_job(
            job_id, JobStatus.PROCESSING, JobStatus.FAILED,
            error_message=error_message,
        )
        if updated is None:
            raise await self._not_processing(job_id)
        logger.info("job %s -> failed: %s", job_id, error_message)
        return updated

    async def retry(self, job_id: str, owner_id: str) -> GenerationJob:
        """explicit retry: a failed job is never revived, a new pending job
        is created from its snapshot instead"""
        started = time.perf_counter()
        original = await self.get_job(job_id, owner_id)
        if original.status != JobStatus.FAILED:
            raise ConflictError(f"Only failed jobs can be retried; job is {original.status.value}")

        job = GenerationJob(owner_id=owner_id, filing_data=original.filing_data)
        await self._store.insert_job(job)
        logger.info("job %s created as retry of %s", job.id, job_id)

        await self._audit.record(
            owner_id, f"/jobs/{job_id}/retry", 201, job_id=job.id,
            request_payload={"jobId": job_id},
            response_payload={"jobId": job.id},
            started=started,
        )
        return job

    async def _current_status(self, job_id: str) -> str:
        job = await self._store.fetch_job(job_id)
        if job is None:
            raise NotFoundError("Job not found or unauthorized")
        return job.status.value

    async def _not_processing(self, job_id: str) -> ConflictError:
        status = await self._current_status(job_id)
        return ConflictError(f"Job is {status}, expected processing")
