"""Dispatch of a processing job to the external formatter.

the formatter call is the only long-running step. it runs under a timeout
and may be cancelled; whatever happens, the job leaves `processing` for a
terminal status and an audit entry is written. no automatic retries.
"""
from __future__ import annotations

import asyncio
import logging
import time

from assembler.config import settings
from assembler.errors import ExternalServiceError, FilingError, PersistenceError
from assembler.models.job import GenerationJob, JobStatus
from assembler.services.audit import AuditLog
from assembler.services.jobs import JobLifecycleManager

logger = logging.getLogger(__name__)

ENDPOINT = "/jobs/execute"


def build_formatting_config(filing_data: dict) -> dict:
    return {
        "caseInfo": filing_data.get("caseInfo"),
        "petitioner": filing_data.get("petitioner"),
        "events": filing_data.get("events") or [],
        "petitionBody": filing_data.get("petitionBody"),
        "exhibits": filing_data.get("exhibits") or [],
        "officialForms": filing_data.get("officialForms") or [],
    }


class FormattingOrchestrator:
    def __init__(
        self,
        jobs: JobLifecycleManager,
        formatter,
        audit: AuditLog,
        timeout_seconds: float | None = None,
    ):
        self._jobs = jobs
        self._formatter = formatter
        self._audit = audit
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.formatting_timeout_seconds
        self._tasks: dict[str, asyncio.Task] = {}

    async def run(self, job: GenerationJob) -> GenerationJob:
        """format a job already in processing and settle it as completed or failed"""
        if job.status != JobStatus.PROCESSING:
            raise ValueError(f"job {job.id} is {job.status.value}, expected processing")

        started = time.perf_counter()
        config = build_formatting_config(job.filing_data)
        logger.info(
            "dispatching job %s to formatter (%d exhibits, %d forms)",
            job.id, len(config["exhibits"]), len(config["officialForms"]),
        )

        try:
            package_url = await asyncio.wait_for(
                self._formatter.format_package(job.id, job.owner_id, config),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            return await self._settle_failed(job, f"Formatting timed out after {self.timeout_seconds:g}s", started)
        except asyncio.CancelledError:
            await self._settle_failed(job, "Formatting was cancelled", started)
            raise
        except ExternalServiceError as exc:
            return await self._settle_failed(job, exc.message, started)
        except Exception as exc:
            logger.exception("unexpected formatter failure for job %s", job.id)
            return await self._settle_failed(job, f"Unexpected formatting error: {exc}", started)

        if not isinstance(package_url, str) or not package_url.strip():
            return await self._settle_failed(job, "Formatter returned no package location", started)

        try:
            done = await self._jobs.complete(job.id, package_url)
        except asyncio.CancelledError:
            # the completing write may not have landed; fail is a no-op if it did
            await self._try_fail(job.id, "Formatting was cancelled")
            raise
        except PersistenceError:
            await self._try_fail(job.id, "Failed to record formatting result")
            raise
        await self._audit.record(
            job.owner_id, ENDPOINT, 200, job_id=job.id,
            request_payload={"jobId": job.id},
            response_payload={"packageUrl": package_url},
            started=started,
        )
        return done

    def submit(self, job: GenerationJob) -> asyncio.Task:
        """run in the background; callers poll the job instead of waiting"""
        if job.id in self._tasks:
            raise ValueError(f"job {job.id} is already dispatched")
        task = asyncio.create_task(self.run(job), name=f"format-{job.id}")
        self._tasks[job.id] = task
        task.add_done_callback(lambda t: self._forget(job.id, t))
        return task

    async def dispatch(self, job: GenerationJob) -> GenerationJob:
        """run through the task registry and wait for the settled job, so a
        waiting caller can still be reached by cancel() and shutdown()"""
        task = self.submit(job)
        await asyncio.wait({task})
        if task.cancelled():
            return await self._jobs.get_job(job.id, job.owner_id)
        return task.result()

    def cancel(self, job_id: str) -> bool:
        task = self._tasks.get(job_id)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def in_flight(self) -> list[str]:
        return [job_id for job_id, task in self._tasks.items() if not task.done()]

    async def shutdown(self):
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _forget(self, job_id: str, task: asyncio.Task):
        self._tasks.pop(job_id, None)
        if not task.cancelled() and task.exception() is not None:
            logger.error("background formatting of job %s crashed: %s", job_id, task.exception())

    async def _try_fail(self, job_id: str, message: str):
        try:
            await self._jobs.fail(job_id, message)
        except FilingError as exc:
            logger.error("could not mark job %s failed: %s", job_id, exc.message)

    async def _settle_failed(self, job: GenerationJob, message: str, started: float) -> GenerationJob:
        logger.warning("formatting failed for job %s: %s", job.id, message)
        try:
            failed = await self._jobs.fail(job.id, message)
        finally:
            await self._audit.record(
                job.owner_id, ENDPOINT, 500, job_id=job.id,
                request_payload={"jobId": job.id},
                response_payload={"error": message},
                started=started,
            )
        return failed
