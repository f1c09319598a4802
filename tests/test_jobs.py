import asyncio

import pytest
from conftest import BrokenAuditStore

from assembler.errors import AuthError, ConflictError, NotFoundError, ValidationError
from assembler.models.job import JobStatus
from assembler.services.jobs import JobLifecycleManager


async def test_create_yields_pending_job(jobs, store, filing_data):
    first = await jobs.create(filing_data, "user-1")
    second = await jobs.create(filing_data, "user-1")

    assert first.status == JobStatus.PENDING
    assert first.id != second.id
    assert store.jobs[first.id].filing_data["petitioner"]["name"] == "Jordan Reyes"
    assert [(a.endpoint, a.status_code) for a in store.audit] == [("/jobs", 201), ("/jobs", 201)]


async def test_create_rejects_invalid_data_without_persisting(jobs, store, filing_data):
    filing_data["petitioner"]["zip"] = "bad"
    with pytest.raises(ValidationError):
        await jobs.create(filing_data, "user-1")
    assert store.jobs == {}
    assert store.audit == []


async def test_snapshot_is_independent_of_input(jobs, store, filing_data):
    job = await jobs.create(filing_data, "user-1")
    filing_data["petitionBody"] = "edited later"
    assert store.jobs[job.id].filing_data["petitionBody"] != "edited later"


async def test_begin_processing(jobs, filing_data):
    job = await jobs.create(filing_data, "user-1")
    started = await jobs.begin_processing(job.id, "user-1")
    assert started.status == JobStatus.PROCESSING


async def test_begin_processing_twice_concurrently(jobs, filing_data):
    job = await jobs.create(filing_data, "user-1")
    results = await asyncio.gather(
        jobs.begin_processing(job.id, "user-1"),
        jobs.begin_processing(job.id, "user-1"),
        return_exceptions=True,
    )
    succeeded = [r for r in results if not isinstance(r, Exception)]
    conflicts = [r for r in results if isinstance(r, ConflictError)]
    assert len(succeeded) == 1
    assert len(conflicts) == 1
    assert conflicts[0].message == "Job is already processing"


async def test_begin_processing_checks(jobs, filing_data):
    job = await jobs.create(filing_data, "user-1")
    with pytest.raises(NotFoundError):
        await jobs.begin_processing("missing", "user-1")
    with pytest.raises(AuthError):
        await jobs.begin_processing(job.id, "user-2")

    await jobs.begin_processing(job.id, "user-1")
    await jobs.complete(job.id, "https://files.example/pkg.pdf")
    with pytest.raises(ConflictError, match="Job is already completed"):
        await jobs.begin_processing(job.id, "user-1")


async def test_complete_sets_result(jobs, filing_data):
    job = await jobs.create(filing_data, "user-1")
    await jobs.begin_processing(job.id, "user-1")
    done = await jobs.complete(job.id, "https://files.example/pkg.pdf")
    assert done.status == JobStatus.COMPLETED
    assert done.result_package_url == "https://files.example/pkg.pdf"
    assert done.completed_at is not None


async def test_fail_sets_message(jobs, filing_data):
    job = await jobs.create(filing_data, "user-1")
    await jobs.begin_processing(job.id, "user-1")
    failed = await jobs.fail(job.id, "formatter exploded")
    assert failed.status == JobStatus.FAILED
    assert failed.error_message == "formatter exploded"
    assert failed.completed_at is None


async def test_terminal_states_are_final(jobs, filing_data):
    job = await jobs.create(filing_data, "user-1")
    with pytest.raises(ConflictError, match="pending"):
        await jobs.complete(job.id, "https://files.example/pkg.pdf")

    await jobs.begin_processing(job.id, "user-1")
    await jobs.fail(job.id, "boom")
    with pytest.raises(ConflictError, match="failed"):
        await jobs.complete(job.id, "https://files.example/pkg.pdf")
    with pytest.raises(ConflictError, match="failed"):
        await jobs.fail(job.id, "again")


async def test_get_job_is_owner_scoped(jobs, filing_data):
    job = await jobs.create(filing_data, "user-1")
    assert (await jobs.get_job(job.id, "user-1")).id == job.id
    with pytest.raises(NotFoundError):
        await jobs.get_job(job.id, "user-2")


async def test_retry_only_failed_jobs(jobs, store, filing_data):
    job = await jobs.create(filing_data, "user-1")
    with pytest.raises(ConflictError):
        await jobs.retry(job.id, "user-1")

    await jobs.begin_processing(job.id, "user-1")
    await jobs.fail(job.id, "timeout")
    retried = await jobs.retry(job.id, "user-1")

    assert retried.id != job.id
    assert retried.status == JobStatus.PENDING
    assert retried.filing_data == store.jobs[job.id].filing_data
    assert store.jobs[job.id].status == JobStatus.FAILED


async def test_audit_failure_does_not_block(filing_data):
    store = BrokenAuditStore()
    jobs = JobLifecycleManager(store)
    job = await jobs.create(filing_data, "user-1")
    assert store.jobs[job.id].status == JobStatus.PENDING
