from typing import Any

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from assembler.auth import get_current_user_id
from assembler.deps import get_job_manager, get_orchestrator
from assembler.errors import FilingError, ValidationError
from assembler.models.job import JobCreated, JobExecuted, JobStatus, JobView
from assembler.services.jobs import JobLifecycleManager
from assembler.services.orchestrator import FormattingOrchestrator

router = APIRouter()


class CreateJobBody(BaseModel):
    filing_data: Any = Field(None, alias="filingData")


class ExecuteJobBody(BaseModel):
    job_id: str = Field("", alias="jobId")
    wait: bool = True


@router.post("", status_code=201)
async def create_job(
    body: CreateJobBody,
    owner_id: str = Depends(get_current_user_id),
    jobs: JobLifecycleManager = Depends(get_job_manager),
) -> JobCreated:
    job = await jobs.create(body.filing_data, owner_id)
    return JobCreated(job_id=job.id, status=job.status, created_at=job.created_at)


@router.post("/execute")
async def execute_job(
    body: ExecuteJobBody,
    response: Response,
    owner_id: str = Depends(get_current_user_id),
    jobs: JobLifecycleManager = Depends(get_job_manager),
    orchestrator: FormattingOrchestrator = Depends(get_orchestrator),
) -> JobExecuted:
    if not body.job_id:
        raise ValidationError("Job ID is required")

    # absent and not-owned both surface as 404
    await jobs.get_job(body.job_id, owner_id)
    job = await jobs.begin_processing(body.job_id, owner_id)

    if not body.wait:
        orchestrator.submit(job)
        response.status_code = 202
        return JobExecuted(job_id=job.id, status=job.status)

    job = await orchestrator.dispatch(job)
    if job.status == JobStatus.FAILED:
        raise FilingError(job.error_message or "Formatting failed")
    return JobExecuted(job_id=job.id, status=job.status, package_url=job.result_package_url)


@router.get("")
async def list_jobs(
    owner_id: str = Depends(get_current_user_id),
    jobs: JobLifecycleManager = Depends(get_job_manager),
) -> list[JobView]:
    return [JobView.from_job(j) for j in await jobs.list_jobs(owner_id)]


@router.get("/{job_id}")
async def get_job(
    job_id: str,
    owner_id: str = Depends(get_current_user_id),
    jobs: JobLifecycleManager = Depends(get_job_manager),
) -> JobView:
    return JobView.from_job(await jobs.get_job(job_id, owner_id))


@router.post("/{job_id}/cancel")
async def cancel_job(
    job_id: str,
    owner_id: str = Depends(get_current_user_id),
    jobs: JobLifecycleManager = Depends(get_job_manager),
    orchestrator: FormattingOrchestrator = Depends(get_orchestrator),
):
    job = await jobs.get_job(job_id, owner_id)
    return {"jobId": job.id, "cancelled": orchestrator.cancel(job.id)}


@router.post("/{job_id}/retry", status_code=201)
async def retry_job(
    job_id: str,
    owner_id: str = Depends(get_current_user_id),
    jobs: JobLifecycleManager = Depends(get_job_manager),
) -> JobCreated:
    job = await jobs.retry(job_id, owner_id)
    return JobCreated(job_id=job.id, status=job.status, created_at=job.created_at)
