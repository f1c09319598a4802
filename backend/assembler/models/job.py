from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from assembler.models.filing import WireModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class GenerationJob(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    owner_id: str
    status: JobStatus = JobStatus.PENDING
    filing_data: dict
    result_package_url: str | None = None
    error_message: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime | None = None


class AuditLogEntry(BaseModel):
    job_id: str | None = None
    owner_id: str
    endpoint: str
    request_payload: dict = {}
    response_payload: dict = {}
    status_code: int
    execution_time_ms: int = 0
    timestamp: datetime = Field(default_factory=_utcnow)


# --- wire shapes ---

class JobCreated(WireModel):
    job_id: str
    status: JobStatus
    created_at: datetime


class JobExecuted(WireModel):
    job_id: str
    status: JobStatus
    package_url: str | None = None


class JobView(WireModel):
    job_id: str
    status: JobStatus
    result_package_url: str | None = None
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_job(cls, job: GenerationJob) -> JobView:
        return cls(
            job_id=job.id,
            status=job.status,
            result_package_url=job.result_package_url,
            error_message=job.error_message,
            created_at=job.created_at,
            updated_at=job.updated_at,
            completed_at=job.completed_at,
        )
