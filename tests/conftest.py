import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from assembler.config import settings
from assembler.errors import PersistenceError
from assembler.models.job import AuditLogEntry, GenerationJob
from assembler.services.audit import AuditLog
from assembler.services.jobs import JobLifecycleManager
from assembler.services.orchestrator import FormattingOrchestrator


class MemoryStore:
    """in-memory stand-in for assembler.storage.database with the same
    compare-and-set contract. reads yield to the loop so concurrent callers
    really interleave."""

    def __init__(self):
        self.jobs: dict[str, GenerationJob] = {}
        self.audit: list[AuditLogEntry] = []

    async def insert_job(self, job: GenerationJob):
        self.jobs[job.id] = job.model_copy(deep=True)

    async def fetch_job(self, job_id: str) -> GenerationJob | None:
        await asyncio.sleep(0)
        job = self.jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    async def fetch_jobs_for_owner(self, owner_id: str) -> list[GenerationJob]:
        jobs = [j for j in self.jobs.values() if j.owner_id == owner_id]
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    async def transition_job(self, job_id, expected, new, **fields):
        job = self.jobs.get(job_id)
        if job is None or job.status != expected:
            return None
        updated = job.model_copy(update={
            "status": new, "updated_at": datetime.now(timezone.utc), **fields,
        })
        self.jobs[job_id] = updated
        return updated.model_copy(deep=True)

    async def insert_audit_entry(self, entry: AuditLogEntry):
        self.audit.append(entry)


class BrokenAuditStore(MemoryStore):
    async def insert_audit_entry(self, entry: AuditLogEntry):
        raise PersistenceError("audit table unavailable")


class FakeFormatter:
    def __init__(self, package_url="https://files.example/pkg/filing-package.pdf", error=None, delay=0.0):
        self.package_url = package_url
        self.error = error
        self.delay = delay
        self.calls: list[dict] = []

    async def format_package(self, job_id: str, owner_id: str, config: dict) -> str:
        self.calls.append({"job_id": job_id, "owner_id": owner_id, "config": config})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.package_url


@pytest.fixture
def filing_data() -> dict:
    return {
        "caseInfo": {
            "courtName": "Superior Court of California",
            "county": "Alameda",
            "caseNumber": "",
            "judgeName": "",
        },
        "petitioner": {
            "name": "Jordan Reyes",
            "address": "100 Main St",
            "city": "Oakland",
            "state": "CA",
            "zip": "94612",
            "phone": "(510) 555-0100",
            "email": "jordan@example.com",
        },
        "events": [
            {"id": "1", "date": "2024-01-15", "description": "Arrest"},
            {"id": "2", "date": "2024-03-01", "description": "Arraignment"},
        ],
        "petitionBody": "Petitioner respectfully requests relief under Penal Code 1473.7.",
        "exhibits": [
            {"id": "ex1", "label": "A", "description": "Plea form", "fileUrl": "u1/plea.pdf", "fileName": "plea.pdf"},
        ],
        "officialForms": [
            {"id": "f1", "formNumber": "CR-187", "formName": "Motion to Vacate", "fileUrl": "forms/cr187.pdf"},
        ],
    }


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def jobs(store) -> JobLifecycleManager:
    return JobLifecycleManager(store, AuditLog(store))


@pytest.fixture
def formatter() -> FakeFormatter:
    return FakeFormatter()


@pytest.fixture
def orchestrator(jobs, store, formatter) -> FormattingOrchestrator:
    return FormattingOrchestrator(jobs, formatter, AuditLog(store), timeout_seconds=1.0)


@pytest.fixture
def jwt_secret(monkeypatch) -> str:
    monkeypatch.setattr(settings, "jwt_secret_key", "test-secret")
    return "test-secret"


@pytest.fixture
def auth_headers(jwt_secret):
    from assembler.auth import issue_token

    def _headers(user_id: str = "user-1") -> dict:
        return {"Authorization": f"Bearer {issue_token(user_id)}"}

    return _headers


@pytest.fixture
async def client(jobs, orchestrator, jwt_secret):
    from assembler.deps import get_job_manager, get_orchestrator
    from assembler.main import app

    app.dependency_overrides[get_job_manager] = lambda: jobs
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()



@pytest.fixture
def pdf_bytes() -> bytes:
    """a minimal one-page PDF with a correct xref table"""
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Resources << >> >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for num, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % num + body + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_at)
    return bytes(out)
