import json

import asyncpg

from assembler.config import settings
from assembler.errors import PersistenceError
from assembler.models.job import AuditLogEntry, GenerationJob, JobStatus

_pool: asyncpg.Pool | None = None


async def init_db():
    global _pool
    _pool = await asyncpg.create_pool(settings.database_url, init=_init_connection)
    async with _pool.acquire() as conn:
        await conn.execute(SCHEMA)


async def close_db():
    global _pool
    if _pool:
        await _pool.close()
        _pool = None


async def _init_connection(conn: asyncpg.Connection):
    await conn.set_type_codec("jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")


def _get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise PersistenceError("database not initialized")
    return _pool


SCHEMA = """
CREATE TABLE IF NOT EXISTS generation_jobs (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    filing_data JSONB NOT NULL,
    result_package_url TEXT,
    error_message TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    completed_at TIMESTAMPTZ
);

CREATE INDEX IF NOT EXISTS generation_jobs_owner_idx ON generation_jobs (owner_id, created_at DESC);

CREATE TABLE IF NOT EXISTS api_audit_log (
    id BIGSERIAL PRIMARY KEY,
    job_id TEXT,
    owner_id TEXT NOT NULL,
    endpoint TEXT NOT NULL,
    request_payload JSONB NOT NULL DEFAULT '{}',
    response_payload JSONB NOT NULL DEFAULT '{}',
    status_code INTEGER NOT NULL,
    execution_time_ms INTEGER NOT NULL DEFAULT 0,
    timestamp TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

_JOB_COLUMNS = {"result_package_url", "error_message", "completed_at"}


def _row_to_job(row) -> GenerationJob:
    return GenerationJob(
        id=row["id"], owner_id=row["owner_id"], status=JobStatus(row["status"]),
        filing_data=row["filing_data"], result_package_url=row["result_package_url"],
        error_message=row["error_message"], created_at=row["created_at"],
        updated_at=row["updated_at"], completed_at=row["completed_at"],
    )


# --- jobs ---

async def insert_job(job: GenerationJob):
    pool = _get_pool()
    try:
        await pool.execute(
            "INSERT INTO generation_jobs (id, owner_id, status, filing_data, created_at, updated_at) "
            "VALUES ($1, $2, $3, $4, $5, $6)",
            job.id, job.owner_id, job.status.value, job.filing_data, job.created_at, job.updated_at,
        )
    except (asyncpg.PostgresError, OSError) as exc:
        raise PersistenceError(f"Failed to create job: {exc}") from exc


async def fetch_job(job_id: str) -> GenerationJob | None:
    pool = _get_pool()
    try:
        row = await pool.fetchrow("SELECT * FROM generation_jobs WHERE id = $1", job_id)
    except (asyncpg.PostgresError, OSError) as exc:
        raise PersistenceError(f"Failed to load job: {exc}") from exc
    if not row:
        return None
    return _row_to_job(row)


async def fetch_jobs_for_owner(owner_id: str) -> list[GenerationJob]:
    pool = _get_pool()
    try:
        rows = await pool.fetch(
            "SELECT * FROM generation_jobs WHERE owner_id = $1 ORDER BY created_at DESC", owner_id,
        )
    except (asyncpg.PostgresError, OSError) as exc:
        raise PersistenceError(f"Failed to list jobs: {exc}") from exc
    return [_row_to_job(r) for r in rows]


async def transition_job(
    job_id: str, expected: JobStatus, new: JobStatus, **fields,
) -> GenerationJob | None:
    """compare-and-set on status. returns the updated job, or None when the
    row is missing or its status is no longer `expected`."""
    unknown = set(fields) - _JOB_COLUMNS
    if unknown:
        raise ValueError(f"not a mutable job column: {sorted(unknown)}")

    names = sorted(fields)
    assignments = "".join(f", {name} = ${i + 4}" for i, name in enumerate(names))
    query = (
        f"UPDATE generation_jobs SET status = $3, updated_at = NOW(){assignments} "
        "WHERE id = $1 AND status = $2 RETURNING *"
    )
    pool = _get_pool()
    try:
        row = await pool.fetchrow(query, job_id, expected.value, new.value, *(fields[n] for n in names))
    except (asyncpg.PostgresError, OSError) as exc:
        raise PersistenceError(f"Failed to update job status: {exc}") from exc
    if not row:
        return None
    return _row_to_job(row)


# --- audit log ---

async def insert_audit_entry(entry: AuditLogEntry):
    pool = _get_pool()
    try:
        await pool.execute(
            "INSERT INTO api_audit_log (job_id, owner_id, endpoint, request_payload, response_payload, "
            "status_code, execution_time_ms, timestamp) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)",
            entry.job_id, entry.owner_id, entry.endpoint, entry.request_payload,
            entry.response_payload, entry.status_code, entry.execution_time_ms, entry.timestamp,
        )
    except (asyncpg.PostgresError, OSError) as exc:
        raise PersistenceError(f"Failed to write audit entry: {exc}") from exc
