import logging
import time

from assembler.models.job import AuditLogEntry

logger = logging.getLogger(__name__)


class AuditLog:
    """append-only audit trail. writes are best-effort: a failed write is
    logged and never reaches the caller's job transition."""

    def __init__(self, store):
        self._store = store

    async def record(
        self,
        owner_id: str,
        endpoint: str,
        status_code: int,
        job_id: str | None = None,
        request_payload: dict | None = None,
        response_payload: dict | None = None,
        started: float | None = None,
    ):
        elapsed_ms = int((time.perf_counter() - started) * 1000) if started is not None else 0
        entry = AuditLogEntry(
            job_id=job_id,
            owner_id=owner_id,
            endpoint=endpoint,
            request_payload=request_payload or {},
            response_payload=response_payload or {},
            status_code=status_code,
            execution_time_ms=elapsed_ms,
        )
        try:
            await self._store.insert_audit_entry(entry)
        except Exception as exc:
            logger.error("failed to write audit entry for %s (job %s): %s", endpoint, job_id, exc)
