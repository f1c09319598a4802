from assembler.services.audit import AuditLog
from assembler.services.formatter import FormatterClient
from assembler.services.jobs import JobLifecycleManager
from assembler.services.orchestrator import FormattingOrchestrator
from assembler.storage import database

_orchestrator: FormattingOrchestrator | None = None


def get_job_manager() -> JobLifecycleManager:
    return JobLifecycleManager(database, AuditLog(database))


def get_orchestrator() -> FormattingOrchestrator:
    # one instance per process: it owns the registry of in-flight dispatches
    global _orchestrator
    if _orchestrator is None:
        audit = AuditLog(database)
        _orchestrator = FormattingOrchestrator(
            JobLifecycleManager(database, audit), FormatterClient(), audit,
        )
    return _orchestrator


async def shutdown_orchestrator():
    global _orchestrator
    if _orchestrator is not None:
        await _orchestrator.shutdown()
        _orchestrator = None
