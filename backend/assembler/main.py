import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from assembler.config import settings
from assembler.deps import shutdown_orchestrator
from assembler.errors import FilingError
from assembler.services.validation import to_field_errors
from assembler.storage.database import close_db, init_db

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("ready")
    yield
    # in-flight dispatches end as failed jobs rather than hanging in processing
    await shutdown_orchestrator()
    await close_db()


app = FastAPI(
    title="Filing Package Assembler",
    description="validation gates and job lifecycle for self-represented filing packages",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FilingError)
async def filing_error_handler(request: Request, exc: FilingError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "details": exc.details()},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid request",
            "details": [e.model_dump() for e in to_field_errors(exc.errors())],
        },
    )


from assembler.routers import checks, compliance, exhibits, jobs, wizard  # noqa: E402

app.include_router(jobs.router, prefix="/api/jobs", tags=["jobs"])
app.include_router(checks.router, prefix="/api/checks", tags=["checks"])
app.include_router(compliance.router, prefix="/api/compliance", tags=["compliance"])
app.include_router(exhibits.router, prefix="/api/exhibits", tags=["exhibits"])
app.include_router(wizard.router, prefix="/api/wizard", tags=["wizard"])


@app.get("/api/health")
async def health():
    return {
        "status": "ok",
        "openai_configured": bool(settings.openai_api_key),
        "formatter_configured": bool(settings.formatter_url),
    }
