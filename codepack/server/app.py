"""FastAPI application exposing the processing core over HTTP.

WHY: Editors, bots, and scripts need to bundle files without embedding
Python. An HTTP API lets them stream a request's progress live or submit
it as a job and poll, and FastAPI gives request validation and OpenAPI
docs for free.

HOW: POST /process runs the request in a fresh ProcessingWorker and
streams each response as one NDJSON line. POST /jobs creates a job in
the JobStore and runs it in the background; GET /jobs/{id} reports the
latest progress and, once finished, the result or error. Catalogue
endpoints list styles, modes, and model limits.

RULES:
- Every request runs in its own worker (one in-flight request per context)
- The NDJSON stream is progress lines followed by exactly one terminal line
- Error responses use a consistent ErrorResponse schema
- The job store is a singleton created at import; cleanup runs every 5 minutes
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Iterator, List, Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import Response, StreamingResponse

from codepack import __version__
from codepack.config import configure_logging
from codepack.core.budget import MODEL_LIMITS
from codepack.core.ir import (
    ErrorResponse as ErrorEvent,
    ProcessingMode,
    ProcessingRequest,
    ProgressResponse,
    ResultResponse,
)
from codepack.core.orchestrator import CodeProcessor, build_processor
from codepack.formatters import FORMATTERS
from codepack.server.jobs import Job, JobStatus, JobStore
from codepack.server.models import (
    ErrorResponse,
    HealthResponse,
    JobCreatedResponse,
    JobResponse,
    ModelInfo,
    ProcessRequestBody,
    ProgressPayloadModel,
    StyleInfo,
)
from codepack.server.worker import ProcessingWorker

logger = logging.getLogger(__name__)

NDJSON_MEDIA_TYPE = "application/x-ndjson"

# ---------------------------------------------------------------------------
# App and store setup
# ---------------------------------------------------------------------------

job_store = JobStore()

_processor: Optional[CodeProcessor] = None


def get_processor() -> CodeProcessor:
    """The processor shared by all workers, built from config on first use."""
    global _processor
    if _processor is None:
        _processor = build_processor()
    return _processor


async def _periodic_cleanup() -> None:
    """Run job cleanup every 5 minutes."""
    while True:
        await asyncio.sleep(300)
        job_store.cleanup_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start periodic cleanup on startup, cancel on shutdown."""
    task = asyncio.create_task(_periodic_cleanup())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    lifespan=lifespan,
    title="codepack API",
    description=(
        "Bundle source files into a single budget-aware document for "
        "language models. Stream a request's progress as NDJSON, or "
        "submit it as a job and poll for the result."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _job_to_response(job: Job) -> JobResponse:
    """Convert an internal Job dataclass to a JobResponse Pydantic model."""
    completed = job.status == JobStatus.COMPLETED
    return JobResponse(
        id=job.id,
        status=job.status.value,
        created_at=job.created_at,
        output_style=job.request.output_style,
        mode=job.request.mode.value,
        progress=ProgressPayloadModel(**job.progress) if job.progress else None,
        lines=list(job.lines) if completed else None,
        token_savings=job.token_savings if completed else None,
        error=job.error,
    )


def _stream_responses(request: ProcessingRequest) -> Iterator[str]:
    """NDJSON lines for ``request``, produced by a dedicated worker."""
    worker = ProcessingWorker(processor=get_processor())
    try:
        for response in worker.run(request):
            yield json.dumps(response.to_message()) + "\n"
    finally:
        worker.stop()


def _run_processing_job(job_id: str, store: JobStore) -> None:
    """Drive a job's request through a worker, mirroring responses into the store.

    RULES:
    - First progress event moves the job to RUNNING
    - Result → COMPLETED with lines and savings; error → FAILED
    - The worker is always stopped, even when the job is deleted mid-run
    """
    job = store.get_job(job_id)
    if job is None:
        return

    worker = ProcessingWorker(processor=get_processor())
    try:
        for response in worker.run(job.request):
            if isinstance(response, ProgressResponse):
                store.update_job(
                    job_id,
                    status=JobStatus.RUNNING,
                    progress=response.payload.to_dict(),
                )
            elif isinstance(response, ResultResponse):
                store.update_job(
                    job_id,
                    status=JobStatus.COMPLETED,
                    lines=response.lines,
                    token_savings=response.token_savings,
                )
            elif isinstance(response, ErrorEvent):
                store.update_job(job_id, status=JobStatus.FAILED, error=response.error)
    finally:
        worker.stop()


def _run_job_sync(job_id: str, store: JobStore) -> None:
    """BackgroundTasks entry point; failures are recorded on the job."""
    store.run_in_background(job_id, _run_processing_job)


# ---------------------------------------------------------------------------
# Endpoints: Processing
# ---------------------------------------------------------------------------


@app.post(
    "/process",
    tags=["processing"],
    summary="Process files and stream responses",
    description=(
        "Runs the request in a dedicated worker and streams each response "
        "as one JSON object per line: progress events first, then exactly "
        "one 'result' or 'error' line."
    ),
    response_class=StreamingResponse,
    responses={
        200: {"content": {NDJSON_MEDIA_TYPE: {}}, "description": "NDJSON response stream"},
        422: {"description": "Invalid request body"},
    },
)
async def process_files(body: ProcessRequestBody) -> StreamingResponse:
    request = body.to_request()
    return StreamingResponse(_stream_responses(request), media_type=NDJSON_MEDIA_TYPE)


# ---------------------------------------------------------------------------
# Endpoints: Jobs
# ---------------------------------------------------------------------------


@app.post(
    "/jobs",
    response_model=JobCreatedResponse,
    status_code=201,
    tags=["jobs"],
    summary="Submit a processing job",
    description=(
        "Returns a job ID immediately and processes the request in the "
        "background. Any id in the body is replaced by the job id. Poll "
        "GET /jobs/{id} for progress and the result."
    ),
    responses={
        429: {"model": ErrorResponse, "description": "Too many stored jobs"},
    },
)
async def create_job(
    body: ProcessRequestBody,
    background_tasks: BackgroundTasks,
) -> JobCreatedResponse:
    try:
        job = job_store.create_job(body.to_request())
    except ValueError as exc:
        raise HTTPException(status_code=429, detail=str(exc))

    background_tasks.add_task(_run_job_sync, job.id, job_store)

    return JobCreatedResponse(
        id=job.id,
        status=job.status.value,
        total_files_count=len(job.request.text_files),
    )


@app.get(
    "/jobs/{job_id}",
    response_model=JobResponse,
    tags=["jobs"],
    summary="Get processing job status",
    responses={
        404: {"model": ErrorResponse, "description": "Job not found"},
    },
)
async def get_job(job_id: str) -> JobResponse:
    job = job_store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))
    return _job_to_response(job)


@app.get(
    "/jobs",
    response_model=List[JobResponse],
    tags=["jobs"],
    summary="List processing jobs (oldest first)",
)
async def list_jobs() -> List[JobResponse]:
    return [_job_to_response(job) for job in job_store.list_jobs()]


@app.delete(
    "/jobs/{job_id}",
    status_code=204,
    tags=["jobs"],
    summary="Delete a processing job",
    description=(
        "Forget a job and its result. A running job is not interrupted; "
        "its output is discarded."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Job not found"},
    },
)
async def delete_job(job_id: str) -> Response:
    if not job_store.delete_job(job_id):
        raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Endpoints: Catalogue
# ---------------------------------------------------------------------------


@app.get(
    "/styles",
    response_model=List[StyleInfo],
    tags=["catalogue"],
    summary="List available output styles",
)
async def list_styles() -> List[StyleInfo]:
    return [
        StyleInfo(key=key, name=formatter_cls().name)
        for key, formatter_cls in FORMATTERS.items()
    ]


@app.get(
    "/modes",
    response_model=List[str],
    tags=["catalogue"],
    summary="List content reduction modes",
)
async def list_modes() -> List[str]:
    return [mode.value for mode in ProcessingMode]


@app.get(
    "/models",
    response_model=List[ModelInfo],
    tags=["catalogue"],
    summary="List known model context windows",
)
async def list_models() -> List[ModelInfo]:
    return [
        ModelInfo(id=m.id, name=m.name, limit=m.limit, provider=m.provider)
        for m in MODEL_LIMITS
    ]


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Entry point for the codepack-api console script."""
    import uvicorn

    configure_logging()
    uvicorn.run(app, host=host, port=port)
