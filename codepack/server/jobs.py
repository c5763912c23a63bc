"""In-memory job store with background task execution and TTL cleanup.

WHY: Large bundles take a while, and some HTTP clients prefer to submit
and poll instead of holding a streaming connection open. The API returns
a job ID immediately and processes the request in the background; an
in-memory store is sufficient because nothing outlives the process.

HOW: Three components work together:
  JobStatus: enum of valid job states
  Job: dataclass holding the request, latest progress, and outcome
  JobStore: thread-safe dict-based store with create/update/get/list/delete,
    background task execution, and TTL cleanup

RULES:
- All store mutations are protected by threading.Lock for thread safety
- States follow the request lifecycle: pending → running → completed | failed
- TTL-based expiry removes terminal jobs TTL seconds after completion
- Background runner marks the job 'failed' on unhandled exceptions
- Job IDs are UUID4 hex strings and double as the request id
- Default TTL is 1 hour (3600 seconds)
"""

from __future__ import annotations

import enum
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional

from codepack.core.ir import ProcessingRequest

logger = logging.getLogger(__name__)

# Default time-to-live for completed/failed jobs (seconds)
DEFAULT_TTL_SECONDS = 3600


class JobStatus(str, enum.Enum):
    """Valid states for a processing job.

    RULES:
    - pending: job created, worker not started yet
    - running: initial progress event received
    - completed: result response received; lines available
    - failed: error response or unhandled exception
    """

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED)


@dataclass
class Job:
    """Metadata and state for a single processing job.

    RULES:
    - id: UUID4 hex string, equal to request.id
    - request: the submitted ProcessingRequest (immutable)
    - progress: latest progressPayload dict, or None before the first event
    - lines / token_savings: set only once the job has completed
    - error: error message string if status is FAILED, else None
    - completed_at: epoch timestamp when the job reached a terminal state
    """

    id: str
    status: JobStatus
    request: ProcessingRequest
    created_at: float
    updated_at: float
    completed_at: Optional[float] = None
    error: Optional[str] = None
    progress: Optional[Dict[str, Any]] = None
    lines: List[str] = field(default_factory=list)
    token_savings: Optional[int] = None


class JobStore:
    """Thread-safe in-memory store for processing jobs.

    HOW: Jobs are stored in a plain dict keyed by job ID. All mutations
    acquire a threading.Lock. Background tasks run via callables that
    receive the job ID and the store and update it as they progress.

    RULES:
    - create_job() rejects new jobs once max_jobs are stored
    - get_job() returns None for missing job IDs (no exceptions)
    - update_job() applies only the non-None arguments
    - cleanup_expired() only removes terminal jobs
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_jobs: int = 100,
    ) -> None:
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self.max_jobs = max_jobs

    def create_job(self, request: ProcessingRequest) -> Job:
        """Create a PENDING job for ``request`` under a fresh id.

        The request is re-keyed to the job id so every response it
        produces correlates with the job.

        Raises:
            ValueError: If the store already holds max_jobs jobs.
        """
        with self._lock:
            if len(self._jobs) >= self.max_jobs:
                raise ValueError(
                    "Maximum number of concurrent jobs ({}) reached".format(
                        self.max_jobs
                    )
                )

            job_id = uuid.uuid4().hex
            now = time.time()
            job = Job(
                id=job_id,
                status=JobStatus.PENDING,
                request=replace(request, id=job_id),
                created_at=now,
                updated_at=now,
            )
            self._jobs[job_id] = job

        logger.info(
            "Created job %s with %d text file(s)", job_id, len(request.text_files)
        )
        return job

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self) -> List[Job]:
        """All jobs, oldest first (a new list, not internal state)."""
        with self._lock:
            return sorted(self._jobs.values(), key=lambda j: j.created_at)

    def update_job(
        self,
        job_id: str,
        status: Optional[JobStatus] = None,
        error: Optional[str] = None,
        progress: Optional[Dict[str, Any]] = None,
        lines: Optional[List[str]] = None,
        token_savings: Optional[int] = None,
    ) -> Optional[Job]:
        """Update a job's mutable fields.

        RULES:
        - Returns the updated Job, or None if job_id not found
        - updated_at is always bumped
        - completed_at is set when status becomes COMPLETED or FAILED
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None

            now = time.time()

            if status is not None:
                job.status = status
            if error is not None:
                job.error = error
            if progress is not None:
                job.progress = progress
            if lines is not None:
                job.lines = lines
            if token_savings is not None:
                job.token_savings = token_savings

            job.updated_at = now

            if job.status in TERMINAL_STATUSES and job.completed_at is None:
                job.completed_at = now

            return job

    def delete_job(self, job_id: str) -> bool:
        """Remove a job; True if it existed.

        A running job's worker is not interrupted; its later updates are
        dropped because update_job() no longer finds the id.
        """
        with self._lock:
            job = self._jobs.pop(job_id, None)

        if job is None:
            return False
        logger.info("Deleted job %s", job_id)
        return True

    def cleanup_expired(self) -> int:
        """Remove terminal jobs whose completed_at is older than the TTL.

        Returns the count of removed jobs.
        """
        now = time.time()
        expired: List[Job] = []

        with self._lock:
            for job_id, job in list(self._jobs.items()):
                if job.status not in TERMINAL_STATUSES:
                    continue
                if job.completed_at is None:
                    continue
                if now - job.completed_at > self._ttl_seconds:
                    expired.append(self._jobs.pop(job_id))

        for job in expired:
            logger.info("Expired job %s (completed %.0fs ago)", job.id, now - job.completed_at)

        return len(expired)

    def run_in_background(
        self,
        job_id: str,
        task: Callable[[str, "JobStore"], None],
    ) -> None:
        """Run ``task(job_id, store)`` and fail the job if it raises.

        WHY: Background tasks are executed by FastAPI after the response
        is sent; an exception there would otherwise vanish and leave the
        job stuck in a non-terminal state.
        """
        try:
            task(job_id, self)
        except Exception as exc:
            logger.exception("Background task failed for job %s", job_id)
            self.update_job(job_id, status=JobStatus.FAILED, error=str(exc))
