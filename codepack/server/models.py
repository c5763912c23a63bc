"""Pydantic models for the message protocol and the HTTP API.

WHY: Requests arrive as untrusted dicts (from a queue or an HTTP body).
Pydantic validates them before any processing starts and generates JSON
Schema for the OpenAPI docs and for protocol tests.

HOW: FilePayload/ProcessMessage mirror the worker request message
exactly (camelCase wire names). ProcessRequestBody is the HTTP variant
without the ``type`` tag. The *Message response models document the
four response shapes produced by codepack.core.ir. The remaining models
back the job, catalogue, and health endpoints.

RULES:
- Wire field names are camelCase on the envelope, snake_case in progressPayload
- mode accepts only ProcessingMode values; outputStyle accepts any string
  (unknown styles format as "standard")
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
- JobStatus is imported from server.jobs (single source of truth)
"""

from __future__ import annotations

import uuid
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from codepack.config import DEFAULT_MODE, DEFAULT_OUTPUT_STYLE
from codepack.core.ir import FileRecord, ProcessingMode, ProcessingRequest


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class FilePayload(BaseModel):
    """One file inside a process request."""

    id: str = Field(description="Opaque file identifier.")
    name: str = Field(description="Display name, used for the extension.")
    path: str = Field(default="", description="Path label; the name is used when empty.")
    content: str = Field(description="Raw text content.")
    isText: bool = Field(default=True, description="Only text files are processed.")

    def to_record(self) -> FileRecord:
        return FileRecord(
            id=self.id,
            name=self.name,
            path=self.path,
            content=self.content,
            is_text=self.isText,
        )


class ProcessRequestBody(BaseModel):
    """HTTP body for POST /process and POST /jobs.

    RULES:
    - id is generated only when omitted (an empty string is kept)
    - outputStyle defaults to CODEPACK_DEFAULT_STYLE, mode to CODEPACK_DEFAULT_MODE
    """

    id: Optional[str] = Field(default=None, description="Request id echoed on every response.")
    files: List[FilePayload] = Field(description="Files in output order.")
    outputStyle: str = Field(
        default=DEFAULT_OUTPUT_STYLE,
        description="standard, hash, minimal, xml or markdown.",
    )
    mode: ProcessingMode = Field(
        default=ProcessingMode(DEFAULT_MODE),
        description="Content reduction mode.",
    )

    def to_request(self) -> ProcessingRequest:
        return ProcessingRequest(
            id=self.id if self.id is not None else uuid.uuid4().hex,
            files=tuple(f.to_record() for f in self.files),
            output_style=self.outputStyle,
            mode=self.mode,
        )


class ProcessMessage(ProcessRequestBody):
    """Worker request message: ``{type: "process", id, files, outputStyle, mode}``."""

    type: Literal["process"] = Field(description="Message tag; always 'process'.")
    id: str = Field(description="Request id echoed on every response.")


# ---------------------------------------------------------------------------
# Response message models (documentation / schema validation)
# ---------------------------------------------------------------------------


class ProgressPayloadModel(BaseModel):
    current_file_name: str
    processed_files_count: int = Field(ge=0)
    total_files_count: int = Field(ge=0)
    processed_bytes: int = Field(ge=0)
    total_bytes: int = Field(ge=0)
    tokens_saved: int = Field(description="Signed; negative when transforms grow content.")


class ProgressMessage(BaseModel):
    type: Literal["progress"]
    id: str
    progress: int = Field(ge=0, le=100, description="Legacy percentage; not authoritative.")
    progressPayload: ProgressPayloadModel


class ResultMessage(BaseModel):
    type: Literal["result"]
    id: str
    lines: List[str]
    tokenSavings: int = Field(ge=0, le=100, description="Character-length savings percentage.")


class ErrorMessage(BaseModel):
    type: Literal["error"]
    id: str
    error: str


class ReadyMessage(BaseModel):
    type: Literal["ready"]
    id: str


# ---------------------------------------------------------------------------
# HTTP API response models
# ---------------------------------------------------------------------------


class JobCreatedResponse(BaseModel):
    """Response returned when a new processing job is submitted.

    RULES:
    - status is always 'pending' on creation
    """

    id: str = Field(description="Job id (also the request id on every response).")
    status: str = Field(description="Initial job status (always 'pending').")
    total_files_count: int = Field(description="Number of text files in the request.")


class JobResponse(BaseModel):
    """Processing job status response.

    RULES:
    - progress holds the latest progress payload once running
    - lines / token_savings are only set when status is 'completed'
    - error is only set when status is 'failed'
    """

    id: str = Field(description="Job id.")
    status: str = Field(description="pending, running, completed or failed.")
    created_at: float = Field(description="Job creation timestamp (Unix epoch seconds).")
    output_style: str = Field(description="Requested output style.")
    mode: str = Field(description="Requested reduction mode.")
    progress: Optional[ProgressPayloadModel] = Field(default=None, description="Latest progress payload.")
    lines: Optional[List[str]] = Field(default=None, description="Assembled output lines.")
    token_savings: Optional[int] = Field(default=None, description="Character-length savings percentage.")
    error: Optional[str] = Field(default=None, description="Error message when failed.")


class StyleInfo(BaseModel):
    key: str = Field(description="Style identifier used in requests.")
    name: str = Field(description="Human-readable style name.")


class ModelInfo(BaseModel):
    id: str
    name: str
    limit: int = Field(description="Context window in tokens.")
    provider: str


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
