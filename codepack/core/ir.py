"""Request, progress, result, and response dataclasses.

WHY: The orchestrator, worker, HTTP API, CLI, and client all exchange the
same handful of entities. A single well-typed set of dataclasses keeps
the wire protocol in one place and decouples processing from transport.

HOW: Two str enums close the sets of modes and styles. FileRecord and
ProcessingRequest are frozen inputs. ProcessingProgress and
ProcessingResult are outputs. The four response variants form a tagged
union keyed by their ``type`` class attribute; each knows how to render
itself as a wire message, and response_from_message() parses one back.

RULES:
- Inputs are immutable once submitted (frozen dataclasses, tuple of files)
- Wire keys follow the protocol exactly: camelCase on the envelope
  (progressPayload, tokenSavings), snake_case inside progressPayload
- Every request-scoped response carries the originating request id
- ReadyResponse is the only variant not tied to a request
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from typing import Any, ClassVar, Dict, List, Tuple, Union


class ProcessingMode(str, enum.Enum):
    """Content reduction modes.

    RULES:
    - raw: no reduction, no transformer is invoked
    - remove-comments / minify: structural first, textual fallback in the same mode
    - signatures-only / interfaces-only: structural only, fallback is "no reduction"
    """

    RAW = "raw"
    REMOVE_COMMENTS = "remove-comments"
    SIGNATURES_ONLY = "signatures-only"
    INTERFACES_ONLY = "interfaces-only"
    MINIFY = "minify"


class OutputStyle(str, enum.Enum):
    """Delimiter conventions for concatenating files.

    Requests carry the style as a plain string; anything not listed here
    is formatted as STANDARD.
    """

    STANDARD = "standard"
    HASH = "hash"
    MINIMAL = "minimal"
    XML = "xml"
    MARKDOWN = "markdown"


DEFAULT_EXTENSION = "txt"


@dataclass(frozen=True)
class FileRecord:
    """One submitted file.

    Attributes:
        id: Opaque file identifier supplied by the host.
        name: Display name, e.g. ``"app.py"``.
        path: Path label, e.g. ``"src/app.py"``; may be empty.
        content: Raw text content.
        is_text: Only text-bearing records are transformed and emitted.
    """

    id: str
    name: str
    path: str
    content: str
    is_text: bool = True

    @property
    def path_label(self) -> str:
        """The path when present, otherwise the name."""
        return self.path or self.name

    @property
    def extension(self) -> str:
        """Substring after the last dot of the name.

        A name without a dot is its own extension (``"Makefile"``); an
        empty name or a trailing dot gives ``"txt"``.
        """
        return self.name.rsplit(".", 1)[-1] or DEFAULT_EXTENSION


@dataclass(frozen=True)
class ProcessingRequest:
    """A batch of files to reduce and assemble.

    Attributes:
        id: Opaque token used to correlate every response.
        files: Ordered file records (text and non-text).
        output_style: Output style name; unknown names mean "standard".
        mode: Reduction mode applied to every text file.
    """

    id: str
    files: Tuple[FileRecord, ...]
    output_style: str = OutputStyle.STANDARD.value
    mode: ProcessingMode = ProcessingMode.RAW

    def __post_init__(self) -> None:
        # Frozen: normalize through object.__setattr__.
        object.__setattr__(self, "files", tuple(self.files))
        object.__setattr__(self, "mode", ProcessingMode(self.mode))
        if isinstance(self.output_style, OutputStyle):
            object.__setattr__(self, "output_style", self.output_style.value)

    @property
    def text_files(self) -> List[FileRecord]:
        """Text-bearing records in submission order."""
        return [f for f in self.files if f.is_text]

    def to_message(self) -> Dict[str, Any]:
        """The ``{type: "process", ...}`` wire message for this request."""
        return {
            "type": "process",
            "id": self.id,
            "files": [
                {
                    "id": f.id,
                    "name": f.name,
                    "path": f.path,
                    "content": f.content,
                    "isText": f.is_text,
                }
                for f in self.files
            ],
            "outputStyle": self.output_style,
            "mode": self.mode.value,
        }


@dataclass
class ProcessingProgress:
    """Counters snapshot carried by a progress response.

    RULES:
    - processed_files_count and processed_bytes never decrease
    - processed_bytes counts ORIGINAL content length
    - tokens_saved is the signed sum of per-file token deltas (not clamped)
    """

    current_file_name: str
    processed_files_count: int
    total_files_count: int
    processed_bytes: int
    total_bytes: int
    tokens_saved: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ProcessingResult:
    """Assembled output of a completed request.

    ``token_savings`` is a 0-100 percentage on the character-length basis,
    distinct from the token-based ``tokens_saved`` of the progress stream.
    """

    request_id: str
    lines: List[str] = field(default_factory=list)
    token_savings: int = 0

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


# ---------------------------------------------------------------------------
# Responses (tagged union)
# ---------------------------------------------------------------------------


@dataclass
class ProgressResponse:
    """Non-terminal progress update."""

    type: ClassVar[str] = "progress"

    id: str
    progress: int
    payload: ProcessingProgress

    @property
    def is_terminal(self) -> bool:
        return False

    def to_message(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "id": self.id,
            "progress": self.progress,
            "progressPayload": self.payload.to_dict(),
        }


@dataclass
class ResultResponse:
    """Terminal success response."""

    type: ClassVar[str] = "result"

    id: str
    lines: List[str]
    token_savings: int

    @property
    def is_terminal(self) -> bool:
        return True

    def to_result(self) -> ProcessingResult:
        return ProcessingResult(
            request_id=self.id,
            lines=list(self.lines),
            token_savings=self.token_savings,
        )

    def to_message(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "id": self.id,
            "lines": list(self.lines),
            "tokenSavings": self.token_savings,
        }


@dataclass
class ErrorResponse:
    """Terminal failure response."""

    type: ClassVar[str] = "error"

    id: str
    error: str

    @property
    def is_terminal(self) -> bool:
        return True

    def to_message(self) -> Dict[str, Any]:
        return {"type": self.type, "id": self.id, "error": self.error}


@dataclass
class ReadyResponse:
    """Emitted once when an execution context becomes available."""

    type: ClassVar[str] = "ready"

    id: str

    @property
    def is_terminal(self) -> bool:
        return False

    def to_message(self) -> Dict[str, Any]:
        return {"type": self.type, "id": self.id}


WorkerResponse = Union[ProgressResponse, ResultResponse, ErrorResponse, ReadyResponse]


def response_from_message(data: Dict[str, Any]) -> WorkerResponse:
    """Parse a wire message back into its response variant.

    Raises:
        ValueError: If the ``type`` tag is missing or unknown.
    """
    kind = data.get("type")
    if kind == ProgressResponse.type:
        payload = ProcessingProgress(**data["progressPayload"])
        return ProgressResponse(id=data["id"], progress=data["progress"], payload=payload)
    if kind == ResultResponse.type:
        return ResultResponse(
            id=data["id"],
            lines=list(data["lines"]),
            token_savings=data["tokenSavings"],
        )
    if kind == ErrorResponse.type:
        return ErrorResponse(id=data["id"], error=data["error"])
    if kind == ReadyResponse.type:
        return ReadyResponse(id=data["id"])
    raise ValueError("Unknown response type: {!r}".format(kind))
