"""Per-request orchestration: transform, account, format, report.

WHY: One request touches every component: the pipeline reduces each
file, the accountant measures it, the formatter appends it, the reporter
decides whether to tell the caller. Something has to drive them in the
right order and guarantee the caller sees progress followed by exactly
one terminal response.

HOW: CodeProcessor.stream() is an async generator. It emits the
"Starting..." event, walks the text files in submission order, and
finishes with a ResultResponse carrying the assembled lines and the
character-based savings percentage. Anything unexpected raised along the
way becomes a single ErrorResponse instead of a partial result.
CodeProcessor.process() drains the stream through collect_responses()
and returns the ProcessingResult.

RULES:
- Files are processed sequentially; output order == input order
- Non-text records are skipped without affecting the order of the rest
- The initial progress event goes out before any content is read
- tokens_saved (progress) is token-based; tokenSavings (result) is
  character-based; two distinct accounting bases, kept separate
- tokenSavings is 0 for raw mode or an empty batch, otherwise clamped to >= 0
- Per-file structural failures never reach this level (pipeline absorbs them)
"""

from __future__ import annotations

import logging
from typing import AsyncIterator, Iterable, List, Optional

from codepack.config import MAX_PROCESS_SIZE, STRUCTURAL_TRANSFORM_PATH, TEXTUAL_TRANSFORM_PATH
from codepack.core.collaborators import resolve_structural, resolve_textual
from codepack.core.errors import ProcessingError, ProtocolError
from codepack.core.ir import (
    ErrorResponse,
    ProcessingMode,
    ProcessingRequest,
    ProcessingResult,
    ProgressResponse,
    ResultResponse,
    WorkerResponse,
)
from codepack.core.pipeline import TransformPipeline
from codepack.core.progress import ProgressReporter, round_half_up
from codepack.core.tokens import TokenCounter, get_token_counter
from codepack.formatters import get_formatter

logger = logging.getLogger(__name__)


def compute_savings_percent(mode: ProcessingMode, original_chars: int, processed_chars: int) -> int:
    """Aggregate character-length savings as a 0-100 integer."""
    if mode == ProcessingMode.RAW or original_chars == 0:
        return 0
    percent = round_half_up((original_chars - processed_chars) / original_chars * 100)
    return max(0, percent)


class CodeProcessor:
    """Drives requests through pipeline, accountant, formatter, and reporter.

    Args:
        pipeline: Tiered transformer; defaults to one with no-op collaborators.
        token_counter: Accountant; defaults to the shared tiktoken counter
            (resolved lazily on the first request).
    """

    def __init__(
        self,
        pipeline: Optional[TransformPipeline] = None,
        token_counter: Optional[TokenCounter] = None,
    ) -> None:
        self.pipeline = pipeline or TransformPipeline()
        self._token_counter = token_counter

    @property
    def token_counter(self) -> TokenCounter:
        if self._token_counter is None:
            self._token_counter = get_token_counter()
        return self._token_counter

    async def stream(self, request: ProcessingRequest) -> AsyncIterator[WorkerResponse]:
        """Yield progress responses, then exactly one terminal response."""
        text_files = request.text_files
        reporter = ProgressReporter(
            request_id=request.id,
            total_files_count=len(text_files),
            total_bytes=sum(len(f.content) for f in text_files),
        )
        yield reporter.start()

        logger.info(
            "Processing request %s: %d text file(s), mode=%s, style=%s",
            request.id, reporter.total_files_count, request.mode.value, request.output_style,
        )

        try:
            formatter = get_formatter(request.output_style)
            counter = self.token_counter
            lines: List[str] = []
            original_chars = 0
            processed_chars = 0

            for index, record in enumerate(text_files):
                extension = record.extension
                processed = await self.pipeline.transform(record.content, extension, request.mode)

                original_chars += len(record.content)
                processed_chars += len(processed)
                delta = counter.count(record.content) - counter.count(processed)

                formatter.append(lines, record.path_label, extension, processed, index == 0)

                event = reporter.record(record.name, len(record.content), delta)
                if event is not None:
                    yield event

            savings = compute_savings_percent(request.mode, original_chars, processed_chars)
        except Exception as exc:
            logger.exception("Request %s failed", request.id)
            yield ErrorResponse(id=request.id, error=str(exc) or type(exc).__name__)
            return

        logger.info(
            "Request %s completed: %d line(s), %d%% savings, %d token(s) saved",
            request.id, len(lines), savings, reporter.tokens_saved,
        )
        yield ResultResponse(id=request.id, lines=lines, token_savings=savings)

    async def collect(self, request: ProcessingRequest) -> List[WorkerResponse]:
        """All responses for ``request``, in emission order."""
        return [response async for response in self.stream(request)]

    async def process(self, request: ProcessingRequest) -> ProcessingResult:
        """Run ``request`` to completion and return its result.

        Raises:
            ProcessingError: The request ended with an error response.
        """
        return collect_responses(await self.collect(request))


def build_processor(
    structural_path: str = STRUCTURAL_TRANSFORM_PATH,
    textual_path: str = TEXTUAL_TRANSFORM_PATH,
    max_process_size: int = MAX_PROCESS_SIZE,
) -> CodeProcessor:
    """CodeProcessor wired with collaborators resolved from dotted paths.

    Empty paths select the no-op defaults.

    Raises:
        CollaboratorImportError: A path cannot be resolved.
    """
    pipeline = TransformPipeline(
        structural=resolve_structural(structural_path),
        textual=resolve_textual(textual_path),
        max_process_size=max_process_size,
    )
    return CodeProcessor(pipeline=pipeline)


def collect_responses(responses: Iterable[WorkerResponse]) -> ProcessingResult:
    """Check the progress*-then-one-terminal contract and extract the result.

    Raises:
        ProtocolError: A response follows the terminal one, a non-progress
            response precedes it, or no terminal response arrives.
        ProcessingError: The terminal response is an error.
    """
    terminal: Optional[WorkerResponse] = None
    for response in responses:
        if terminal is not None:
            raise ProtocolError(
                "Response {!r} received after terminal {!r}".format(response.type, terminal.type)
            )
        if response.is_terminal:
            terminal = response
        elif not isinstance(response, ProgressResponse):
            raise ProtocolError("Unexpected {!r} response in request stream".format(response.type))

    if terminal is None:
        raise ProtocolError("Response stream ended without a terminal response")
    if isinstance(terminal, ErrorResponse):
        raise ProcessingError(terminal.id, terminal.error)
    return terminal.to_result()
