"""Progress counters and the emission policy for the progress stream.

WHY: Small batches should feel live (an update per file) while batches
of thousands of files must not flood the caller with messages. The
reporter owns the running counters and decides, after each file, whether
an update goes out.

HOW: ProgressReporter is created per request with the text-file totals.
start() builds the initial "Starting..." event. record() folds one
file's numbers into the counters and returns a ProgressResponse when the
policy says to emit, otherwise None.

RULES:
- Emit after file i of N when N < 100, or i % 5 == 0, or i == N
- The initial event always goes out, even when N == 0
- Legacy percentage = round_half_up(i / N * 100); kept for old clients,
  not authoritative
- tokens_saved accumulates signed deltas (never clamped)
"""

from __future__ import annotations

import math
from typing import Optional

from codepack.config import PROGRESS_SMALL_BATCH, PROGRESS_STRIDE, STARTING_FILE_NAME
from codepack.core.ir import ProcessingProgress, ProgressResponse


def round_half_up(value: float) -> int:
    """Round .5 upwards (Python's round() rounds half to even)."""
    return int(math.floor(value + 0.5))


def should_emit(processed_files_count: int, total_files_count: int) -> bool:
    """Emission policy after ``processed_files_count`` of ``total_files_count`` files."""
    return (
        total_files_count < PROGRESS_SMALL_BATCH
        or processed_files_count % PROGRESS_STRIDE == 0
        or processed_files_count == total_files_count
    )


def legacy_percent(processed_files_count: int, total_files_count: int) -> int:
    if total_files_count <= 0:
        return 0
    return round_half_up(processed_files_count / total_files_count * 100)


class ProgressReporter:
    """Running counters for one request.

    Args:
        request_id: Id stamped on every emitted response.
        total_files_count: Number of text files in the request.
        total_bytes: Summed original content length of those files.
    """

    def __init__(self, request_id: str, total_files_count: int, total_bytes: int) -> None:
        self.request_id = request_id
        self.total_files_count = total_files_count
        self.total_bytes = total_bytes
        self.processed_files_count = 0
        self.processed_bytes = 0
        self.tokens_saved = 0

    def start(self) -> ProgressResponse:
        """The initial event, sent before any file content is touched."""
        return ProgressResponse(
            id=self.request_id,
            progress=0,
            payload=self._snapshot(STARTING_FILE_NAME),
        )

    def record(self, file_name: str, original_bytes: int, tokens_delta: int) -> Optional[ProgressResponse]:
        """Account for one processed file; return an event if one is due."""
        self.processed_files_count += 1
        self.processed_bytes += original_bytes
        self.tokens_saved += tokens_delta

        if not should_emit(self.processed_files_count, self.total_files_count):
            return None
        return ProgressResponse(
            id=self.request_id,
            progress=legacy_percent(self.processed_files_count, self.total_files_count),
            payload=self._snapshot(file_name),
        )

    def _snapshot(self, current_file_name: str) -> ProcessingProgress:
        return ProcessingProgress(
            current_file_name=current_file_name,
            processed_files_count=self.processed_files_count,
            total_files_count=self.total_files_count,
            processed_bytes=self.processed_bytes,
            total_bytes=self.total_bytes,
            tokens_saved=self.tokens_saved,
        )
