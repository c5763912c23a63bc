"""Command-line interface for codepack.

WHY: The quickest way to get a repository into a model's context is a
single shell command: point it at some files, pick a style and a
reduction mode, get one document back. The CLI wires file reading, the
processing worker, progress display, and an optional model budget check
behind that command.

HOW: Uses argparse for paths and options. Files are read into
FileRecords (directories are walked recursively in sorted order), the
request runs in a ProcessingWorker, progress goes to stderr, and the
assembled document goes to stdout or --output.

RULES:
- Positional arguments: one or more files or directories
- A file is text when it decodes as UTF-8 and has no NUL byte; other
  files are submitted with is_text=False and skipped by the processor
- Status output goes to stderr (not stdout) so the CLI can be piped
- --structural / --textual take "package.module:callable" paths and
  override CODEPACK_STRUCTURAL_TRANSFORM / CODEPACK_TEXTUAL_TRANSFORM
- Exit status 1 on unreadable input, bad collaborator paths, unknown
  model ids, or a terminal error response
"""

from __future__ import annotations

import argparse
import sys
import uuid
from pathlib import Path
from typing import List, Optional

from codepack.config import (
    DEFAULT_MODE,
    DEFAULT_OUTPUT_STYLE,
    STRUCTURAL_TRANSFORM_PATH,
    TEXTUAL_TRANSFORM_PATH,
    configure_logging,
)
from codepack.core.budget import MODEL_LIMITS, check_budget
from codepack.core.errors import CodePackError
from codepack.core.ir import (
    ErrorResponse,
    FileRecord,
    ProcessingMode,
    ProcessingRequest,
    ProgressResponse,
    ResultResponse,
)
from codepack.core.orchestrator import build_processor
from codepack.core.tokens import get_token_counter
from codepack.formatters import FORMATTERS
from codepack.server.worker import ProcessingWorker


def _status(msg: str) -> None:
    """Print a status message to stderr (flushed immediately)."""
    print(msg, file=sys.stderr, flush=True)


def _iter_input_files(paths: List[str]) -> List[Path]:
    """Expand directories into their files, keeping argument order.

    Raises:
        FileNotFoundError: A path does not exist.
    """
    files: List[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            files.extend(sorted(p for p in path.rglob("*") if p.is_file()))
        elif path.is_file():
            files.append(path)
        else:
            raise FileNotFoundError("No such file or directory: {}".format(raw))
    return files


def _path_label(path: Path) -> str:
    try:
        return path.resolve().relative_to(Path.cwd().resolve()).as_posix()
    except ValueError:
        return path.as_posix()


def read_file_record(path: Path, file_id: str) -> FileRecord:
    """Load ``path`` as a FileRecord, detecting whether it is text."""
    data = path.read_bytes()
    content = ""
    is_text = b"\x00" not in data
    if is_text:
        try:
            content = data.decode("utf-8")
        except UnicodeDecodeError:
            is_text = False
    return FileRecord(
        id=file_id,
        name=path.name,
        path=_path_label(path),
        content=content,
        is_text=is_text,
    )


def build_request(paths: List[str], output_style: str, mode: str) -> ProcessingRequest:
    """ProcessingRequest for the given files/directories."""
    files = _iter_input_files(paths)
    records = tuple(read_file_record(path, str(index)) for index, path in enumerate(files))
    return ProcessingRequest(
        id=uuid.uuid4().hex,
        files=records,
        output_style=output_style,
        mode=ProcessingMode(mode),
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    RULES:
    - Positional: paths (one or more)
    - Optional: --style, --mode, --output, --model
    - Optional: --structural, --textual, --quiet, --verbose
    """
    parser = argparse.ArgumentParser(
        prog="codepack",
        description="Bundle source files into one budget-aware document for language models.",
    )

    parser.add_argument(
        "paths",
        nargs="+",
        help="Files or directories to bundle (directories are walked recursively).",
    )

    parser.add_argument(
        "--style",
        default=DEFAULT_OUTPUT_STYLE,
        help="Output style. Available: {} (default: %(default)s).".format(
            ", ".join(FORMATTERS.keys())
        ),
    )

    parser.add_argument(
        "--mode",
        default=DEFAULT_MODE,
        choices=[mode.value for mode in ProcessingMode],
        help="Content reduction mode (default: %(default)s).",
    )

    parser.add_argument(
        "-o", "--output",
        default=None,
        help="Write the bundle to this file instead of stdout.",
    )

    parser.add_argument(
        "--model",
        default=None,
        help="Report the bundle's token usage against this model's context window. "
             "Known: {}.".format(", ".join(m.id for m in MODEL_LIMITS)),
    )

    parser.add_argument(
        "--structural",
        default=STRUCTURAL_TRANSFORM_PATH,
        help="Structural transformer as package.module:callable.",
    )

    parser.add_argument(
        "--textual",
        default=TEXTUAL_TRANSFORM_PATH,
        help="Textual fallback processor as package.module:callable.",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress progress and summary output.",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser


def _run(args: argparse.Namespace) -> None:
    """Run one bundling request and write its output."""
    report = (lambda msg: None) if args.quiet else _status

    try:
        processor = build_processor(
            structural_path=args.structural,
            textual_path=args.textual,
        )
        request = build_request(args.paths, args.style, args.mode)
    except (OSError, CodePackError) as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)

    result: Optional[ResultResponse] = None
    tokens_saved = 0

    with ProcessingWorker(processor=processor) as worker:
        for response in worker.run(request):
            if isinstance(response, ProgressResponse):
                payload = response.payload
                tokens_saved = payload.tokens_saved
                if payload.processed_files_count == 0:
                    report("Processing {} text file(s) ({} bytes)...".format(
                        payload.total_files_count, payload.total_bytes,
                    ))
                else:
                    report("  [{}/{}] {}".format(
                        payload.processed_files_count,
                        payload.total_files_count,
                        payload.current_file_name,
                    ))
            elif isinstance(response, ErrorResponse):
                print("Error: {}".format(response.error), file=sys.stderr)
                sys.exit(1)
            elif isinstance(response, ResultResponse):
                result = response

    if result is None:
        print("Error: processing ended without a result", file=sys.stderr)
        sys.exit(1)

    text = "\n".join(result.lines)
    if args.output:
        Path(args.output).write_text(text + "\n", encoding="utf-8")
        report("Saved: {}".format(args.output))
    else:
        sys.stdout.write(text + "\n")
        sys.stdout.flush()

    report("Done! {} token(s) saved, {}% smaller".format(tokens_saved, result.token_savings))

    if args.model:
        total_tokens = get_token_counter().count(text)
        try:
            budget = check_budget(total_tokens, args.model)
        except ValueError as e:
            print("Error: {}".format(e), file=sys.stderr)
            sys.exit(1)
        verdict = "fits" if budget.fits else "does NOT fit"
        report("{} tokens, {}% of {} ({} tokens); {}".format(
            budget.tokens, budget.percent_used, budget.model.name, budget.limit, verdict,
        ))


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging("DEBUG" if args.verbose else None)
    _run(args)


if __name__ == "__main__":
    main()
