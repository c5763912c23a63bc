"""Shared test fixtures for the codepack test suite.

WHY: Most test modules need the same deterministic collaborators: a
token counter that needs no tokenizer download, stub structural and
textual transformers with known behavior, and a processor wired with
them. Centralizing them here keeps every module on the same contract.

HOW: Pytest fixtures return counter instances, stub callables, and a
factory that builds CodeProcessor instances from stubs.

RULES:
- No test downloads the tiktoken encoding; WordTokenCounter stands in
- Stub transformers are pure and deterministic
- The structural stub drops lines starting with "#" (comment removal)
- The textual stub's minify drops blank lines; other modes are identity
"""

from typing import Callable, List, Optional, Tuple

import pytest

from codepack.core.ir import FileRecord, ProcessingMode, ProcessingRequest
from codepack.core.orchestrator import CodeProcessor
from codepack.core.pipeline import TransformPipeline
from codepack.core.tokens import TokenCounter


class WordTokenCounter(TokenCounter):
    """One token per whitespace-separated word."""

    def count(self, text: str) -> int:
        return len(text.split())


class RecordingTransform:
    """Callable stub that records its calls and returns or raises on demand."""

    def __init__(self, result=None, error: Optional[Exception] = None, func: Optional[Callable] = None):
        self.result = result
        self.error = error
        self.func = func
        self.calls: List[Tuple[str, str, str]] = []

    def __call__(self, content: str, extension: str, mode: str):
        self.calls.append((content, extension, mode))
        if self.error is not None:
            raise self.error
        if self.func is not None:
            return self.func(content, extension, mode)
        return self.result


def strip_hash_comments(content: str, extension: str, mode: str) -> str:
    return "\n".join(line for line in content.split("\n") if not line.lstrip().startswith("#"))


def textual_stub(content: str, extension: str, mode: str) -> str:
    if mode == ProcessingMode.MINIFY.value:
        return "\n".join(line for line in content.split("\n") if line.strip())
    return content


@pytest.fixture
def word_counter():
    return WordTokenCounter()


@pytest.fixture
def recording_transform():
    """Factory for RecordingTransform stubs."""
    return RecordingTransform


@pytest.fixture
def make_processor(word_counter):
    """Factory: CodeProcessor wired with the given (or stub) collaborators."""

    def _make(structural=None, textual=None, max_process_size=None) -> CodeProcessor:
        kwargs = {}
        if max_process_size is not None:
            kwargs["max_process_size"] = max_process_size
        pipeline = TransformPipeline(
            structural=structural or strip_hash_comments,
            textual=textual or textual_stub,
            **kwargs
        )
        return CodeProcessor(pipeline=pipeline, token_counter=word_counter)

    return _make


@pytest.fixture
def make_request():
    """Factory: ProcessingRequest from (name, content) pairs."""

    def _make(files, mode=ProcessingMode.RAW, style="standard", request_id="req-1") -> ProcessingRequest:
        records = []
        for index, item in enumerate(files):
            if isinstance(item, FileRecord):
                records.append(item)
                continue
            name, content = item[0], item[1]
            is_text = item[2] if len(item) > 2 else True
            records.append(FileRecord(
                id=str(index),
                name=name,
                path="src/{}".format(name),
                content=content,
                is_text=is_text,
            ))
        return ProcessingRequest(id=request_id, files=tuple(records), output_style=style, mode=mode)

    return _make


@pytest.fixture
def sample_python_file():
    return FileRecord(
        id="a",
        name="a.py",
        path="a.py",
        content="x=1\n# comment\n",
        is_text=True,
    )
