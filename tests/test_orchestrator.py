"""Integration tests for CodeProcessor: transform, account, format, report.

WHY: The orchestrator is the one place every component meets. These
tests pin down the response stream a caller sees for whole requests:
progress events first, then exactly one terminal response.

HOW: Processors come from the make_processor fixture (stub transformers,
word-based token counter). Streams are collected with asyncio.run().

RULES:
- Each test asserts on responses, never on processor internals
- No tokenizer download; WordTokenCounter stands in for tiktoken
"""

import asyncio

import pytest

from codepack.core.errors import CollaboratorImportError, ProcessingError, ProtocolError
from codepack.core.ir import (
    ErrorResponse,
    FileRecord,
    ProcessingMode,
    ProcessingProgress,
    ProgressResponse,
    ReadyResponse,
    ResultResponse,
)
from codepack.core.orchestrator import (
    CodeProcessor,
    build_processor,
    collect_responses,
    compute_savings_percent,
)

from conftest import RecordingTransform


def _collect(processor, request):
    return asyncio.run(processor.collect(request))


def _progress(responses):
    return [r for r in responses if isinstance(r, ProgressResponse)]


# =========================================================================
# Worked scenarios
# =========================================================================


class TestScenarios:
    def test_single_file_remove_comments_hash_style(self, make_processor, make_request, sample_python_file):
        request = make_request(
            [sample_python_file],
            mode=ProcessingMode.REMOVE_COMMENTS,
            style="hash",
        )
        result = asyncio.run(make_processor().process(request))

        assert result.lines == ["# --- a.py ---", "x=1", ""]
        assert result.request_id == "req-1"

    def test_zero_text_files(self, make_processor, make_request):
        request = make_request([], mode=ProcessingMode.MINIFY)
        responses = _collect(make_processor(), request)

        assert len(responses) == 2
        start, result = responses
        assert isinstance(start, ProgressResponse)
        assert start.progress == 0
        assert start.payload == ProcessingProgress(
            current_file_name="Starting...",
            processed_files_count=0,
            total_files_count=0,
            processed_bytes=0,
            total_bytes=0,
            tokens_saved=0,
        )
        assert isinstance(result, ResultResponse)
        assert result.lines == []
        assert result.token_savings == 0

    def test_oversized_file_passes_through_untouched(self, make_processor, make_request):
        structural = RecordingTransform(result="reduced")
        textual = RecordingTransform(result="reduced")
        processor = make_processor(structural=structural, textual=textual, max_process_size=8)
        request = make_request([("big.js", "x" * 9)], mode=ProcessingMode.MINIFY, style="minimal")

        result = asyncio.run(processor.process(request))

        assert result.lines == ["--- src/big.js ---", "x" * 9]
        assert structural.calls == []
        assert textual.calls == []

    def test_structural_failure_for_signatures_falls_back_to_raw(self, make_processor, make_request):
        structural = RecordingTransform(error=RuntimeError("parse error"))
        textual = RecordingTransform(func=lambda content, ext, mode: content)
        content = "def f(x):\n    return x\n"
        request = make_request([("m.py", content)], mode=ProcessingMode.SIGNATURES_ONLY, style="minimal")

        responses = _collect(make_processor(structural=structural, textual=textual), request)

        assert isinstance(responses[-1], ResultResponse)
        assert responses[-1].lines == ["--- src/m.py ---"] + content.split("\n")
        assert textual.calls == [(content, "py", "raw")]


# =========================================================================
# Stream contract
# =========================================================================


class TestStreamContract:
    def test_progress_then_one_terminal(self, make_processor, make_request):
        request = make_request([("a.py", "a"), ("b.py", "b")])
        responses = _collect(make_processor(), request)

        assert all(isinstance(r, ProgressResponse) for r in responses[:-1])
        assert isinstance(responses[-1], ResultResponse)
        assert len(responses) >= 2

    def test_every_response_carries_request_id(self, make_processor, make_request):
        request = make_request([("a.py", "a")], request_id="abc")
        assert {r.id for r in _collect(make_processor(), request)} == {"abc"}

    def test_progress_counters_are_monotonic(self, make_processor, make_request):
        files = [("f{}.py".format(i), "x = {}\n# c\n".format(i)) for i in range(12)]
        request = make_request(files, mode=ProcessingMode.REMOVE_COMMENTS)
        events = _progress(_collect(make_processor(), request))

        counts = [e.payload.processed_files_count for e in events]
        sizes = [e.payload.processed_bytes for e in events]
        assert counts == sorted(counts)
        assert sizes == sorted(sizes)

    def test_final_progress_totals(self, make_processor, make_request):
        files = [("a.py", "one two\n# three"), ("b.py", "four\n")]
        request = make_request(files, mode=ProcessingMode.REMOVE_COMMENTS)
        last = _progress(_collect(make_processor(), request))[-1]

        assert last.payload.processed_files_count == 2
        assert last.payload.total_files_count == 2
        assert last.payload.processed_bytes == last.payload.total_bytes == len("one two\n# three") + len("four\n")
        assert last.payload.current_file_name == "b.py"
        assert last.progress == 100

    def test_large_batch_emits_on_stride(self, make_processor, make_request):
        files = [("f{}.txt".format(i), "x") for i in range(103)]
        events = _progress(_collect(make_processor(), make_request(files)))

        counts = [e.payload.processed_files_count for e in events]
        assert counts == [0] + list(range(5, 101, 5)) + [103]

    def test_small_batch_emits_per_file(self, make_processor, make_request):
        files = [("f{}.txt".format(i), "x") for i in range(4)]
        events = _progress(_collect(make_processor(), make_request(files)))
        assert [e.payload.processed_files_count for e in events] == [0, 1, 2, 3, 4]

    def test_textual_failure_yields_single_error(self, make_processor, make_request):
        structural = RecordingTransform(result=None)
        textual = RecordingTransform(error=RuntimeError("textual broke"))
        request = make_request([("a.py", "x")], mode=ProcessingMode.MINIFY)

        responses = _collect(make_processor(structural=structural, textual=textual), request)

        terminal = [r for r in responses if r.is_terminal]
        assert len(terminal) == 1
        assert responses[-1] is terminal[0]
        assert isinstance(terminal[0], ErrorResponse)
        assert terminal[0].error == "textual broke"

    def test_process_raises_processing_error(self, make_processor, make_request):
        textual = RecordingTransform(error=KeyError("k"))
        processor = make_processor(structural=RecordingTransform(result=None), textual=textual)
        request = make_request([("a.py", "x")], mode=ProcessingMode.REMOVE_COMMENTS)

        with pytest.raises(ProcessingError) as exc_info:
            asyncio.run(processor.process(request))
        assert exc_info.value.request_id == "req-1"


# =========================================================================
# Content and accounting
# =========================================================================


class TestAccounting:
    @pytest.mark.parametrize("style", ["standard", "hash", "xml", "markdown"])
    def test_raw_mode_is_identity(self, make_processor, make_request, style):
        content = "a = 1  # keep\n\n\nb = 2"
        request = make_request([("a.py", content)], style=style)
        result = asyncio.run(make_processor().process(request))

        assert "\n".join(result.lines).count(content) == 1
        assert result.token_savings == 0

    def test_non_text_records_are_skipped(self, make_processor, make_request):
        files = [("a.py", "a"), ("logo.png", "\x89PNG", False), ("b.py", "b")]
        responses = _collect(make_processor(), make_request(files, style="minimal"))

        assert responses[0].payload.total_files_count == 2
        assert responses[-1].lines == ["--- src/a.py ---", "a", "", "--- src/b.py ---", "b"]

    def test_output_order_matches_input_order(self, make_processor, make_request):
        files = [("z.py", "z"), ("a.py", "a"), ("m.py", "m")]
        result = asyncio.run(make_processor().process(make_request(files, style="minimal")))
        headers = [line for line in result.lines if line.startswith("---")]
        assert headers == ["--- src/z.py ---", "--- src/a.py ---", "--- src/m.py ---"]

    def test_tokens_saved_is_token_based(self, make_processor, make_request):
        # "# a b c" is four words dropped by the structural stub
        request = make_request([("a.py", "keep\n# a b c")], mode=ProcessingMode.REMOVE_COMMENTS)
        last = _progress(_collect(make_processor(), request))[-1]
        assert last.payload.tokens_saved == 4

    def test_token_savings_is_character_based(self, make_processor, make_request, sample_python_file):
        request = make_request([sample_python_file], mode=ProcessingMode.REMOVE_COMMENTS)
        result = asyncio.run(make_processor().process(request))
        # 14 chars -> 4 chars
        assert result.token_savings == 71

    def test_negative_token_delta_is_reported_signed(self, make_processor, make_request):
        structural = RecordingTransform(func=lambda content, ext, mode: content + " extra words")
        request = make_request([("a.py", "one")], mode=ProcessingMode.REMOVE_COMMENTS)
        responses = _collect(make_processor(structural=structural), request)

        assert _progress(responses)[-1].payload.tokens_saved == -2
        assert responses[-1].token_savings == 0

    def test_unknown_style_formats_as_standard(self, make_processor, make_request):
        result = asyncio.run(make_processor().process(make_request([("a.py", "x")], style="yaml")))
        assert result.lines == ["/* --- src/a.py --- */", "x"]

    def test_path_label_falls_back_to_name(self, make_processor, make_request):
        record = FileRecord(id="1", name="a.py", path="", content="x")
        result = asyncio.run(make_processor().process(make_request([record], style="hash")))
        assert result.lines[0] == "# --- a.py ---"

    def test_name_without_dot_is_its_own_extension(self, make_processor, make_request):
        result = asyncio.run(make_processor().process(make_request([("Makefile", "all:")], style="markdown")))
        assert result.lines[:2] == ["### src/Makefile", "```Makefile"]

    def test_extension_reaches_structural_transformer(self, make_processor, make_request):
        structural = RecordingTransform(result="FROM node")
        request = make_request([("Dockerfile", "FROM node")], mode=ProcessingMode.REMOVE_COMMENTS)
        asyncio.run(make_processor(structural=structural).process(request))
        assert structural.calls == [("FROM node", "Dockerfile", "remove-comments")]

    def test_trailing_dot_defaults_to_txt(self, make_processor, make_request):
        result = asyncio.run(make_processor().process(make_request([("notes.", "x")], style="markdown")))
        assert result.lines[:2] == ["### src/notes.", "```txt"]

    @pytest.mark.parametrize("name, extension", [
        ("Makefile", "Makefile"),
        ("a.", "txt"),
        ("", "txt"),
        ("archive.tar.gz", "gz"),
        (".bashrc", "bashrc"),
    ])
    def test_file_record_extension(self, name, extension):
        assert FileRecord(id="1", name=name, path="", content="x").extension == extension


class TestComputeSavingsPercent:
    def test_raw_is_zero(self):
        assert compute_savings_percent(ProcessingMode.RAW, 100, 10) == 0

    def test_empty_batch_is_zero(self):
        assert compute_savings_percent(ProcessingMode.MINIFY, 0, 0) == 0

    def test_growth_clamped_to_zero(self):
        assert compute_savings_percent(ProcessingMode.MINIFY, 10, 20) == 0

    def test_half_rounds_up(self):
        assert compute_savings_percent(ProcessingMode.MINIFY, 8, 7) == 13


# =========================================================================
# collect_responses
# =========================================================================


def _start(request_id="r"):
    return ProgressResponse(
        id=request_id,
        progress=0,
        payload=ProcessingProgress("Starting...", 0, 0, 0, 0, 0),
    )


class TestCollectResponses:
    def test_returns_result(self):
        result = collect_responses([_start(), ResultResponse(id="r", lines=["a"], token_savings=5)])
        assert result.lines == ["a"]
        assert result.token_savings == 5
        assert result.text == "a"

    def test_error_raises_processing_error(self):
        with pytest.raises(ProcessingError, match="boom"):
            collect_responses([_start(), ErrorResponse(id="r", error="boom")])

    def test_missing_terminal(self):
        with pytest.raises(ProtocolError, match="without a terminal"):
            collect_responses([_start()])

    def test_response_after_terminal(self):
        with pytest.raises(ProtocolError, match="after terminal"):
            collect_responses([
                ResultResponse(id="r", lines=[], token_savings=0),
                _start(),
            ])

    def test_ready_inside_stream_is_rejected(self):
        with pytest.raises(ProtocolError, match="Unexpected"):
            collect_responses([ReadyResponse(id="w"), ResultResponse(id="r", lines=[], token_savings=0)])


# =========================================================================
# Wiring
# =========================================================================


class TestBuildProcessor:
    def test_default_collaborators_leave_content_unchanged(self, word_counter, make_request):
        processor = build_processor()
        processor._token_counter = word_counter
        request = make_request([("a.py", "x  # c")], mode=ProcessingMode.REMOVE_COMMENTS, style="minimal")

        assert asyncio.run(processor.process(request)).lines == ["--- src/a.py ---", "x  # c"]

    def test_dotted_paths_are_resolved(self):
        processor = build_processor(structural_path="conftest:strip_hash_comments", max_process_size=64)
        assert processor.pipeline.max_process_size == 64

    def test_bad_path_raises(self):
        with pytest.raises(CollaboratorImportError):
            build_processor(textual_path="codepack.missing_module:fn")

    def test_token_counter_is_lazy(self, monkeypatch, word_counter):
        monkeypatch.setattr("codepack.core.orchestrator.get_token_counter", lambda: word_counter)
        processor = CodeProcessor()
        assert processor.token_counter is word_counter
