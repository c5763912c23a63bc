"""Tests for the command-line interface.

WHY: The CLI is the most common entry point. These tests check argument
parsing, file reading, output destinations, and exit codes.

HOW: main() is called with an explicit argv. build_processor is patched
to return the stub-wired processor and get_token_counter to return the
word counter, so no tokenizer download happens. Files live in tmp_path;
the working directory is switched there so path labels are relative.

RULES:
- stdout carries only the bundle; status goes to stderr
- Failures exit with status 1
"""

from __future__ import annotations

import pytest

from codepack import cli
from codepack.core.ir import ProcessingMode


@pytest.fixture
def project(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    src = tmp_path / "src"
    src.mkdir()
    (src / "b.py").write_text("y = 2\n# note\n", encoding="utf-8")
    (src / "a.py").write_text("x = 1\n", encoding="utf-8")
    (src / "logo.png").write_bytes(b"\x89PNG\x00\x01")
    return tmp_path


@pytest.fixture
def stub_processor(monkeypatch, make_processor, word_counter):
    calls = {}

    def fake_build(structural_path="", textual_path="", max_process_size=None):
        calls["structural"] = structural_path
        calls["textual"] = textual_path
        return make_processor()

    monkeypatch.setattr(cli, "build_processor", fake_build)
    monkeypatch.setattr(cli, "get_token_counter", lambda: word_counter)
    return calls


class TestReadFileRecord:
    def test_text_file(self, project):
        record = cli.read_file_record(project / "src" / "a.py", "7")
        assert record.id == "7"
        assert record.name == "a.py"
        assert record.path == "src/a.py"
        assert record.content == "x = 1\n"
        assert record.is_text

    def test_binary_file(self, project):
        record = cli.read_file_record(project / "src" / "logo.png", "0")
        assert not record.is_text
        assert record.content == ""

    def test_invalid_utf8_is_not_text(self, project):
        path = project / "latin1.txt"
        path.write_bytes("caf\xe9".encode("latin-1"))
        assert not cli.read_file_record(path, "0").is_text


class TestBuildRequest:
    def test_directory_walk_is_sorted(self, project):
        request = cli.build_request(["src"], "hash", "minify")
        assert [f.name for f in request.files] == ["a.py", "b.py", "logo.png"]
        assert request.mode == ProcessingMode.MINIFY
        assert request.output_style == "hash"

    def test_argument_order_is_kept(self, project):
        request = cli.build_request(["src/b.py", "src/a.py"], "standard", "raw")
        assert [f.name for f in request.files] == ["b.py", "a.py"]

    def test_missing_path_raises(self, project):
        with pytest.raises(FileNotFoundError):
            cli.build_request(["nope.py"], "standard", "raw")


class TestParser:
    def test_defaults(self):
        args = cli.build_parser().parse_args(["x.py"])
        assert args.paths == ["x.py"]
        assert args.output is None
        assert args.model is None
        assert not args.quiet

    def test_invalid_mode_exits(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["x.py", "--mode", "shrink"])


class TestMain:
    def test_bundle_to_stdout(self, project, stub_processor, capsys):
        cli.main(["src", "--style", "hash", "--mode", "remove-comments"])

        out, err = capsys.readouterr()
        assert out == "# --- src/a.py ---\nx = 1\n\n\n# --- src/b.py ---\ny = 2\n\n"
        assert "Processing 2 text file(s)" in err
        assert "Done!" in err

    def test_output_file(self, project, stub_processor, capsys):
        cli.main(["src/a.py", "--style", "minimal", "-o", "bundle.txt"])

        out, err = capsys.readouterr()
        assert out == ""
        assert (project / "bundle.txt").read_text(encoding="utf-8") == "--- src/a.py ---\nx = 1\n\n"
        assert "Saved: bundle.txt" in err

    def test_quiet_suppresses_status(self, project, stub_processor, capsys):
        cli.main(["src/a.py", "-q"])
        assert capsys.readouterr().err == ""

    def test_collaborator_paths_are_forwarded(self, project, stub_processor):
        cli.main(["src/a.py", "-q", "--structural", "pkg.mod:strip", "--textual", "pkg.mod:clean"])
        assert stub_processor == {"structural": "pkg.mod:strip", "textual": "pkg.mod:clean"}

    def test_model_budget_report(self, project, stub_processor, capsys):
        cli.main(["src/a.py", "--model", "gpt-4o"])
        err = capsys.readouterr().err
        assert "GPT-4o" in err
        assert "fits" in err

    def test_unknown_model_exits(self, project, stub_processor, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["src/a.py", "--model", "nope"])
        assert exc_info.value.code == 1
        assert "Unknown model" in capsys.readouterr().err

    def test_missing_path_exits(self, project, stub_processor, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["missing.py"])
        assert exc_info.value.code == 1
        assert "No such file" in capsys.readouterr().err

    def test_error_response_exits(self, project, monkeypatch, make_processor, recording_transform, capsys):
        processor = make_processor(
            structural=recording_transform(result=None),
            textual=recording_transform(error=RuntimeError("textual failed")),
        )
        monkeypatch.setattr(cli, "build_processor", lambda **kwargs: processor)

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["src/a.py", "--mode", "minify"])
        assert exc_info.value.code == 1
        assert "textual failed" in capsys.readouterr().err
