# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import os
from typing import List
from unittest.mock import patch

import pytest
from rich.console import Console

from wflow_core.cli import workflow as cli
from wflow_core.cli.errors import detect_error_pattern


def _run(argv: List[str]) -> int:
    # Wide console so long tmp paths do not wrap assertions across lines
    with patch.object(cli, "configure_logging"), patch.object(cli, "console", Console(width=500)):
        return cli.main(argv)


@pytest.fixture
def workflows_dir(tmp_path, ci_text):
    wf_dir = tmp_path / ".github" / "workflows"
    wf_dir.mkdir(parents=True)
    (wf_dir / "ci.yml").write_text(ci_text)
    return wf_dir


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


class TestValidate:
    def test_valid_directory(self, workflows_dir, capsys):
        assert _run(["validate", str(workflows_dir)]) == 0
        assert "All workflows valid." in capsys.readouterr().out

    def test_default_directory(self, workflows_dir, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert _run(["validate"]) == 0

    def test_errors_give_exit_code_1(self, tmp_path, capsys):
        path = tmp_path / "bad.yml"
        path.write_text("on: push\njobs:\n  a:\n    runs-on: x\n    needs: ghost\n    steps: [{run: x}]\n")
        assert _run(["validate", str(path)]) == 1
        out = capsys.readouterr().out
        assert "ghost" in out
        assert "1 error" in out

    def test_syntax_error_is_reported(self, tmp_path, capsys):
        path = tmp_path / "broken.yml"
        path.write_text("jobs: [oops\n")
        assert _run(["validate", "-q", str(path)]) == 1
        assert "YAML parse error" in capsys.readouterr().out

    def test_warnings_only(self, tmp_path):
        path = tmp_path / "warn.yml"
        path.write_text("on: push\njobs:\n  a:\n    runs-on: x\n")
        assert _run(["validate", str(path)]) == 0
        assert _run(["validate", "-W", str(path)]) == 1

    def test_table_format(self, tmp_path, capsys):
        path = tmp_path / "warn.yml"
        path.write_text("on: push\njobs:\n  a:\n    runs-on: x\n")
        assert _run(["validate", "--format", "table", str(path)]) == 0
        assert "Validation Results" in capsys.readouterr().out

    def test_missing_path(self, tmp_path):
        assert _run(["validate", str(tmp_path / "nothing")]) == 1

    def test_empty_directory(self, tmp_path):
        assert _run(["validate", str(tmp_path)]) == 1


# ---------------------------------------------------------------------------
# fmt
# ---------------------------------------------------------------------------


class TestFmt:
    def test_prints_canonical_text(self, tmp_path, capsys):
        path = tmp_path / "ci.yml"
        path.write_text("jobs:\n  a:\n    steps:\n    - run: x\n    runs-on: y\non: push\n")
        assert _run(["fmt", str(path)]) == 0
        assert capsys.readouterr().out == (
            "on: push\njobs:\n  a:\n    runs-on: y\n    steps:\n      - run: x\n"
        )

    def test_check_canonical_file(self, workflows_dir):
        assert _run(["fmt", "--check", str(workflows_dir / "ci.yml")]) == 0

    def test_check_non_canonical_file(self, tmp_path):
        path = tmp_path / "ci.yml"
        path.write_text("jobs: {}\non: push\n")
        assert _run(["fmt", "--check", str(path)]) == 1

    def test_write(self, tmp_path):
        path = tmp_path / "ci.yml"
        path.write_text("jobs: {}\non: push\n")
        assert _run(["fmt", "--write", str(path)]) == 0
        assert path.read_text() == "on: push\njobs: {}\n"

    def test_refuses_to_drop_malformed_jobs(self, tmp_path):
        path = tmp_path / "ci.yml"
        original = "on: push\njobs:\n  a: 1\n"
        path.write_text(original)
        assert _run(["fmt", "--write", str(path)]) == 1
        assert path.read_text() == original

    def test_check_and_write_are_exclusive(self, tmp_path):
        with pytest.raises(SystemExit):
            _run(["fmt", "--check", "--write", str(tmp_path / "ci.yml")])


# ---------------------------------------------------------------------------
# graph
# ---------------------------------------------------------------------------


class TestGraph:
    def test_graph_tables(self, workflows_dir, capsys):
        assert _run(["graph", str(workflows_dir / "ci.yml")]) == 0
        out = capsys.readouterr().out
        assert "Nodes" in out
        assert "Edges" in out
        assert "deploy" in out

    def test_graph_missing_file(self, tmp_path):
        assert _run(["graph", str(tmp_path / "missing.yml")]) == 1


# ---------------------------------------------------------------------------
# startup
# ---------------------------------------------------------------------------


def test_bad_config_fails_before_running(workflows_dir):
    with patch.dict(os.environ, {"WFLOW_LOG_LEVEL": "LOUD"}):
        assert _run(["validate", str(workflows_dir)]) == 2


@pytest.mark.parametrize(
    "output, expected",
    [
        ("[Errno 2] No such file or directory: 'x.yml'", "File not found"),
        ("[Errno 13] Permission denied: 'x.yml'", "Permission denied"),
        ("[Errno 21] Is a directory: 'x'", "Expected a file but got a directory"),
        ("'utf-8' codec can't decode byte 0xe9", "File is not valid UTF-8 text"),
    ],
)
def test_detect_error_pattern(output, expected):
    message, _action = detect_error_pattern(output)
    assert message == expected


def test_detect_error_pattern_unknown():
    assert detect_error_pattern("something odd") is None
