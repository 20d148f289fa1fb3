"""Unit tests for ProcessRunner using the running Python interpreter as the external tool."""

import io
import sys

import pytest

from texstage.utils.process import ExecutionMode, ProcessRunner

PYTHON = sys.executable


@pytest.mark.unit
def test_command_exists():
    runner = ProcessRunner()
    assert runner.command_exists(PYTHON)
    assert not runner.command_exists("texstage-no-such-binary")


@pytest.mark.unit
@pytest.mark.parametrize("mode", [ExecutionMode.FULLY_SILENT, ExecutionMode.SILENT])
def test_captures_stdout_and_stderr(mode):
    result = ProcessRunner().run(
        PYTHON,
        ["-c", "import sys; print('out'); print('err', file=sys.stderr)"],
        mode=mode,
    )
    assert result.success
    assert result.stdout.strip() == "out"
    assert result.stderr.strip() == "err"
    assert result.args[0] == PYTHON


@pytest.mark.unit
def test_reports_failure():
    result = ProcessRunner().run(PYTHON, ["-c", "raise SystemExit(3)"])
    assert not result.success
    assert result.returncode == 3


@pytest.mark.unit
def test_runs_in_cwd(tmp_path):
    result = ProcessRunner().run(PYTHON, ["-c", "import os; print(os.getcwd())"], cwd=tmp_path)
    assert result.stdout.strip() == str(tmp_path)


@pytest.mark.unit
def test_stream_mode_echoes_and_captures():
    stream = io.StringIO()
    runner = ProcessRunner(stream=stream)

    result = runner.run(
        PYTHON,
        ["-c", "import sys; print('line 1'); print('line 2', file=sys.stderr)"],
        mode=ExecutionMode.STREAM,
    )

    assert result.success
    assert "line 1" in stream.getvalue()
    assert "line 2" in stream.getvalue()
    assert result.stdout == stream.getvalue()
    assert result.stderr == ""


@pytest.mark.unit
def test_missing_binary_raises():
    with pytest.raises(FileNotFoundError):
        ProcessRunner().run("texstage-no-such-binary", [])
