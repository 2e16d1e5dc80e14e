"""Tests for the out-of-process build worker."""

from __future__ import annotations

import io
import subprocess
import sys
from pathlib import Path

import pytest

from dronehive.worker import BuildWorker, run_build_worker


class _FakeProcess:
    def __init__(self, output: str, returncode: int) -> None:
        self.stdout = io.StringIO(output)
        self._returncode = returncode
        self.waited = False

    def wait(self) -> int:
        self.waited = True
        return self._returncode


class _FakePopen:
    def __init__(self, output: str = "", returncode: int = 0) -> None:
        self.output = output
        self.returncode = returncode
        self.calls: list[tuple[list[str], dict[str, object]]] = []

    def __call__(self, command, **kwargs):  # type: ignore[no-untyped-def]
        self.calls.append((list(command), kwargs))
        self.process = _FakeProcess(self.output, self.returncode)
        return self.process


def test_command_runs_build_drone_for_host(tmp_path: Path) -> None:
    worker = BuildWorker("magit", tmp_path, python="/usr/bin/python3")

    assert worker.command == [
        "/usr/bin/python3",
        "-m",
        "dronehive.cli",
        "--host",
        str(tmp_path),
        "build-drone",
        "magit",
    ]


def test_default_interpreter_is_current_one(tmp_path: Path) -> None:
    assert BuildWorker("magit", tmp_path).command[0] == sys.executable


def test_run_streams_lines_and_returns_status(tmp_path: Path) -> None:
    popen = _FakePopen("--- [magit] ---\nmagit: 3 files, 1 directories\n", returncode=0)
    worker = BuildWorker("magit", tmp_path, popen=popen)
    lines: list[str] = []

    assert worker.run(lines.append) == 0

    assert lines == ["--- [magit] ---", "magit: 3 files, 1 directories"]
    [(command, kwargs)] = popen.calls
    assert command == worker.command
    assert kwargs["cwd"] == str(tmp_path)
    assert kwargs["stdout"] is subprocess.PIPE
    assert kwargs["stderr"] is subprocess.STDOUT


def test_failing_worker_reports_exit_status(tmp_path: Path) -> None:
    worker = BuildWorker("magit", tmp_path, popen=_FakePopen("boom\n", returncode=3))

    lines = list(worker.stream())

    assert lines == ["boom"]
    assert worker.returncode == 3


def test_missing_output_pipe_is_an_error(tmp_path: Path) -> None:
    class _NoPipe:
        stdout = None

    worker = BuildWorker("magit", tmp_path, popen=lambda command, **kwargs: _NoPipe())

    with pytest.raises(RuntimeError):
        list(worker.stream())


def test_run_build_worker_returns_exit_status(tmp_path: Path) -> None:
    lines: list[str] = []

    returncode = run_build_worker("magit", tmp_path, lines.append, popen=_FakePopen("done\n", returncode=2))

    assert returncode == 2
    assert lines == ["done"]


def test_worker_is_reaped_when_reading_stops_early(tmp_path: Path) -> None:
    popen = _FakePopen("first\nsecond\nthird\n", returncode=0)
    worker = BuildWorker("magit", tmp_path, popen=popen)

    lines = worker.stream()
    assert next(lines) == "first"
    lines.close()

    assert popen.process.waited
    assert popen.process.stdout.closed
    assert worker.returncode == 0
