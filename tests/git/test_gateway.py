"""Tests for the git gateway."""

from __future__ import annotations

from pathlib import Path

import pytest

from dronehive.errors import VcsCommandFailed
from dronehive.git.gateway import Git, parse_version


def _git(tmp_path: Path, result: tuple[int, str], calls: list | None = None) -> Git:
    def runner(args, cwd):  # type: ignore[no-untyped-def]
        if calls is not None:
            calls.append((list(args), Path(cwd)))
        return result

    return Git(tmp_path, runner=runner)


def test_run_returns_lines_and_exit_status(tmp_path: Path) -> None:
    calls: list = []
    git = _git(tmp_path, (0, "one\ntwo\n"), calls)

    result = git.run("status", "--short")

    assert result.ok
    assert result.lines == ["one", "two"]
    assert calls[0] == (["git", "status", "--short"], tmp_path)


def test_run_or_fail_carries_context_args_and_output(tmp_path: Path) -> None:
    git = _git(tmp_path, (128, "fatal: not a git repository\n"))

    with pytest.raises(VcsCommandFailed) as excinfo:
        git.run_or_fail("foo", "submodule", "add", "url")

    error = excinfo.value
    assert error.context == "foo"
    assert error.args_list == ["submodule", "add", "url"]
    assert "fatal: not a git repository" in error.output
    assert "foo: submodule add url" in str(error)


def test_try_get_treats_exit_one_as_absent(tmp_path: Path) -> None:
    git = _git(tmp_path, (1, ""))

    assert git.try_get("config", "--get", "missing.key") is None
    assert git.try_get_all("config", "--get-all", "missing.key") is None


def test_try_get_returns_last_value(tmp_path: Path) -> None:
    git = _git(tmp_path, (0, "a\nb\n"))

    assert git.try_get("config", "--get", "some.key") == "b"


def test_try_get_raises_on_other_failures(tmp_path: Path) -> None:
    git = _git(tmp_path, (2, "error: more than one value\n"))

    with pytest.raises(VcsCommandFailed):
        git.try_get("config", "--get", "some.key")


def test_run_uses_explicit_cwd(tmp_path: Path) -> None:
    calls: list = []
    git = _git(tmp_path, (0, ""), calls)
    other = tmp_path / "other"

    git.run("diff", "--quiet", cwd=other)

    assert calls[0][1] == other


def test_version_is_parsed_from_git_output(tmp_path: Path) -> None:
    git = _git(tmp_path, (0, "git version 2.11.4.windows.1\n"))

    assert git.version() == (2, 11, 4)


def test_parse_version_handles_unexpected_output() -> None:
    assert parse_version("git version 2.45.0") == (2, 45, 0)
    assert parse_version("no version here") == ()
