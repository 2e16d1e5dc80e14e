"""Tests for info manual generation."""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

from dronehive.build.manual import ManualBuilder
from tests._fixtures.hive_builder import HiveBuilder


class _ToolRunner:
    def __init__(self, failing: str | None = None) -> None:
        self.calls: List[Tuple[List[str], Path]] = []
        self.failing = failing

    def __call__(self, args, *, cwd):  # type: ignore[no-untyped-def]
        self.calls.append((list(args), Path(cwd)))
        if args[0] == self.failing:
            return 1, f"{args[0]}: something went wrong\n"
        if args[0] == "makeinfo":
            (Path(cwd) / args[-1]).write_text("info\n", encoding="utf-8")
        return 0, ""


def _commands(runner: _ToolRunner) -> List[List[str]]:
    return [args for args, _ in runner.calls]


def test_texinfo_sources_are_converted_and_installed(hive: HiveBuilder) -> None:
    hive.add_drone("foo", {"doc/foo.texi": "\\input texinfo\n"})
    registry = hive.registry()
    runner = _ToolRunner()
    doc = hive.root / "lib" / "foo" / "doc"

    outcome = ManualBuilder(registry.git, runner=runner).build(
        registry.drone("foo"), registry.resolve_info_path("foo", for_sources=True)
    )

    assert _commands(runner) == [
        ["makeinfo", "--no-split", "foo.texi", "-o", "foo.info"],
        ["install-info", "foo.info", "--dir=dir"],
    ]
    assert all(cwd == doc for _, cwd in runner.calls)
    assert outcome.built == [doc / "foo.texi"]
    assert outcome.installed == [doc / "foo.info"]
    assert outcome.failed == []


def test_committed_info_files_are_not_regenerated(hive: HiveBuilder) -> None:
    hive.add_drone("foo", {"foo.texi": "\\input texinfo\n", "foo.info": "committed\n"})
    hive.git.tracked.add("foo.info")
    registry = hive.registry()
    runner = _ToolRunner()

    ManualBuilder(registry.git, runner=runner).build(
        registry.drone("foo"), registry.resolve_info_path("foo", for_sources=True)
    )

    assert _commands(runner) == [["install-info", "foo.info", "--dir=dir"]]


def test_untracked_info_files_are_regenerated(hive: HiveBuilder) -> None:
    hive.add_drone("foo", {"foo.texi": "\\input texinfo\n", "foo.info": "stale\n"})
    registry = hive.registry()
    runner = _ToolRunner()

    ManualBuilder(registry.git, runner=runner).build(
        registry.drone("foo"), registry.resolve_info_path("foo", for_sources=True)
    )

    assert _commands(runner)[0][0] == "makeinfo"


def test_no_makeinfo_entries_are_skipped(hive: HiveBuilder) -> None:
    hive.add_drone(
        "foo",
        {"foo.texi": "\\input texinfo\n", "internals.texi": "\\input texinfo\n"},
        no_makeinfo="internals.texi",
    )
    registry = hive.registry()
    runner = _ToolRunner()

    ManualBuilder(registry.git, runner=runner).build(
        registry.drone("foo"), registry.resolve_info_path("foo", for_sources=True)
    )

    assert ["makeinfo", "--no-split", "internals.texi", "-o", "internals.info"] not in _commands(runner)
    assert ["makeinfo", "--no-split", "foo.texi", "-o", "foo.info"] in _commands(runner)


def test_tool_failures_are_recorded_and_do_not_stop(hive: HiveBuilder) -> None:
    hive.add_drone(
        "foo",
        {"a.texi": "\\input texinfo\n", "b.texi": "\\input texinfo\n", "c.info": "info\n"},
    )
    registry = hive.registry()
    runner = _ToolRunner(failing="makeinfo")
    worktree = hive.root / "lib" / "foo"

    outcome = ManualBuilder(registry.git, runner=runner).build(
        registry.drone("foo"), registry.resolve_info_path("foo", for_sources=True)
    )

    assert outcome.failed == [worktree / "a.texi", worktree / "b.texi"]
    assert outcome.installed == [worktree / "c.info"]


def test_missing_tool_counts_as_failure(hive: HiveBuilder) -> None:
    hive.add_drone("foo", {"foo.texi": "\\input texinfo\n"})
    registry = hive.registry()

    def runner(args, *, cwd):  # type: ignore[no-untyped-def]
        raise FileNotFoundError(args[0])

    outcome = ManualBuilder(registry.git, runner=runner).build(
        registry.drone("foo"), registry.resolve_info_path("foo", for_sources=True)
    )

    assert outcome.failed == [hive.root / "lib" / "foo" / "foo.texi"]
