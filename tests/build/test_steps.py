"""Tests for configured build steps."""

from __future__ import annotations

from pathlib import Path

import pytest

from dronehive.build.steps import ExpressionStep, ShellStep, StepRunner, classify, wrap_command
from dronehive.errors import BuildStepFailed


def test_classify_distinguishes_expressions() -> None:
    assert classify("make all") == ShellStep("make all")
    assert classify("  (print('hi'))") == ExpressionStep("(print('hi'))")


@pytest.mark.parametrize(
    ("template", "expected"),
    [
        (None, "make all"),
        ("nix-shell --run %S", "nix-shell --run 'make all'"),
        ("env FOO=1 %s", "env FOO=1 make all"),
        ("chronic", "chronic make all"),
    ],
)
def test_wrap_command(template: str | None, expected: str) -> None:
    assert wrap_command("make all", template) == expected


def test_shell_steps_run_wrapped_in_worktree(tmp_path: Path) -> None:
    calls: list[tuple[str, Path]] = []
    output: list[str] = []

    def runner(command, *, cwd):  # type: ignore[no-untyped-def]
        calls.append((command, cwd))
        return 0, "line one\nline two\n"

    steps = StepRunner(wrapper="chronic", runner=runner, output=output.append).run_all(
        ["make", "make install"], cwd=tmp_path
    )

    assert calls == [("chronic make", tmp_path), ("chronic make install", tmp_path)]
    assert output == ["line one", "line two", "line one", "line two"]
    assert steps == [ShellStep("make"), ShellStep("make install")]


def test_failing_shell_step_stops_the_build(tmp_path: Path) -> None:
    calls: list[str] = []

    def runner(command, *, cwd):  # type: ignore[no-untyped-def]
        calls.append(command)
        return 2, "make: *** No rule to make target\n"

    with pytest.raises(BuildStepFailed, match="exited with status 2"):
        StepRunner(runner=runner, output=lambda line: None).run_all(
            ["make", "make install"], cwd=tmp_path
        )

    assert calls == ["make"]


def test_expression_steps_see_the_namespace(tmp_path: Path) -> None:
    seen: list[object] = []

    StepRunner().run_all(["(seen.append(worktree))"], cwd=tmp_path, namespace={"seen": seen, "worktree": tmp_path})

    assert seen == [tmp_path]


def test_failing_expression_is_wrapped(tmp_path: Path) -> None:
    with pytest.raises(BuildStepFailed, match="ZeroDivisionError|division by zero"):
        StepRunner().run_all(["(1 / 0)"], cwd=tmp_path)
