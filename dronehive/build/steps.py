"""Per-drone build steps: shell commands or embedded Python expressions."""

from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..errors import BuildStepFailed
from ..logging import get_logger

EXPRESSION_MARKER = "("

ShellRunner = Callable[..., Tuple[int, str]]


@dataclass(frozen=True)
class ShellStep:
    """A command line run through the shell inside the drone's worktree."""

    command: str


@dataclass(frozen=True)
class ExpressionStep:
    """A Python expression evaluated in-process."""

    code: str


BuildStep = Union[ShellStep, ExpressionStep]


def classify(text: str) -> BuildStep:
    """Turn a configured ``build-step`` value into a tagged step."""
    stripped = text.strip()
    if stripped.startswith(EXPRESSION_MARKER):
        return ExpressionStep(stripped)
    return ShellStep(text)


def wrap_command(command: str, template: Optional[str]) -> str:
    """Apply the ``build_shell_command`` wrapper template to ``command``.

    ``%s`` receives the command verbatim, ``%S`` receives it shell-quoted and
    a template without either placeholder gets the command appended.
    """
    if not template:
        return command
    if "%s" in template:
        return template.replace("%s", command)
    if "%S" in template:
        return template.replace("%S", shlex.quote(command))
    return f"{template} {command}"


class StepRunner:
    """Executes a drone's build steps in order, stopping at the first failure."""

    def __init__(
        self,
        *,
        wrapper: Optional[str] = None,
        runner: ShellRunner | None = None,
        output: Callable[[str], None] | None = None,
    ) -> None:
        self.wrapper = wrapper
        self._runner = runner or self._default_runner
        self.logger = get_logger("build.steps")
        self._output = output or self.logger.info

    def run_all(
        self,
        steps: Iterable[str],
        *,
        cwd: Path,
        namespace: Mapping[str, Any] | None = None,
    ) -> List[BuildStep]:
        executed: List[BuildStep] = []
        for text in steps:
            step = classify(text)
            self.logger.info("  Running `%s'...", text)
            if isinstance(step, ExpressionStep):
                self._evaluate(step, namespace or {})
            else:
                self._shell(step, cwd)
            self.logger.info("  Running `%s'...done", text)
            executed.append(step)
        return executed

    def _evaluate(self, step: ExpressionStep, namespace: Mapping[str, Any]) -> Any:
        scope: Dict[str, Any] = dict(namespace)
        try:
            return eval(step.code, scope)  # noqa: S307 - configured by the host's owner
        except Exception as exc:
            raise BuildStepFailed(f"Expression `{step.code}' failed: {exc}") from exc

    def _shell(self, step: ShellStep, cwd: Path) -> None:
        command = wrap_command(step.command, self.wrapper)
        returncode, output = self._runner(command, cwd=cwd)
        for line in output.splitlines():
            self._output(line)
        if returncode != 0:
            raise BuildStepFailed(
                f"`{command}' exited with status {returncode} in {cwd}"
            )

    @staticmethod
    def _default_runner(command: str, *, cwd: Path) -> Tuple[int, str]:
        completed = subprocess.run(
            command,
            shell=True,
            cwd=str(cwd),
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
        return completed.returncode, completed.stdout or ""


__all__ = [
    "BuildStep",
    "ExpressionStep",
    "ShellStep",
    "StepRunner",
    "classify",
    "wrap_command",
]
