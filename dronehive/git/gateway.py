"""Synchronous wrapper around the git executable."""

from __future__ import annotations

import os
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from ..errors import VcsCommandFailed
from ..logging import get_logger

Runner = Callable[..., Tuple[int, str]]

_VERSION_RE = re.compile(r"(\d+(?:\.\d+)*)")


@dataclass(frozen=True)
class GitResult:
    """Captured output of one git invocation."""

    lines: List[str]
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class Git:
    """Runs git commands and reports their combined output.

    All calls block until git exits. Nothing is retried: a non-zero exit is
    surfaced by ``run_or_fail`` and ``try_get`` except where exit status 1 is
    the documented "value absent" signal of ``git config --get``.
    """

    def __init__(
        self,
        cwd: Path | str | None = None,
        *,
        executable: str = "git",
        runner: Runner | None = None,
    ) -> None:
        self.cwd = Path(cwd) if cwd is not None else Path.cwd()
        self.executable = executable
        self._runner = runner or self._default_runner
        self.logger = get_logger("git")

    def run(self, *args: str, cwd: Path | str | None = None) -> GitResult:
        """Run git with ``args`` and return its output lines and exit status."""
        command = [self.executable, *args]
        directory = Path(cwd) if cwd is not None else self.cwd
        self.logger.debug("Running %s in %s", " ".join(command), directory)
        returncode, output = self._runner(command, cwd=directory)
        return GitResult(lines=output.splitlines(), returncode=returncode)

    def run_or_fail(
        self, context: str | None, *args: str, cwd: Path | str | None = None
    ) -> List[str]:
        """Run git and raise ``VcsCommandFailed`` unless it exits successfully."""
        result = self.run(*args, cwd=cwd)
        if not result.ok:
            raise VcsCommandFailed(context, args, "\n".join(result.lines))
        return result.lines

    def succeeds(self, *args: str, cwd: Path | str | None = None) -> bool:
        """Return True when git exits with status 0."""
        return self.run(*args, cwd=cwd).ok

    def try_get(self, *args: str, cwd: Path | str | None = None) -> Optional[str]:
        """Run a lookup that exits with status 1 when the value is absent."""
        lines = self.try_get_all(*args, cwd=cwd)
        if lines is None:
            return None
        return lines[-1] if lines else ""

    def try_get_all(self, *args: str, cwd: Path | str | None = None) -> Optional[List[str]]:
        result = self.run(*args, cwd=cwd)
        if result.returncode == 1:
            return None
        if not result.ok:
            raise VcsCommandFailed(None, args, "\n".join(result.lines))
        return result.lines

    def version(self) -> Tuple[int, ...]:
        """Return git's version as a tuple of integers, e.g. ``(2, 39, 2)``."""
        lines = self.run_or_fail(None, "version")
        return parse_version(lines[0] if lines else "")

    @staticmethod
    def _default_runner(args: Iterable[str], *, cwd: Path) -> Tuple[int, str]:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
        )
        return completed.returncode, completed.stdout or ""


def parse_version(text: str) -> Tuple[int, ...]:
    """Extract the leading dotted version from ``git version`` output."""
    for token in text.split():
        match = _VERSION_RE.match(token)
        if match:
            return tuple(int(part) for part in match.group(1).split("."))
    return ()


__all__ = ["Git", "GitResult", "Runner", "parse_version"]
