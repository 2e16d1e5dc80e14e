"""Conversion of texinfo manuals into browsable info indexes."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Sequence, Tuple

from ..config import Executables
from ..git.gateway import Git
from ..logging import get_logger
from ..models import Drone

ToolRunner = Callable[..., Tuple[int, str]]

_TEXINFO_PATTERNS = ("*.texi", "*.texinfo")


@dataclass
class ManualOutcome:
    """Info files regenerated or folded into ``dir`` during one build."""

    built: List[Path] = field(default_factory=list)
    installed: List[Path] = field(default_factory=list)
    failed: List[Path] = field(default_factory=list)


class ManualBuilder:
    """Runs ``makeinfo`` and ``install-info`` over a drone's documentation."""

    def __init__(
        self,
        git: Git,
        *,
        executables: Executables | None = None,
        runner: ToolRunner | None = None,
    ) -> None:
        self.git = git
        self.executables = executables or Executables()
        self._runner = runner or self._default_runner
        self.logger = get_logger("build.manual")

    def build(self, drone: Drone, directories: Sequence[Path]) -> ManualOutcome:
        outcome = ManualOutcome()
        exclude = set(drone.get_all("no_makeinfo"))
        for directory in directories:
            for texi in _texinfo_sources(directory):
                if texi.name in exclude or _relative(texi, drone.worktree) in exclude:
                    continue
                info = texi.with_suffix(".info")
                if info.exists() and self._is_committed(info):
                    continue
                self._run(
                    [self.executables.makeinfo, "--no-split", texi.name, "-o", info.name],
                    directory,
                    texi,
                    outcome,
                    outcome.built,
                )
            for info in sorted(directory.glob("*.info")):
                self._run(
                    [self.executables.install_info, info.name, "--dir=dir"],
                    directory,
                    info,
                    outcome,
                    outcome.installed,
                )
        return outcome

    def _is_committed(self, info: Path) -> bool:
        return self.git.succeeds("ls-files", "--error-unmatch", info.name, cwd=info.parent)

    def _run(
        self,
        args: List[str],
        cwd: Path,
        source: Path,
        outcome: ManualOutcome,
        done: List[Path],
    ) -> None:
        command = " ".join(args)
        self.logger.info("  Running `%s'...", command)
        try:
            returncode, output = self._runner(args, cwd=cwd)
        except OSError as exc:
            returncode, output = 127, str(exc)
        for line in output.splitlines():
            self.logger.info("  %s", line)
        if returncode != 0:
            self.logger.warning("  Running `%s'...failed (exit %s)", command, returncode)
            outcome.failed.append(source)
            return
        self.logger.info("  Running `%s'...done", command)
        done.append(source)

    @staticmethod
    def _default_runner(args: Iterable[str], *, cwd: Path) -> Tuple[int, str]:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
        return completed.returncode, completed.stdout or ""


def _texinfo_sources(directory: Path) -> List[Path]:
    sources: List[Path] = []
    for pattern in _TEXINFO_PATTERNS:
        sources.extend(directory.glob(pattern))
    return sorted(sources)


def _relative(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


__all__ = ["ManualBuilder", "ManualOutcome"]
