"""Strategies for moving a drone's git metadata out of its worktree.

Before git 2.12.0 there is no ``git submodule absorbgitdirs``; the metadata
directory has to be moved into ``<host-gitdir>/modules/<name>`` by hand and
re-linked. Newer versions do this natively. The strategy is chosen once from
the parsed git version.
"""

from __future__ import annotations

import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Tuple

from ..logging import get_logger
from ..models import Drone
from .gateway import Git

ABSORB_GITDIRS_VERSION: Tuple[int, ...] = (2, 12, 0)

POINTER_PREFIX = "gitdir:"


def is_absorbed(worktree: Path) -> bool:
    """Return True when ``worktree/.git`` is a pointer file rather than a directory."""
    dotgit = worktree / ".git"
    return dotgit.is_file() and read_pointer(dotgit) is not None


def read_pointer(dotgit: Path) -> str | None:
    try:
        first_line = dotgit.read_text(encoding="utf-8").splitlines()[0]
    except (OSError, IndexError):
        return None
    if not first_line.startswith(POINTER_PREFIX):
        return None
    return first_line[len(POINTER_PREFIX):].strip()


def link_gitdir(git: Git, drone: Drone) -> None:
    """Point the worktree at its metadata store using relative paths both ways."""
    worktree = drone.worktree
    gitdir = drone.gitdir
    relative_gitdir = Path(os.path.relpath(gitdir, worktree)).as_posix()
    (worktree / ".git").write_text(f"{POINTER_PREFIX} {relative_gitdir}\n", encoding="utf-8")
    relative_worktree = Path(os.path.relpath(worktree, gitdir)).as_posix()
    git.run_or_fail(
        drone.name,
        "config",
        "--file",
        str(gitdir / "config"),
        "core.worktree",
        relative_worktree,
    )


class AbsorptionStrategy(ABC):
    """Separates a drone's metadata store from its worktree."""

    def __init__(self, git: Git) -> None:
        self.git = git
        self.logger = get_logger("gitdir")

    def absorb(self, drone: Drone) -> None:
        if is_absorbed(drone.worktree):
            self.logger.debug("Gitdir of %s already absorbed", drone.name)
            return
        self._absorb(drone)

    @abstractmethod
    def _absorb(self, drone: Drone) -> None:
        """Move metadata for ``drone`` into its shared metadata store."""


class ManualAbsorption(AbsorptionStrategy):
    """Relocates ``.git`` by hand for git releases without ``absorbgitdirs``."""

    def _absorb(self, drone: Drone) -> None:
        source = drone.worktree / ".git"
        if not source.is_dir():
            return
        self.logger.info("Moving %s to %s", source, drone.gitdir)
        drone.gitdir.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(drone.gitdir))
        link_gitdir(self.git, drone)


class NativeAbsorption(AbsorptionStrategy):
    """Delegates to ``git submodule absorbgitdirs``."""

    def __init__(self, git: Git, host: Path) -> None:
        super().__init__(git)
        self.host = host

    def _absorb(self, drone: Drone) -> None:
        path = Path(os.path.relpath(drone.worktree, self.host)).as_posix()
        self.git.run_or_fail(drone.name, "submodule", "absorbgitdirs", "--", path, cwd=self.host)


def select_strategy(git: Git, host: Path, version: Tuple[int, ...]) -> AbsorptionStrategy:
    """Pick the absorption strategy matching the installed git version."""
    if version and version < ABSORB_GITDIRS_VERSION:
        return ManualAbsorption(git)
    return NativeAbsorption(git, host)


__all__ = [
    "ABSORB_GITDIRS_VERSION",
    "AbsorptionStrategy",
    "ManualAbsorption",
    "NativeAbsorption",
    "is_absorbed",
    "link_gitdir",
    "read_pointer",
    "select_strategy",
]
