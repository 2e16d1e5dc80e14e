"""Drone discovery: which drones exist, where they live and how they are configured."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Dict, List, Sequence, Tuple, Union

from ..config import CONFIG_FILENAME, load_config
from ..context import BuildContext
from ..errors import MissingSupportDirectory, UnknownDrone
from ..git.gateway import Git
from ..logging import get_logger
from ..models import Drone, DroneConfig, is_truthy
from .store import ConfigStore

DRONES_DIRECTORY_ENV = "DRONEHIVE_DRONES_DIRECTORY"
DRONES_DIRECTORY_GIT_KEY = "dronehive.drones-directory"

_DEFAULT_LOAD_DIRS: Sequence[str] = ("elisp", "lisp", "src")
_DEFAULT_INFO_DIRS: Sequence[str] = ("", "doc", "docs")
_TEXINFO_SUFFIXES = (".texi", ".texinfo")


class FilterMode(Enum):
    """Presence predicate applied by ``DroneRegistry.list_assimilated``."""

    PRESENT = "present"
    ASSIMILATING = "assimilating"
    ALL = "all"


def find_host(start: Path, git: Git | None = None) -> Path:
    """Return the host's top-level directory, starting the search at ``start``."""
    start = start.expanduser().resolve()
    if not start.is_dir():
        raise MissingSupportDirectory(f"{start} is not a directory")
    if (start / ".gitmodules").exists() or (start / CONFIG_FILENAME).exists():
        return start
    git = git or Git(start)
    toplevel = git.run("rev-parse", "--show-toplevel", cwd=start)
    if not toplevel.ok or not toplevel.lines:
        raise MissingSupportDirectory(f"Cannot determine the top-level directory for {start}")
    return Path(toplevel.lines[0]).resolve()


def is_valid_name(name: str) -> bool:
    return bool(name) and "/" not in name and "\\" not in name and name not in {".", ".."}


class DroneRegistry:
    """Resolves drones registered in the host's ``.gitmodules``."""

    def __init__(
        self,
        host: Path,
        *,
        context: BuildContext | None = None,
        git: Git | None = None,
        store: ConfigStore | None = None,
    ) -> None:
        self.host = Path(host).expanduser().resolve()
        if not self.host.is_dir():
            raise MissingSupportDirectory(f"Host directory {self.host} does not exist")
        if context is None:
            context = BuildContext(settings=load_config(self.host))
        self.context = context
        self.git = git or Git(self.host, executable=context.settings.executables.git)
        self.store = store or ConfigStore(self.git, self.host / ".gitmodules")
        self.logger = get_logger("registry")
        self._drones_directory: Path | None = None
        self._host_gitdir: Path | None = None

    # ------------------------------------------------------------------
    # Host layout

    @property
    def gitmodules(self) -> Path:
        return self.store.gitmodules

    @property
    def drones_directory(self) -> Path:
        if self._drones_directory is None:
            value = (
                os.environ.get(DRONES_DIRECTORY_ENV)
                or self.git.try_get("config", DRONES_DIRECTORY_GIT_KEY, cwd=self.host)
                or self.context.settings.drones_directory
                or self.context.settings.default_drones_directory
            )
            self._drones_directory = (self.host / value).resolve()
        return self._drones_directory

    @property
    def host_gitdir(self) -> Path:
        if self._host_gitdir is None:
            lines = self.git.run_or_fail(None, "rev-parse", "--git-dir", cwd=self.host)
            if not lines:
                raise MissingSupportDirectory(f"Cannot locate the git directory of {self.host}")
            self._host_gitdir = (self.host / lines[0]).resolve()
        return self._host_gitdir

    def relative_path(self, path: Path) -> str:
        return Path(os.path.relpath(path, self.host)).as_posix()

    def worktree(self, name: str) -> Path:
        """Return the worktree of ``name``, honouring a registered ``path`` override."""
        return self._location(name, self.get(name, "path"))

    def gitdir(self, name: str) -> Path:
        return self.host_gitdir / "modules" / name

    def _location(self, name: str, path: object) -> Path:
        if isinstance(path, str) and path:
            return (self.host / path).resolve()
        return self.drones_directory / name

    # ------------------------------------------------------------------
    # Enumeration

    def list_worktree_paths(self) -> List[str]:
        """Return names of submodules whose path lies below the drones directory."""
        if not self.gitmodules.exists():
            return []
        lines = self.git.try_get_all(
            "config",
            "--file",
            str(self.gitmodules),
            "--get-regexp",
            r"^submodule\..*\.path$",
        )
        names: List[str] = []
        for line in lines or []:
            key, _, value = line.partition(" ")
            name = key[len("submodule."):-len(".path")]
            location = (self.host / value.strip()).resolve()
            if location.parent == self.drones_directory and is_valid_name(name):
                names.append(name)
        return sorted(names)

    def list_assimilated(
        self,
        with_config: bool = False,
        filter_mode: FilterMode = FilterMode.PRESENT,
    ) -> Union[List[str], List[Tuple[str, DroneConfig]]]:
        """Return registered drones matching ``filter_mode``, sorted by name."""
        selected: List[Tuple[str, DroneConfig]] = []
        for name, config in self._configs().items():
            if not is_valid_name(name):
                continue
            worktree = self._location(name, config.get("path"))
            if worktree.parent != self.drones_directory:
                continue
            if filter_mode is FilterMode.PRESENT:
                if not worktree.is_dir() or worktree.resolve().parent != self.drones_directory:
                    continue
            elif filter_mode is FilterMode.ASSIMILATING:
                if worktree.exists():
                    continue
            selected.append((name, config))
        if with_config:
            return selected
        return [name for name, _ in selected]

    def list_cloned_only(self) -> List[str]:
        """Return every non-hidden directory below the drones directory."""
        if not self.drones_directory.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.drones_directory.iterdir()
            if entry.is_dir() and not entry.name.startswith(".")
        )

    def is_registered(self, name: str) -> bool:
        return name in self.list_assimilated(filter_mode=FilterMode.ALL)

    # ------------------------------------------------------------------
    # Per-drone resolution

    def drone(self, name: str) -> Drone:
        if not is_valid_name(name):
            raise UnknownDrone(f"Invalid drone name {name!r}")
        return Drone(
            name=name,
            worktree=self.worktree(name),
            gitdir=self.gitdir(name),
            config=self.store.config_for(name, self.context),
        )

    def get(self, name: str, key: str) -> str | None:
        value = self.store.get(name, key, context=self.context)
        return value if isinstance(value, str) else None

    def get_all(self, name: str, key: str) -> List[str]:
        return self.store.get_all(name, key, context=self.context)

    def is_disabled(self, name: str) -> bool:
        return is_truthy(self.get(name, "disabled"))

    def is_expensive(self, name: str) -> bool:
        """Drones with their own build steps are deferred by quick rebuilds."""
        return bool(self.get_all(name, "build_step"))

    def is_recursive(self, name: str) -> bool:
        value = self.get(name, "recursive_byte_compile")
        if value is None:
            return self.context.compile_recursively
        return is_truthy(value)

    def resolve_load_path(self, name: str) -> List[Path]:
        worktree = self.worktree(name)
        configured = self.get_all(name, "load_path")
        if configured:
            return [(worktree / entry).resolve() for entry in configured]
        for candidate in _DEFAULT_LOAD_DIRS:
            directory = worktree / candidate
            if directory.is_dir():
                return [directory]
        return [worktree]

    def resolve_info_path(self, name: str, for_sources: bool = False) -> List[Path]:
        worktree = self.worktree(name)
        configured = self.get_all(name, "info_path")
        if configured:
            candidates = [(worktree / entry).resolve() for entry in configured]
        else:
            candidates = [worktree / entry if entry else worktree for entry in _DEFAULT_INFO_DIRS]
        selected: List[Path] = []
        for directory in candidates:
            if not directory.is_dir():
                continue
            if for_sources:
                if any(_is_texinfo(child) for child in directory.iterdir()):
                    selected.append(directory)
            elif (directory / "dir").exists():
                selected.append(directory)
        return selected

    def _configs(self) -> Dict[str, DroneConfig]:
        cache = self.context.config_cache
        if cache is not None:
            return {name: self.store.config_for(name, self.context) for name in cache}
        return self.store.load_all()


def _is_texinfo(path: Path) -> bool:
    return path.is_file() and path.suffix in _TEXINFO_SUFFIXES


__all__ = ["DroneRegistry", "FilterMode", "find_host", "is_valid_name"]
