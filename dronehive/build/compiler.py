"""Byte-compilation of a drone's sources."""

from __future__ import annotations

import os
import py_compile
import re
from collections import deque
from pathlib import Path
from typing import Callable, Deque, Iterable, List, Sequence, Set

from ..logging import get_logger
from ..models import CompileResult, CompileTally, Drone
from .autoloads import AUTOLOADS_SUFFIX

NOSEARCH_MARKER = ".nosearch"
DIR_LOCALS_FILE = ".dir-locals.py"

_VCS_DIRECTORIES = {"RCS", "CVS", ".git", ".hg", ".svn", "__pycache__"}
_SKIP_NAME_RE = re.compile(
    r"(?:-pkg\.py|-tests?\.py|_tests?\.py)$|^(?:test_.*\.py|conftest\.py|setup\.py)$"
)
_NO_COMPILE_RE = re.compile(r"no-byte-compile:\s*t\b")

FileCompiler = Callable[[Path], CompileResult]


def declines_compilation(path: Path) -> bool:
    """Return True when the file carries a ``no-byte-compile: t`` cookie."""
    try:
        with path.open(encoding="utf-8", errors="replace") as handle:
            head = [handle.readline() for _ in range(2)]
    except OSError:
        return False
    return any(_NO_COMPILE_RE.search(line) for line in head if line.lstrip().startswith("#"))


class CompilerPipeline:
    """Walks search paths and compiles every eligible source file once."""

    def __init__(self, compiler: FileCompiler | None = None) -> None:
        self._compiler = compiler or self.compile_file
        self.logger = get_logger("build.compiler")

    def compile(
        self,
        drone: Drone,
        search_paths: Sequence[Path],
        *,
        recursive: bool = False,
    ) -> CompileTally:
        """Compile ``drone``'s sources below ``search_paths`` and tally the outcome."""
        tally = CompileTally()
        root = drone.worktree.resolve()
        exclude = set(drone.get_all("no_byte_compile"))
        excluded_dirs = {entry.rstrip("/") for entry in exclude if entry.endswith("/")}

        queue: Deque[Path] = deque(search_paths)
        visited: Set[Path] = set()
        while queue:
            directory = queue.popleft()
            resolved = directory.resolve()
            if resolved in visited or not directory.is_dir():
                continue
            visited.add(resolved)
            counted = False
            for entry in sorted(directory.iterdir()):
                if entry.is_dir():
                    if recursive and self._descend(entry, root, excluded_dirs):
                        queue.append(entry)
                    continue
                if not self._eligible(entry, root):
                    continue
                counted = True
                relative = _relative(entry, root)
                if _SKIP_NAME_RE.search(entry.name) or relative in exclude:
                    self.logger.info(" Skipping %s...skipped", relative)
                    tally.skipped += 1
                    continue
                result = self._compiler(entry)
                if result is CompileResult.COMPILED:
                    tally.files += 1
                elif result is CompileResult.DECLINED:
                    self.logger.info("Compiling %s...skipped", relative)
                    tally.skipped += 1
                else:
                    tally.failed += 1
            if counted:
                tally.directories += 1

        self.logger.info("Compiling %s...done (%s)", drone.name, tally.summary())
        return tally

    def compile_file(self, path: Path) -> CompileResult:
        """Compile one file to byte-code next to it in ``__pycache__``."""
        if declines_compilation(path):
            return CompileResult.DECLINED
        try:
            py_compile.compile(str(path), doraise=True)
        except py_compile.PyCompileError as exc:
            lineno = getattr(exc.exc_value, "lineno", None)
            location = f"{path}:{lineno}" if lineno else str(path)
            self.logger.error("Compiling %s...failed: %s", location, exc.msg.strip())
            return CompileResult.FAILED
        except OSError as exc:
            self.logger.error("Compiling %s...failed: %s", path, exc)
            return CompileResult.FAILED
        return CompileResult.COMPILED

    def _descend(self, directory: Path, root: Path, excluded_dirs: Set[str]) -> bool:
        name = directory.name
        if directory.is_symlink() or name.startswith(".") or name in _VCS_DIRECTORIES:
            return False
        relative = _relative(directory, root)
        if (directory / NOSEARCH_MARKER).exists() or relative in excluded_dirs:
            self.logger.info(" Skipping %s...skipped", relative)
            return False
        return True

    @staticmethod
    def _eligible(path: Path, root: Path) -> bool:
        name = path.name
        if not name.endswith(".py") or name.startswith("."):
            return False
        if name.endswith(AUTOLOADS_SUFFIX) or name == DIR_LOCALS_FILE:
            return False
        if not path.is_file() or not os.access(path, os.R_OK):
            return False
        return path.resolve().is_relative_to(root)


def remove_compiled(directories: Iterable[Path]) -> List[Path]:
    """Delete byte-code, autoload and loaddefs files below ``directories``."""
    removed: List[Path] = []
    for directory in directories:
        if not directory.is_dir():
            continue
        candidates = list(directory.rglob("*.pyc"))
        candidates.extend(directory.glob(f"*{AUTOLOADS_SUFFIX}"))
        candidates.extend(directory.glob("*-loaddefs.py"))
        for path in candidates:
            if path.is_file():
                path.unlink()
                removed.append(path)
    return removed


def _relative(path: Path, root: Path) -> str:
    try:
        return path.resolve().relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


__all__ = [
    "CompilerPipeline",
    "DIR_LOCALS_FILE",
    "NOSEARCH_MARKER",
    "declines_compilation",
    "remove_compiled",
]
