"""Generation of ``<drone>-autoloads.py`` entry-point files."""

from __future__ import annotations

import importlib
import linecache
import os
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Sequence

from ..logging import get_logger
from ..models import Drone

AUTOLOAD_COOKIE = "# ###autoload"
AUTOLOADS_SUFFIX = "-autoloads.py"

_DEFINITION_RE = re.compile(r"^(?:async\s+def|def|class)\s+(?P<name>[A-Za-z_]\w*)")

_HEADER = '''\
# -*- no-byte-compile: t -*-
"""Autoloads for the {drone} drone.  Generated by dronehive; do not edit."""

import importlib.util as _importlib_util
import os as _os
import sys as _sys

_here = _os.path.dirname(_os.path.abspath(__file__))
if _here not in _sys.path:
    _sys.path.insert(0, _here)

_loaded = {{}}


def _load(relative):
    module = _loaded.get(relative)
    if module is None:
        location = _os.path.join(_here, relative)
        name = "_dronehive_autoload_" + relative.replace(_os.sep, "_").replace("/", "_")[:-3]
        spec = _importlib_util.spec_from_file_location(name, location)
        module = _importlib_util.module_from_spec(spec)
        spec.loader.exec_module(module)
        _loaded[relative] = module
    return module


def _autoload(name, relative):
    def stub(*args, **kwargs):
        return getattr(_load(relative), name)(*args, **kwargs)

    stub.__name__ = name
    stub.__qualname__ = name
    stub.__doc__ = "Autoloaded from %s." % relative
    return stub
'''


@dataclass(frozen=True)
class EntryPoint:
    """A definition marked with the autoload cookie."""

    name: str
    source: Path


class AutoloadGenerator:
    """Scans a drone's search paths and writes its aggregated autoload file."""

    def __init__(self) -> None:
        self.logger = get_logger("build.autoloads")

    def target(self, drone: Drone, search_paths: Sequence[Path]) -> Path:
        return search_paths[0] / f"{drone.name}{AUTOLOADS_SUFFIX}"

    def generate(self, drone: Drone, search_paths: Sequence[Path]) -> Path:
        """Regenerate the autoload file for ``drone`` and return its path."""
        if not search_paths:
            raise ValueError(f"No search paths for {drone.name}")
        target = self.target(drone, search_paths)
        self.logger.info(" Creating %s...", target)
        if target.exists():
            target.unlink()

        entries = self.scan(drone, search_paths)
        target.write_text(self.render(drone, target.parent, entries), encoding="utf-8")
        _invalidate(target)
        self.logger.info(" Creating %s...done", target)
        return target

    def scan(self, drone: Drone, search_paths: Sequence[Path]) -> List[EntryPoint]:
        excluded = _excluded_paths(drone)
        entries: List[EntryPoint] = []
        for directory in search_paths:
            if not directory.is_dir():
                continue
            for source in sorted(directory.glob("*.py")):
                if source.name.startswith(".") or source.name.endswith(AUTOLOADS_SUFFIX):
                    continue
                if source.resolve() in excluded or _is_drone_aux(drone.name, source.name):
                    continue
                entries.extend(_scan_file(source))
        return entries

    def render(self, drone: Drone, base: Path, entries: Iterable[EntryPoint]) -> str:
        lines = [_HEADER.format(drone=drone.name)]
        current: Path | None = None
        for entry in entries:
            relative = Path(os.path.relpath(entry.source, base)).as_posix()
            if entry.source != current:
                lines.append("")
                lines.append(f"# Generated from {relative}")
                current = entry.source
            lines.append(f"{entry.name} = _autoload({entry.name!r}, {relative!r})")
        return "\n".join(lines).rstrip("\n") + "\n"


def _scan_file(source: Path) -> List[EntryPoint]:
    text = source.read_text(encoding="utf-8")
    entries: List[EntryPoint] = []
    pending = False
    for line in text.splitlines():
        stripped = line.strip()
        if stripped == AUTOLOAD_COOKIE:
            pending = True
            continue
        if not pending or not stripped:
            continue
        if stripped.startswith("@"):
            continue
        match = _DEFINITION_RE.match(line)
        if match:
            entries.append(EntryPoint(name=match.group("name"), source=source))
        pending = False
    return entries


def _excluded_paths(drone: Drone) -> set[Path]:
    return {
        (drone.worktree / entry).resolve()
        for entry in drone.get_all("no_byte_compile")
    }


def _is_drone_aux(drone_name: str, filename: str) -> bool:
    return filename == f"{drone_name}-pkg.py" or filename.startswith(f"{drone_name}-test")


def _invalidate(path: Path) -> None:
    linecache.checkcache(str(path))
    importlib.invalidate_caches()
    for name, module in list(sys.modules.items()):
        if getattr(module, "__file__", None) == str(path):
            del sys.modules[name]


__all__ = ["AUTOLOAD_COOKIE", "AUTOLOADS_SUFFIX", "AutoloadGenerator", "EntryPoint"]
