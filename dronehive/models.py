"""Core data models shared across dronehive components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Union

ConfigValue = Union[str, List[str]]
DroneConfig = Dict[str, ConfigValue]

MULTI_VALUE_PROPERTIES = frozenset(
    {"load_path", "info_path", "no_byte_compile", "no_makeinfo", "build_step"}
)

_TRUTHY = {"true", "yes", "on", "1"}


def property_key(name: str) -> str:
    """Map a registry property name (``load-path``) to its config key (``load_path``)."""
    return name.replace("-", "_")


def property_name(key: str) -> str:
    """Map a config key (``load_path``) back to its registry property name."""
    return key.replace("_", "-")


def is_truthy(value: object) -> bool:
    """Interpret a bool-as-string registry value."""
    if isinstance(value, list):
        value = value[-1] if value else None
    return isinstance(value, str) and value.strip().lower() in _TRUTHY


@dataclass
class Drone:
    """A drone resolved against the host: where it lives and how it is configured."""

    name: str
    worktree: Path
    gitdir: Path
    config: DroneConfig = field(default_factory=dict)

    def get(self, key: str) -> str | None:
        value = self.config.get(key)
        if isinstance(value, list):
            return value[-1] if value else None
        return value

    def get_all(self, key: str) -> List[str]:
        value = self.config.get(key)
        if value is None:
            return []
        if isinstance(value, list):
            return list(value)
        return [value]

    @property
    def disabled(self) -> bool:
        return is_truthy(self.config.get("disabled"))

    @property
    def present(self) -> bool:
        return self.worktree.is_dir()


class CompileResult(Enum):
    """Outcome of compiling a single source file."""

    COMPILED = "compiled"
    DECLINED = "declined"
    FAILED = "failed"


@dataclass
class CompileTally:
    """Counts produced by one compiler pipeline run."""

    files: int = 0
    skipped: int = 0
    failed: int = 0
    directories: int = 0

    @property
    def total(self) -> int:
        return self.files + self.skipped + self.failed

    def summary(self) -> str:
        parts = [f"{self.files} files"]
        if self.skipped:
            parts.append(f"{self.skipped} skipped")
        if self.failed:
            parts.append(f"{self.failed} failed")
        parts.append(f"{self.directories} directories")
        return ", ".join(parts)
