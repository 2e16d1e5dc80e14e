"""Parsing and lookup of per-drone properties stored in .gitmodules."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..git.gateway import Git
from ..logging import get_logger
from ..models import (
    MULTI_VALUE_PROPERTIES,
    DroneConfig,
    property_key,
    property_name,
)

if TYPE_CHECKING:
    from ..context import BuildContext

_PREFIX = "submodule."


def parse_line(line: str) -> Optional[Tuple[str, str, str]]:
    """Split ``submodule.<name>.<property>=<value>`` into its three parts."""
    if not line.startswith(_PREFIX) or "=" not in line:
        return None
    key, value = line.split("=", 1)
    remainder = key[len(_PREFIX):]
    if "." not in remainder:
        return None
    name, prop = remainder.rsplit(".", 1)
    if not name or not prop:
        return None
    return name, property_key(prop), value


def parse_lines(lines: Iterable[str], *, raw: bool = False) -> Dict[str, DroneConfig]:
    """Fold registry lines into ``{drone: {key: value | [values]}}``.

    Multi-valued keys (and every key when ``raw``) collect their values in
    file order. Any other key that appears more than once keeps its last value.
    """
    result: Dict[str, DroneConfig] = {}
    for line in lines:
        parsed = parse_line(line)
        if parsed is None:
            continue
        name, key, value = parsed
        config = result.setdefault(name, {})
        if raw or key in MULTI_VALUE_PROPERTIES:
            existing = config.get(key)
            if isinstance(existing, list):
                existing.append(value)
            else:
                config[key] = [value]
        else:
            config[key] = value
    return {name: result[name] for name in sorted(result)}


def serialize(mapping: Mapping[str, Mapping[str, Union[str, List[str]]]]) -> List[str]:
    """Render a parsed mapping back into registry lines."""
    lines: List[str] = []
    for name in sorted(mapping):
        for key, value in mapping[name].items():
            values = value if isinstance(value, list) else [value]
            for item in values:
                lines.append(f"{_PREFIX}{name}.{property_name(key)}={item}")
    return lines


class ConfigStore:
    """Reads drone properties from the registry file through git."""

    def __init__(self, git: Git, gitmodules: Path) -> None:
        self.git = git
        self.gitmodules = gitmodules
        self.logger = get_logger("registry.store")

    def load_all(self, raw: bool = False) -> Dict[str, DroneConfig]:
        """Return every drone's properties, sorted by drone name."""
        if not self.gitmodules.exists():
            return {}
        lines = self.git.run_or_fail(
            None, "config", "--list", "--file", str(self.gitmodules)
        )
        return parse_lines(lines, raw=raw)

    def get(
        self,
        name: str,
        key: str,
        all: bool = False,
        context: "BuildContext | None" = None,
    ) -> Union[str, List[str], None]:
        """Return one property of ``name``; ``None`` (or ``[]``) when unset."""
        if context is not None and context.config_cache is not None:
            value = context.config_cache.get(name, {}).get(key)
            return _shape(value, all)
        if not self.gitmodules.exists():
            return [] if all else None
        variable = f"{_PREFIX}{name}.{property_name(key)}"
        if all:
            values = self.git.try_get_all(
                "config", "--file", str(self.gitmodules), "--get-all", variable
            )
            return values or []
        return self.git.try_get("config", "--file", str(self.gitmodules), "--get", variable)

    def get_all(
        self, name: str, key: str, context: "BuildContext | None" = None
    ) -> List[str]:
        values = self.get(name, key, all=True, context=context)
        return list(values) if isinstance(values, list) else []

    def config_for(self, name: str, context: "BuildContext | None" = None) -> DroneConfig:
        """Return the full property mapping of a single drone."""
        if context is not None and context.config_cache is not None:
            cached = context.config_cache.get(name, {})
            return {
                key: (values if key in MULTI_VALUE_PROPERTIES else values[-1])
                for key, values in cached.items()
                if values
            }
        return self.load_all().get(name, {})


def _shape(value: Union[str, List[str], None], all: bool) -> Union[str, List[str], None]:
    if value is None:
        return [] if all else None
    values = value if isinstance(value, list) else [value]
    if all:
        return list(values)
    return values[-1] if values else None


__all__ = ["ConfigStore", "parse_line", "parse_lines", "serialize"]
