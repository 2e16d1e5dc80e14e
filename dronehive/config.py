"""Host settings loading for dronehive (.dronehive.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import DroneHiveError

CONFIG_FILENAME = ".dronehive.yml"

PRIMARY_DRONES_DIRECTORY = "lib"
SECONDARY_DRONES_DIRECTORY = "profiles"


class ConfigError(DroneHiveError):
    """Raised when the settings file cannot be parsed."""


@dataclass
class Executables:
    """External programs invoked by dronehive."""

    git: str = "git"
    makeinfo: str = "makeinfo"
    install_info: str = "install-info"


@dataclass
class HiveConfig:
    """Represents the host-level settings defined in .dronehive.yml."""

    root: Path
    drones_directory: Optional[str] = None
    secondary: bool = False
    build_shell_command: Optional[str] = None
    compile_recursively: bool = False
    build_info: bool = True
    build_first: List[str] = field(default_factory=lambda: ["org"])
    init_files: List[str] = field(default_factory=lambda: ["init.py"])
    executables: Executables = field(default_factory=Executables)

    @property
    def default_drones_directory(self) -> str:
        return SECONDARY_DRONES_DIRECTORY if self.secondary else PRIMARY_DRONES_DIRECTORY


def load_config(config_path: Path) -> HiveConfig:
    """Load settings from disk, falling back to defaults when the file is absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return HiveConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = HiveConfig(root=root)
    config.drones_directory = _as_str(data.get("drones_directory"))
    config.secondary = _as_bool(data.get("secondary")) or False
    config.build_shell_command = _as_str(data.get("build_shell_command"))
    config.compile_recursively = _as_bool(data.get("compile_recursively")) or False

    build_info = _as_bool(data.get("build_info"))
    if build_info is not None:
        config.build_info = build_info
    if "build_first" in data:
        config.build_first = _as_str_list(data.get("build_first"))
    if "init_files" in data:
        config.init_files = _as_str_list(data.get("init_files"))

    executables_data = _as_dict(data.get("executables"))
    if executables_data:
        defaults = Executables()
        config.executables = Executables(
            git=_as_str(executables_data.get("git")) or defaults.git,
            makeinfo=_as_str(executables_data.get("makeinfo")) or defaults.makeinfo,
            install_info=_as_str(executables_data.get("install_info")) or defaults.install_info,
        )

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "on", "1"}:
            return True
        if lowered in {"false", "no", "off", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = ["CONFIG_FILENAME", "ConfigError", "Executables", "HiveConfig", "load_config"]
