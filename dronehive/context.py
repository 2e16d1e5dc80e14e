"""Per-invocation state threaded through registry and build operations."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterator, Optional

from .config import HiveConfig
from .models import DroneConfig

if TYPE_CHECKING:
    from .registry.store import ConfigStore


@dataclass
class BuildContext:
    """Settings and caches scoped to one invocation.

    ``batch`` marks a non-interactive, single-pass run; only such runs may
    rebuild every drone. ``config_cache`` is either absent or a complete
    snapshot of the registry file.
    """

    settings: HiveConfig
    batch: bool = False
    config_cache: Optional[Dict[str, DroneConfig]] = field(default=None, repr=False)

    @classmethod
    def for_host(cls, host: Path, *, batch: bool = False) -> "BuildContext":
        return cls(settings=HiveConfig(root=host.resolve()), batch=batch)

    @property
    def compile_recursively(self) -> bool:
        return self.settings.compile_recursively

    @contextmanager
    def cached(self, store: "ConfigStore") -> Iterator["BuildContext"]:
        """Snapshot every drone's configuration for the duration of the block."""
        previous = self.config_cache
        self.config_cache = store.load_all(raw=True)
        try:
            yield self
        finally:
            self.config_cache = previous


__all__ = ["BuildContext"]
