"""Batch rebuild orchestration across every drone."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .build.builder import BuildResult, DroneBuilder
from .build.compiler import remove_compiled
from .context import BuildContext
from .errors import DroneHiveError, UsageError
from .logging import get_logger
from .models import CompileTally
from .registry.drones import DroneRegistry, FilterMode


class DroneStatus(str, Enum):
    """Outcome of one drone in a batch rebuild."""

    BUILT = "Built"
    DISABLED = "Disabled"
    MISSING = "Missing"
    EXPENSIVE = "Expensive"
    FAILED = "Failed"


_SKIP_MESSAGES = {
    DroneStatus.DISABLED: "Skipped (Disabled)",
    DroneStatus.MISSING: "Skipped (Missing)",
    DroneStatus.EXPENSIVE: "Skipped (Expensive to build)",
}


@dataclass
class DroneReport:
    """Status of a single drone after a batch rebuild."""

    name: str
    status: DroneStatus
    tally: Optional[CompileTally] = None
    error: Optional[str] = None


@dataclass
class RebuildReport:
    """Per-drone outcomes of ``Orchestrator.rebuild_all``."""

    drones: List[DroneReport] = field(default_factory=list)
    init: Optional[CompileTally] = None

    def status(self, name: str) -> Optional[DroneStatus]:
        for report in self.drones:
            if report.name == name:
                return report.status
        return None

    @property
    def order(self) -> List[str]:
        return [report.name for report in self.drones]

    def counts(self) -> Dict[DroneStatus, int]:
        counts = {status: 0 for status in DroneStatus}
        for report in self.drones:
            counts[report.status] += 1
        return counts

    def summary(self) -> str:
        counts = self.counts()
        parts = [f"{counts[status]} {status.value.lower()}" for status in DroneStatus]
        failed_files = sum(report.tally.failed for report in self.drones if report.tally)
        parts.append(f"{failed_files} files failed to compile")
        return "Rebuild finished: " + ", ".join(parts)


class Orchestrator:
    """Sequences autoload generation, compilation and manuals for all drones."""

    def __init__(
        self,
        registry: DroneRegistry,
        builder: DroneBuilder | None = None,
    ) -> None:
        self.registry = registry
        self.builder = builder or DroneBuilder(registry)
        self.logger = get_logger("orchestrator")

    @property
    def context(self) -> BuildContext:
        return self.registry.context

    def ordered(self, names: Sequence[str]) -> List[str]:
        """Sort ``names`` alphabetically, moving ``build_first`` drones to the front."""
        remaining = sorted(names)
        first = [name for name in self.context.settings.build_first if name in remaining]
        return first + [name for name in remaining if name not in first]

    def rebuild_all(self, quick: bool = False) -> RebuildReport:
        """Rebuild every drone, then the host's init files.

        Only valid in a batch context. A failing drone is reported and the
        remaining drones are still processed.
        """
        if not self.context.batch:
            raise UsageError("rebuild_all is to be used only in batch mode")

        report = RebuildReport()
        try:
            with self.context.cached(self.registry.store):
                drones = self.ordered(self.registry.list_assimilated(filter_mode=FilterMode.ALL))
                statuses = {name: self._skip_reason(name, quick) for name in drones}

                for name in drones:
                    if statuses[name] is None:
                        remove_compiled(self.registry.resolve_load_path(name))

                for name in drones:
                    report.drones.append(self._rebuild_one(name, statuses[name]))
        finally:
            report.init = self.rebuild_init()
            self.logger.info(report.summary())
        return report

    def _rebuild_one(self, name: str, skip: Optional[DroneStatus]) -> DroneReport:
        self.logger.info("\n--- [%s] ---\n", name)
        if skip is not None:
            self.logger.info(_SKIP_MESSAGES[skip])
            return DroneReport(name=name, status=skip)
        try:
            result = self.builder.build(name)
        except DroneHiveError as exc:
            self.logger.error("Building %s failed: %s", name, exc)
            return DroneReport(name=name, status=DroneStatus.FAILED, error=str(exc))
        except Exception as exc:
            self.logger.exception("Building %s failed unexpectedly", name)
            return DroneReport(
                name=name, status=DroneStatus.FAILED, error=f"{type(exc).__name__}: {exc}"
            )
        return DroneReport(name=name, status=DroneStatus.BUILT, tally=result.tally)

    def build_drone(self, name: str, *, activate: bool = True) -> BuildResult:
        """Build a single drone outside of a batch rebuild."""
        self.logger.info("\n--- [%s] ---\n", name)
        return self.builder.build(name, activate=activate)

    def rebuild_init(self) -> CompileTally:
        self.clean_init()
        return self.builder.rebuild_init()

    def clean(self) -> List[Path]:
        """Remove every byte-code file below the drones directory."""
        directory = self.registry.drones_directory
        removed = [path for path in directory.rglob("*.pyc") if path.is_file()] if directory.is_dir() else []
        for path in removed:
            path.unlink()
        self.logger.info("Removed %d byte-code files", len(removed))
        return removed

    def clean_init(self) -> List[Path]:
        return self.builder.clean_init()

    def _skip_reason(self, name: str, quick: bool) -> Optional[DroneStatus]:
        if self.registry.is_disabled(name):
            return DroneStatus.DISABLED
        if not self.registry.worktree(name).is_dir():
            return DroneStatus.MISSING
        if quick and self.registry.is_expensive(name):
            return DroneStatus.EXPENSIVE
        return None


__all__ = ["DroneReport", "DroneStatus", "Orchestrator", "RebuildReport"]
