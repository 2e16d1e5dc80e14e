"""Building a single drone and the host's init files."""

from __future__ import annotations

import importlib.util
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..activation import Activator, NullActivator
from ..errors import UnknownDrone
from ..logging import get_logger
from ..models import CompileResult, CompileTally
from ..registry.drones import DroneRegistry
from .autoloads import AutoloadGenerator
from .compiler import CompilerPipeline
from .manual import ManualBuilder, ManualOutcome
from .steps import BuildStep, StepRunner


@dataclass
class BuildResult:
    """What happened while building one drone."""

    name: str
    tally: Optional[CompileTally] = None
    autoloads: Optional[Path] = None
    manual: Optional[ManualOutcome] = None
    steps: List[BuildStep] = field(default_factory=list)


class DroneBuilder:
    """Builds one drone: either its configured steps or the default pipeline."""

    def __init__(
        self,
        registry: DroneRegistry,
        *,
        autoloads: AutoloadGenerator | None = None,
        compiler: CompilerPipeline | None = None,
        manual: ManualBuilder | None = None,
        steps: StepRunner | None = None,
        activator: Activator | None = None,
    ) -> None:
        settings = registry.context.settings
        self.registry = registry
        self.autoloads = autoloads or AutoloadGenerator()
        self.compiler = compiler or CompilerPipeline()
        self.manual = manual or ManualBuilder(registry.git, executables=settings.executables)
        self.steps = steps or StepRunner(wrapper=settings.build_shell_command)
        self.activator = activator or NullActivator()
        self.logger = get_logger("build")

    def build(self, name: str, *, activate: bool = False) -> BuildResult:
        drone = self.registry.drone(name)
        if not drone.present:
            raise UnknownDrone(f"{name} has no worktree at {drone.worktree}")
        result = BuildResult(name=name)
        build_steps = drone.get_all("build_step")
        if build_steps:
            result.steps = self.steps.run_all(
                build_steps,
                cwd=drone.worktree,
                namespace={
                    "drone": drone,
                    "worktree": drone.worktree,
                    "context": self.registry.context,
                },
            )
        else:
            search_paths = self.registry.resolve_load_path(name)
            result.autoloads = self.autoloads.generate(drone, search_paths)
            result.tally = self.compiler.compile(
                drone,
                search_paths,
                recursive=self.registry.is_recursive(name),
            )
            if self.registry.context.settings.build_info:
                result.manual = self.manual.build(
                    drone, self.registry.resolve_info_path(name, for_sources=True)
                )
        if activate:
            self.activator.activate(name)
        return result

    # ------------------------------------------------------------------
    # Host init files

    def init_files(self) -> List[Path]:
        host = self.registry.host
        return [host / name for name in self.registry.context.settings.init_files]

    def rebuild_init(self) -> CompileTally:
        """Byte-compile the host's init files that exist."""
        tally = CompileTally()
        for path in self.init_files():
            if not path.is_file():
                continue
            self.logger.info("\n--- [%s] ---\n", path.name)
            result = self.compiler.compile_file(path)
            if result is CompileResult.COMPILED:
                tally.files += 1
            elif result is CompileResult.DECLINED:
                tally.skipped += 1
            else:
                tally.failed += 1
        return tally

    def clean_init(self) -> List[Path]:
        removed: List[Path] = []
        for path in self.init_files():
            compiled = Path(importlib.util.cache_from_source(str(path)))
            if compiled.exists():
                compiled.unlink()
                removed.append(compiled)
        return removed


__all__ = ["BuildResult", "DroneBuilder"]
