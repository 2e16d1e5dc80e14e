"""Assimilating, cloning and removing drones.

Every step is a git call; the first failing call aborts the operation and
its error propagates unchanged. Nothing is rolled back, so a failure can
leave ``.gitmodules`` and the worktree out of step for the operator to fix.
"""

from __future__ import annotations

import shutil
from typing import Callable, List

from .build.builder import DroneBuilder
from .errors import AlreadyExists, DirtyWorktree, UnknownDrone
from .git.gitdir import AbsorptionStrategy, is_absorbed, link_gitdir, select_strategy
from .git.gitmodules import sort_submodule_sections
from .logging import get_logger
from .registry.drones import DroneRegistry, FilterMode

RefreshHook = Callable[[str], None]


class LifecycleManager:
    """Registers drones as submodules, clones them and removes them again."""

    def __init__(
        self,
        registry: DroneRegistry,
        builder: DroneBuilder | None = None,
        *,
        strategy: AbsorptionStrategy | None = None,
        refresh: RefreshHook | None = None,
    ) -> None:
        self.registry = registry
        self.git = registry.git
        self.builder = builder or DroneBuilder(registry)
        self._strategy = strategy
        self.refresh = refresh
        self.logger = get_logger("lifecycle")

    @property
    def strategy(self) -> AbsorptionStrategy:
        if self._strategy is None:
            self._strategy = select_strategy(self.git, self.registry.host, self.git.version())
        return self._strategy

    def assimilate(self, name: str, url: str, *, partially: bool = False) -> List[str]:
        """Add ``name`` as a submodule, absorb its gitdir and build it.

        Returns the states the operation passed through.
        """
        self.logger.info("Assimilating %s...", name)
        drone = self.registry.drone(name)
        states = ["start"]
        if is_absorbed(drone.worktree) and self.registry.is_registered(name):
            self.logger.info("%s is already assimilated", name)
        else:
            path = self.registry.relative_path(drone.worktree)
            self.git.run_or_fail(
                name, "submodule", "add", "--name", name, url, path, cwd=self.registry.host
            )
            states.append("submoduleAdded")
            sort_submodule_sections(self.registry.gitmodules)
            states.append("registryNormalized")
            self.git.run_or_fail(name, "add", ".gitmodules", cwd=self.registry.host)
            states.append("registryCommitted")
            self.strategy.absorb(drone)
        states.append("metadataAbsorbed")
        if not partially:
            self.builder.build(name, activate=True)
            states.append("built")
        if self.refresh is not None:
            self.refresh(name)
        states.append("done")
        self.logger.info("Assimilating %s...done", name)
        return states

    def clone(self, name: str, url: str) -> List[str]:
        """Clone ``name`` into the drones directory without registering it."""
        drone = self.registry.drone(name)
        if drone.worktree.exists():
            raise AlreadyExists(f"{drone.worktree} already exists")
        states = ["start", "targetChecked"]
        reuse = drone.gitdir.is_dir()
        if not reuse:
            drone.gitdir.parent.mkdir(parents=True, exist_ok=True)
        states.append("metadataResolved")

        self.logger.info("Cloning %s...", name)
        if reuse:
            self.logger.info("Reusing existing gitdir %s", drone.gitdir)
            drone.worktree.mkdir(parents=True)
            self.git.run_or_fail(
                name,
                f"--git-dir={drone.gitdir}",
                f"--work-tree={drone.worktree}",
                "reset",
                "--hard",
                cwd=self.registry.host,
            )
        else:
            self.git.run_or_fail(
                name,
                "clone",
                f"--separate-git-dir={drone.gitdir}",
                url,
                self.registry.relative_path(drone.worktree),
                cwd=self.registry.host,
            )
        states.append("cloned")
        link_gitdir(self.git, drone)
        states.append("gitdirLinked")
        states.append("done")
        self.logger.info("Cloning %s...done", name)
        return states

    def remove(self, name: str) -> List[str]:
        """Remove the worktree of ``name``; its metadata store is kept."""
        drone = self.registry.drone(name)
        if not drone.worktree.is_dir():
            raise UnknownDrone(f"{name} has no worktree at {drone.worktree}")
        states = ["start"]
        cwd = drone.worktree
        if not self.git.succeeds("diff", "--quiet", "--cached", cwd=cwd) or not self.git.succeeds(
            "diff", "--quiet", cwd=cwd
        ):
            raise DirtyWorktree(f"{drone.worktree} contains uncommitted changes")
        states.append("cleanChecked")
        self.strategy.absorb(drone)
        states.append("metadataAbsorbed")

        self.logger.info("Removing %s...", name)
        if self.registry.is_registered(name):
            self.git.run_or_fail(
                name,
                "rm",
                "--force",
                self.registry.relative_path(drone.worktree),
                cwd=self.registry.host,
            )
        else:
            shutil.rmtree(drone.worktree)
        states.append("removed")
        states.append("done")
        self.logger.info("Removing %s...done", name)
        return states

    def bootstrap(self) -> List[str]:
        """Check out every registered drone that has no worktree yet."""
        host = self.registry.host
        self.git.run_or_fail(None, "submodule", "init", cwd=host)
        names = self.registry.list_assimilated(filter_mode=FilterMode.ASSIMILATING)
        for name in names:
            drone = self.registry.drone(name)
            self.logger.info("Bootstrapping %s...", name)
            self.git.run_or_fail(
                name,
                "submodule",
                "update",
                "--init",
                "--",
                self.registry.relative_path(drone.worktree),
                cwd=host,
            )
            self.strategy.absorb(drone)
        return list(names)


__all__ = ["LifecycleManager", "RefreshHook"]
