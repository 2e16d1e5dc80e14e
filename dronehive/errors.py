"""Exception taxonomy shared by dronehive components."""

from __future__ import annotations

from typing import Sequence


class DroneHiveError(RuntimeError):
    """Base class for every failure surfaced by dronehive."""


class VcsCommandFailed(DroneHiveError):
    """Raised when git exits with a non-zero status."""

    def __init__(self, context: str | None, args: Sequence[str], output: str) -> None:
        self.context = context
        self.args_list = list(args)
        self.output = output
        label = f"{context}: " if context else ""
        command = " ".join(self.args_list)
        super().__init__(f"git {label}{command}\n\n{output}".rstrip())


class DirtyWorktree(DroneHiveError):
    """Raised when removing a drone whose worktree has uncommitted changes."""


class AlreadyExists(DroneHiveError):
    """Raised when a clone target is already populated."""


class MissingSupportDirectory(DroneHiveError):
    """Raised when the host's top-level directory cannot be determined."""


class UsageError(DroneHiveError):
    """Raised when a batch-only operation runs outside a batch context."""


class ActivationError(DroneHiveError):
    """Raised by activation hooks that fail to expose a drone."""


class BuildStepFailed(DroneHiveError):
    """Raised when a configured build step exits unsuccessfully."""


class UnknownDrone(DroneHiveError):
    """Raised when an operation names a drone that is not registered."""


__all__ = [
    "ActivationError",
    "AlreadyExists",
    "BuildStepFailed",
    "DirtyWorktree",
    "DroneHiveError",
    "MissingSupportDirectory",
    "UnknownDrone",
    "UsageError",
    "VcsCommandFailed",
]
