"""Activation hooks that expose a built drone to a running environment."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .logging import get_logger


class Activator(ABC):
    """Contract for making a drone's load and info paths available.

    Implementations raise ``ActivationError`` when the drone cannot be
    activated.
    """

    @abstractmethod
    def activate(self, name: str) -> None:
        """Expose the drone called ``name``."""


class NullActivator(Activator):
    """Records activation requests without changing the environment."""

    def __init__(self) -> None:
        self.logger = get_logger("activation")
        self.activated: list[str] = []

    def activate(self, name: str) -> None:
        self.logger.debug("Activation of %s requested", name)
        self.activated.append(name)


__all__ = ["Activator", "NullActivator"]
