"""Manage drones vendored into a host repository as git submodules."""

__version__ = "0.1.0"
