"""Drone discovery and per-drone configuration."""
