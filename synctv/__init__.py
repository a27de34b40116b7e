"""Typed runtime settings, signal-driven shutdown and reload tasks, and release self-update."""

__version__ = "0.1.0"