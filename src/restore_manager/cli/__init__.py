"""Command line interface."""

from .app import main, run

__all__ = ["main", "run"]
