"""Daemon loop and command-line entry point."""

from .updater import CompDependsUpdater

__all__ = ["CompDependsUpdater"]
