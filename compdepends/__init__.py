"""Computation dependency updater."""

__version__ = "1.0.0"
