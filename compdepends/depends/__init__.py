"""Dependency evaluation, edge writes and notification processing."""

from .processor import NotificationProcessor
from .reconciler import DependencyReconciler
from .writer import CompDependsWriter, DependsCache, DiffResult

__all__ = [
    "CompDependsWriter",
    "DependencyReconciler",
    "DependsCache",
    "DiffResult",
    "NotificationProcessor",
]
