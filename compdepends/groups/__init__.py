"""Group expansion engine."""

from .expansion import TsGroupCache

__all__ = ["TsGroupCache"]
