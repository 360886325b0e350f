"""Process-local caches mirroring the time-series store."""

from .computation_cache import ComputationCache, expand_computation_inputs
from .object_cache import DbObjectCache
from .tsid_cache import TsIdCache

__all__ = [
    "ComputationCache",
    "DbObjectCache",
    "TsIdCache",
    "expand_computation_inputs",
]
