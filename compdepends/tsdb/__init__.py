"""Domain types of the time-series store: TSIDs, computations, groups, events."""

from .computation import DbCompParm, DbComputation
from .group import SubgroupRef, TsGroup
from .notify import (
    CompModified,
    CpCompDependsRecord,
    CpDependsNotify,
    FullEval,
    GroupModified,
    TsCreated,
    TsDeleted,
    TsModified,
    notify_from_code,
)
from .tsid import TimeSeriesIdentifier, transform_unique_string

__all__ = [
    "DbCompParm",
    "DbComputation",
    "SubgroupRef",
    "TsGroup",
    "CpCompDependsRecord",
    "CpDependsNotify",
    "TsCreated",
    "TsDeleted",
    "TsModified",
    "CompModified",
    "GroupModified",
    "FullEval",
    "notify_from_code",
    "TimeSeriesIdentifier",
    "transform_unique_string",
]
