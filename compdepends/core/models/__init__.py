"""SQLAlchemy 2.0 ORM models for the time-series store.

Re-exports Base and all model classes for convenient imports:
  - identity: TsIdRecord
  - computations: ComputationRecord, CompTsParmRecord, CompPropertyRecord
  - groups: TsGroupRecord, TsGroupMemberTs, TsGroupMemberGroup,
    TsGroupCriteriaRecord
  - dependencies: CpCompDepends, CpCompDependsScratchpad, CpDependsNotifyRecord
  - applications: LoadingApplication, LoadingAppProperty, CompProcLockRecord
"""

from .base import Base
from .comp_depends import CpCompDepends, CpCompDependsScratchpad, CpDependsNotifyRecord
from .computations import CompPropertyRecord, CompTsParmRecord, ComputationRecord
from .groups import (
    TsGroupCriteriaRecord,
    TsGroupMemberGroup,
    TsGroupMemberTs,
    TsGroupRecord,
)
from .loading_app import CompProcLockRecord, LoadingApplication, LoadingAppProperty
from .timeseries import TsIdRecord

__all__ = [
    "Base",
    "TsIdRecord",
    "ComputationRecord",
    "CompTsParmRecord",
    "CompPropertyRecord",
    "TsGroupRecord",
    "TsGroupMemberTs",
    "TsGroupMemberGroup",
    "TsGroupCriteriaRecord",
    "CpCompDepends",
    "CpCompDependsScratchpad",
    "CpDependsNotifyRecord",
    "LoadingApplication",
    "LoadingAppProperty",
    "CompProcLockRecord",
]
