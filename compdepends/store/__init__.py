"""Store access: the TsdbStore facade and one DAO per directory."""

from .base import TsdbStore
from .comp_depends_dao import CompDependsDAO
from .computation_dao import ComputationDAO
from .group_dao import GroupDAO
from .lock_dao import CompAppInfo, CompProcLock, LoadingAppDAO
from .notify_dao import NotifyDAO
from .timeseries_dao import TimeSeriesDAO

__all__ = [
    "TsdbStore",
    "CompDependsDAO",
    "ComputationDAO",
    "GroupDAO",
    "LoadingAppDAO",
    "CompAppInfo",
    "CompProcLock",
    "NotifyDAO",
    "TimeSeriesDAO",
]
