"""Dependency edges and change notifications.

``CpDependsNotify`` is a tagged variant: one frozen dataclass per event
kind.  Equality compares kind and key only, so a redelivered event is
recognized as a duplicate regardless of its load time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import ClassVar, Optional

from compdepends.core.enums import NotifyEventType


@dataclass(frozen=True, order=True)
class CpCompDependsRecord:
    """Edge: the computation must be considered when the series changes."""

    ts_key: int
    comp_id: int

    def __str__(self) -> str:
        return f"(ts={self.ts_key}, comp={self.comp_id})"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CpDependsNotify:
    """Base class of all change notifications."""

    EVENT_TYPE: ClassVar[NotifyEventType]

    key: Optional[int] = None
    loaded_at: datetime = field(default_factory=_utcnow, compare=False)

    @property
    def event_type(self) -> NotifyEventType:
        return self.EVENT_TYPE

    def __str__(self) -> str:
        return f"{type(self).__name__}(key={self.key}, loaded={self.loaded_at.isoformat()})"


@dataclass(frozen=True)
class TsCreated(CpDependsNotify):
    EVENT_TYPE: ClassVar[NotifyEventType] = NotifyEventType.TS_CREATED


@dataclass(frozen=True)
class TsDeleted(CpDependsNotify):
    EVENT_TYPE: ClassVar[NotifyEventType] = NotifyEventType.TS_DELETED


@dataclass(frozen=True)
class TsModified(CpDependsNotify):
    EVENT_TYPE: ClassVar[NotifyEventType] = NotifyEventType.TS_MODIFIED


@dataclass(frozen=True)
class CompModified(CpDependsNotify):
    EVENT_TYPE: ClassVar[NotifyEventType] = NotifyEventType.CMP_MODIFIED


@dataclass(frozen=True)
class GroupModified(CpDependsNotify):
    EVENT_TYPE: ClassVar[NotifyEventType] = NotifyEventType.GRP_MODIFIED


@dataclass(frozen=True)
class FullEval(CpDependsNotify):
    EVENT_TYPE: ClassVar[NotifyEventType] = NotifyEventType.FULL_EVAL


NOTIFY_CLASSES: dict[NotifyEventType, type[CpDependsNotify]] = {
    cls.EVENT_TYPE: cls
    for cls in (TsCreated, TsDeleted, TsModified, CompModified, GroupModified, FullEval)
}


def notify_from_code(
    code: str, key: Optional[int], loaded_at: Optional[datetime] = None
) -> CpDependsNotify:
    """Build the notification variant for a stored event-type code.

    Raises:
        ValueError: If *code* is not a known event type.
    """
    cls = NOTIFY_CLASSES[NotifyEventType(code.strip().upper())]
    if cls is FullEval:
        key = None
    if loaded_at is None:
        return cls(key=key)
    return cls(key=key, loaded_at=loaded_at)
