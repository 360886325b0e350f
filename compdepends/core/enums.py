"""Shared enumerations used across models and modules.

All enums use the (str, Enum) mixin pattern so their values are
serializable strings, compatible with database storage and log output.
"""

from enum import Enum


class SubgroupCombine(str, Enum):
    """How a sub-group's expansion is combined into its parent.

    Values are the single-character codes stored in
    ``tsdb_group_member_group.include_group``.
    """

    INCLUDE = "A"
    EXCLUDE = "S"
    INTERSECT = "I"


class GroupCriteria(str, Enum):
    """Pattern criteria a group uses to select time series dynamically."""

    SITE = "SITE"
    DATA_TYPE = "DATA_TYPE"
    PARAM_TYPE = "PARAM_TYPE"
    INTERVAL = "INTERVAL"
    DURATION = "DURATION"
    VERSION = "VERSION"


class NotifyEventType(str, Enum):
    """Event codes stored in ``cp_depends_notify.event_type``."""

    TS_CREATED = "T"
    TS_DELETED = "D"
    TS_MODIFIED = "M"
    CMP_MODIFIED = "C"
    GRP_MODIFIED = "G"
    FULL_EVAL = "F"


class MissingAction(str, Enum):
    """What a computation does when an input value is missing.

    Read from the ``<role>_MISSING`` computation property; FAIL is the
    default when the property is absent or unrecognized.
    """

    FAIL = "FAIL"
    IGNORE = "IGNORE"
    PREV = "PREV"
    NEXT = "NEXT"
    INTERP = "INTERP"
    CLOSEST = "CLOSEST"

    @classmethod
    def from_property(cls, value: str | None) -> "MissingAction":
        if not value:
            return cls.FAIL
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.FAIL


class ProcessorState(str, Enum):
    """States of the notification processor."""

    IDLE = "IDLE"
    PROCESSING = "PROCESSING"
    FULL_EVAL = "FULL_EVAL"
