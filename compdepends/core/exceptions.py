"""Exception hierarchy for the computation dependency updater.

- TsdbError: base for all time-series store errors
- DbIoError: store unreachable or a statement failed (recoverable by reconnect)
- LockBusyError: run-lock held by another process, or our lock was lost (fatal)
- NoSuchObjectError: a referenced object no longer exists (implicit delete)
- BadPatternError: malformed parameter/pattern data (skip that parameter)
"""


class TsdbError(Exception):
    """Base exception for all time-series store errors."""


class DbIoError(TsdbError):
    """Raised when a store query or update fails."""


class LockBusyError(TsdbError):
    """Raised when the run-lock is held by another live process or was lost."""


class NoSuchObjectError(TsdbError):
    """Raised when a computation, group, TSID or application does not exist."""


class BadPatternError(TsdbError):
    """Raised when a parameter's pattern fields cannot be interpreted."""
