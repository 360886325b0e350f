"""Time-series identifiers and parameter pattern transforms.

A TSID's unique string is the six identity parts joined by ``.``, with
trailing empty parts dropped::

    Site.DataType.ParamType.Interval.Duration.Version

Unique strings compare case-insensitively.  Two TSIDs are the same series
iff their keys match; key-less copies (produced by ``copy_no_key`` for
pattern transforms) compare by unique string.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from compdepends.core.exceptions import BadPatternError
from compdepends.tsdb.computation import PATTERN_FIELDS, DbCompParm
from compdepends.tsdb.interval import validate_interval


@dataclass(frozen=True, eq=False)
class TimeSeriesIdentifier:
    key: Optional[int]
    site: str
    data_type: str
    param_type: str = ""
    interval: str = ""
    duration: str = ""
    version: str = ""

    @property
    def unique_string(self) -> str:
        parts = [self.part(f) for f in PATTERN_FIELDS]
        while parts and not parts[-1]:
            parts.pop()
        return ".".join(parts)

    @property
    def unique_name(self) -> str:
        return self.unique_string

    def copy_no_key(self) -> "TimeSeriesIdentifier":
        return replace(self, key=None)

    def with_key(self, key: int) -> "TimeSeriesIdentifier":
        return replace(self, key=key)

    def part(self, field_name: str) -> str:
        return getattr(self, field_name) or ""

    @classmethod
    def from_unique_string(
        cls, unique_string: str, key: Optional[int] = None
    ) -> "TimeSeriesIdentifier":
        """Parse a dotted unique string; missing trailing parts are empty."""
        parts = unique_string.strip().split(".")
        if len(parts) < 2 or len(parts) > len(PATTERN_FIELDS) or not all(parts[:2]):
            raise BadPatternError(f"Invalid time-series identifier '{unique_string}'")
        parts += [""] * (len(PATTERN_FIELDS) - len(parts))
        return cls(key, *parts)

    def matches_parm(self, parm: DbCompParm, key_is_sdi: bool = True) -> bool:
        """True if this TSID satisfies *parm* as an explicit single-TSID binding.

        When the store's TSID key is the site-datatype id the binding is
        compared by key.  Otherwise every pattern field the parameter sets
        must equal this TSID's part (case-insensitive).
        """
        if key_is_sdi:
            return parm.site_datatype_id is not None and parm.site_datatype_id == self.key
        if not parm.site or not parm.data_type:
            return False
        for f in PATTERN_FIELDS:
            wanted = getattr(parm, f)
            if wanted and wanted.lower() != self.part(f).lower():
                return False
        return True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TimeSeriesIdentifier):
            return NotImplemented
        if self.key is not None or other.key is not None:
            return self.key == other.key
        return self.unique_string.upper() == other.unique_string.upper()

    def __hash__(self) -> int:
        if self.key is not None:
            return hash(("key", self.key))
        return hash(("name", self.unique_string.upper()))

    def __str__(self) -> str:
        return f"{self.key}:{self.unique_string}" if self.key is not None else self.unique_string


def _morph(original: str, pattern: str) -> str:
    """Apply one pattern field: ``*`` stands for the original part."""
    if not pattern:
        return original
    if "*" in pattern:
        return pattern.replace("*", original)
    return pattern


def transform_unique_string(
    tsid: TimeSeriesIdentifier, parm: DbCompParm
) -> TimeSeriesIdentifier:
    """Return a key-less copy of *tsid* with *parm*'s pattern fields applied.

    The shared *tsid* is never modified.

    Raises:
        BadPatternError: If the parameter's interval cannot be parsed.
    """
    validate_interval(parm.interval)
    morphed = {f: _morph(tsid.part(f), getattr(parm, f)) for f in PATTERN_FIELDS}
    return TimeSeriesIdentifier(key=None, **morphed)


def tsid_from_parm(parm: DbCompParm) -> Optional[TimeSeriesIdentifier]:
    """Build a key-less TSID from a fully specified parameter.

    Used by back-ends where the parameter binding is not the TSID key.
    Returns ``None`` when the parameter lacks a site or data type.

    Raises:
        BadPatternError: If the parameter's interval cannot be parsed.
    """
    if not parm.site or not parm.data_type or "*" in parm.site:
        return None
    validate_interval(parm.interval)
    return TimeSeriesIdentifier(
        key=None,
        site=parm.site,
        data_type=parm.data_type,
        param_type=parm.param_type,
        interval=parm.interval,
        duration=parm.duration,
        version=parm.version,
    )
