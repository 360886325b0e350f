"""Interval string parsing.

Accepts the interval codes used in time-series identifiers and computation
parameters: a count followed by a calendar unit word (``15Minutes``,
``1Hour``, ``1Day``, ``1Month``), optionally several separated by commas
(``1 day, 6 hours``).  ``0``, ``Irr`` and ``~``-prefixed codes denote
irregular series.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from compdepends.core.exceptions import BadPatternError

SECOND = "SECOND"
MINUTE = "MINUTE"
HOUR = "HOUR"
DAY = "DAY"
WEEK = "WEEK"
MONTH = "MONTH"
YEAR = "YEAR"
IRREGULAR = "IRREGULAR"

# digits followed by a word, optionally separated by spaces
_INCREMENT_RE = re.compile(r"(\d+)\s*([a-zA-Z]+)[\s,]*")


@dataclass(frozen=True)
class IntervalIncrement:
    """One calendar increment, e.g. ``IntervalIncrement(MINUTE, 15)``."""

    unit: str
    count: int

    @property
    def is_irregular(self) -> bool:
        return self.unit == IRREGULAR

    def __str__(self) -> str:
        return f"({self.count} {self.unit})"


def unit_for_word(word: str) -> str | None:
    """Map a unit word to a calendar unit; ``None`` if unrecognized.

    Order matters: ``mi``/``mo`` must be tested before the bare ``m``
    (which means minute).
    """
    w = word.strip().lower()
    if not w:
        return None
    if w.startswith("s"):
        return SECOND
    if w.startswith("mi"):
        return MINUTE
    if w.startswith("h"):
        return HOUR
    if w.startswith("d"):
        return DAY
    if w.startswith("w"):
        return WEEK
    if w.startswith("mo") or w.startswith("me"):  # "me": Spanish mes
        return MONTH
    if w.startswith("y") or w.startswith("an"):  # "an": Spanish ano
        return YEAR
    if w.startswith("m"):
        return MINUTE
    return None


def parse_interval_mult(text: str) -> list[IntervalIncrement]:
    """Parse every increment in *text*.

    Raises:
        BadPatternError: If no increment is found or a unit word is unknown.
    """
    s = (text or "").strip()
    if s == "0" or s.lower().startswith("irr") or s.startswith("~"):
        return [IntervalIncrement(IRREGULAR, 0)]

    increments: list[IntervalIncrement] = []
    for match in _INCREMENT_RE.finditer(s):
        unit = unit_for_word(match.group(2))
        if unit is None:
            raise BadPatternError(
                f"Bad time-interval string '{match.group(2)}' in string '{text}'"
            )
        increments.append(IntervalIncrement(unit, int(match.group(1))))
    if not increments:
        raise BadPatternError(f"No valid intervals found in '{text}'")
    return increments


def parse_interval(text: str) -> IntervalIncrement:
    """Parse the first increment in *text*."""
    return parse_interval_mult(text)[0]


def validate_interval(text: str | None) -> None:
    """Raise BadPatternError if *text* is set and cannot be parsed.

    Interval strings containing a ``*`` wildcard are left to the transform.
    """
    if not text or "*" in text:
        return
    parse_interval_mult(text)
