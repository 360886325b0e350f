"""Computation definitions and their time-series parameters.

A computation is either bound to an explicit set of time series (each
input parameter carries a ``site_datatype_id``) or to a group, in which
case input parameters are pattern-only and are resolved by transforming
each member of the group's expanded list.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from compdepends.core.enums import MissingAction

PATTERN_FIELDS = ("site", "data_type", "param_type", "interval", "duration", "version")


@dataclass
class DbCompParm:
    """One time-series parameter of a computation.

    Attributes:
        role_name: Algorithm role, e.g. ``"input"`` or ``"output"``.
        parm_type: ``"i"`` (and ``"id"``, ``"idh"``...) for inputs, ``"o"``
            for outputs.
        site_datatype_id: Explicit TSID binding, ``None`` when pattern-only.
        site, data_type, param_type, interval, duration, version: pattern
            fields applied to a group member's identifier.  Empty means
            "keep the member's value".
        table_selector, model_id: HDB-style selectors, carried for
            back-ends that resolve by unique name.
    """

    role_name: str
    parm_type: str = "i"
    site_datatype_id: Optional[int] = None
    site: str = ""
    data_type: str = ""
    param_type: str = ""
    interval: str = ""
    duration: str = ""
    version: str = ""
    table_selector: str = ""
    model_id: Optional[int] = None

    @property
    def is_input(self) -> bool:
        return self.parm_type.lower().startswith("i")

    @property
    def is_output(self) -> bool:
        return self.parm_type.lower().startswith("o")

    def describe(self) -> dict:
        """Log-friendly summary of the parameter."""
        return {
            "role": self.role_name,
            "sdi": self.site_datatype_id,
            "site": self.site,
            "dt": self.data_type,
            "intv": self.interval,
            "tabsel": self.table_selector,
            "model_id": self.model_id,
        }


@dataclass
class DbComputation:
    """A stored computation as seen by the dependency updater."""

    comp_id: int
    name: str
    enabled: bool = True
    app_id: Optional[int] = None
    group_id: Optional[int] = None
    parms: list[DbCompParm] = field(default_factory=list)
    properties: dict[str, str] = field(default_factory=dict)

    @property
    def is_group_comp(self) -> bool:
        return self.group_id is not None

    @property
    def key(self) -> int:
        return self.comp_id

    @property
    def unique_name(self) -> str:
        return self.name

    def input_parms(self) -> list[DbCompParm]:
        return [p for p in self.parms if p.is_input]

    def get_parm(self, role_name: str) -> Optional[DbCompParm]:
        for parm in self.parms:
            if parm.role_name.lower() == role_name.lower():
                return parm
        return None

    def missing_action(self, role_name: str) -> MissingAction:
        """Missing-value action for *role_name* from its ``_MISSING`` property."""
        wanted = f"{role_name}_MISSING".lower()
        for name, value in self.properties.items():
            if name.lower() == wanted:
                return MissingAction.from_property(value)
        return MissingAction.FAIL

    def __str__(self) -> str:
        return f"{self.comp_id}:{self.name}"
