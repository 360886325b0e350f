"""Time-series group tables.

A group is defined by explicit time-series members, pattern criteria
(site, data type, ...) and sub-group references combined by include,
exclude or intersect.
"""

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class TsGroupRecord(Base):
    __tablename__ = "tsdb_group"

    group_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    group_type: Mapped[Optional[str]] = mapped_column(String(24), nullable=True)
    group_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class TsGroupMemberTs(Base):
    __tablename__ = "tsdb_group_member_ts"

    group_id: Mapped[int] = mapped_column(
        ForeignKey("tsdb_group.group_id", ondelete="CASCADE"), primary_key=True
    )
    data_id: Mapped[int] = mapped_column(Integer, primary_key=True)


class TsGroupMemberGroup(Base):
    __tablename__ = "tsdb_group_member_group"

    parent_group_id: Mapped[int] = mapped_column(
        ForeignKey("tsdb_group.group_id", ondelete="CASCADE"), primary_key=True
    )
    child_group_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    include_group: Mapped[str] = mapped_column(String(1), nullable=False, default="A")


class TsGroupCriteriaRecord(Base):
    __tablename__ = "tsdb_group_criteria"

    group_id: Mapped[int] = mapped_column(
        ForeignKey("tsdb_group.group_id", ondelete="CASCADE"), primary_key=True
    )
    criteria_type: Mapped[str] = mapped_column(String(16), primary_key=True)
    criteria_value: Mapped[str] = mapped_column(String(100), primary_key=True)
