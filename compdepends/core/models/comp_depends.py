"""Dependency edge tables and the change-notification queue.

``cp_comp_depends`` is the materialized view read by the execution engine.
``cp_comp_depends_scratchpad`` has the same shape and holds the desired
edge set during a full evaluation.  ``cp_depends_notify`` is the queue of
change events written by other processes and consumed here.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class CpCompDepends(Base):
    __tablename__ = "cp_comp_depends"

    ts_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    computation_id: Mapped[int] = mapped_column(Integer, primary_key=True)

    __table_args__ = (
        Index("ix_cp_comp_depends_comp", "computation_id"),
    )


class CpCompDependsScratchpad(Base):
    __tablename__ = "cp_comp_depends_scratchpad"

    ts_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    computation_id: Mapped[int] = mapped_column(Integer, primary_key=True)


class CpDependsNotifyRecord(Base):
    __tablename__ = "cp_depends_notify"

    record_num: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_type: Mapped[str] = mapped_column(String(1), nullable=False)
    key: Mapped[int] = mapped_column(Integer, nullable=False, default=-1)
    date_time_loaded: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<CpDependsNotifyRecord(record_num={self.record_num}, "
            f"event_type={self.event_type!r}, key={self.key})>"
        )
