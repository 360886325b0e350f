"""Computation tables: definitions, time-series parameters and properties.

``comp_ts_parm`` rows are ordered by ``parm_index`` so a computation's
parameters are re-read in the order they were defined.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class ComputationRecord(Base):
    __tablename__ = "comp"

    computation_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    computation_name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    loading_application_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("loading_application.loading_application_id"), nullable=True
    )
    group_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    date_time_loaded: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<ComputationRecord(computation_id={self.computation_id}, "
            f"name={self.computation_name!r}, enabled={self.enabled})>"
        )


class CompTsParmRecord(Base):
    __tablename__ = "comp_ts_parm"

    computation_id: Mapped[int] = mapped_column(
        ForeignKey("comp.computation_id", ondelete="CASCADE"), primary_key=True
    )
    algo_role_name: Mapped[str] = mapped_column(String(24), primary_key=True)
    parm_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    parm_type: Mapped[str] = mapped_column(String(8), nullable=False)
    site_datatype_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    site_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    data_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    param_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    interval: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    duration: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    version: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    table_selector: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    model_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class CompPropertyRecord(Base):
    __tablename__ = "comp_property"

    computation_id: Mapped[int] = mapped_column(
        ForeignKey("comp.computation_id", ondelete="CASCADE"), primary_key=True
    )
    prop_name: Mapped[str] = mapped_column(String(64), primary_key=True)
    prop_value: Mapped[str] = mapped_column(String(240), nullable=False)

    __table_args__ = (
        UniqueConstraint("computation_id", "prop_name", name="uq_comp_property_comp_name"),
    )
