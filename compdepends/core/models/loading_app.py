"""Loading application registry and the per-application run lock.

One ``comp_proc_lock`` row per application: the live holder's pid and
host, its last heartbeat and a free-text status for monitoring.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class LoadingApplication(Base):
    __tablename__ = "loading_application"

    loading_application_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    loading_application_name: Mapped[str] = mapped_column(
        String(24), nullable=False, unique=True
    )
    office_id: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    cmmnt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class LoadingAppProperty(Base):
    __tablename__ = "ref_loading_application_prop"

    loading_application_id: Mapped[int] = mapped_column(
        ForeignKey("loading_application.loading_application_id", ondelete="CASCADE"),
        primary_key=True,
    )
    prop_name: Mapped[str] = mapped_column(String(64), primary_key=True)
    prop_value: Mapped[str] = mapped_column(String(240), nullable=False)


class CompProcLockRecord(Base):
    __tablename__ = "comp_proc_lock"

    loading_application_id: Mapped[int] = mapped_column(
        ForeignKey("loading_application.loading_application_id", ondelete="CASCADE"),
        primary_key=True,
    )
    pid: Mapped[int] = mapped_column(Integer, nullable=False)
    hostname: Mapped[str] = mapped_column(String(400), nullable=False)
    heartbeat: Mapped[datetime] = mapped_column(nullable=False)
    cur_status: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<CompProcLockRecord(app={self.loading_application_id}, "
            f"pid={self.pid}, host={self.hostname!r})>"
        )
